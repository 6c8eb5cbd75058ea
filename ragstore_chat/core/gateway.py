# ragstore_chat/core/gateway.py
"""
Gemini File Search gateway.

Adapts the google-genai async client to the narrow operations the session
core needs: create/list/delete stores, upload/list/delete documents, run a
grounded query and derive example questions. Every SDK failure is wrapped
in a :class:`~ragstore_chat.exceptions.GatewayError` subclass.
"""

# imports built-in modules
import asyncio
import json
from typing import Any, Iterable, List, Mapping, Optional, Sequence

# imports third-party modules
from google import genai
from google.genai import types

# imports local modules
from ragstore_chat.config import config
from ragstore_chat.core.models import (
    Citation,
    CustomMetadata,
    Document,
    QueryResult,
    RagStore,
    StagedFile,
)
from ragstore_chat.exceptions import (
    CredentialMissingError,
    DeleteError,
    DocumentListError,
    InvalidCredentialError,
    OperationFailedError,
    QueryError,
    StoreCreateError,
    StoreListError,
    UploadError,
)
from ragstore_chat.utils.logger import get_gateway_logger

logger = get_gateway_logger()

# Property names known to hold the listing payload, checked in order
KNOWN_ARRAY_KEYS = (
    "page",
    "file_search_stores",
    "fileSearchStores",
    "documents",
    "files",
)

CREDENTIAL_ERROR_MARKERS = ("api key not valid", "requested entity was not found")

QUERY_SUFFIX = (
    " DO NOT ASK THE USER TO READ THE MANUAL, pinpoint the relevant sections "
    "in the response itself."
)

EXAMPLE_QUESTIONS_PROMPT = (
    "Analyze the provided documents to identify the main product or topic. "
    "Then generate 4 short, practical questions a user might ask about it. "
    "If you cannot identify a specific product, generate generic questions "
    "about the document content."
)

EXAMPLE_QUESTIONS_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "product": types.Schema(type=types.Type.STRING, nullable=True),
            "questions": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
            ),
        },
    ),
)

NO_ANSWER_TEXT = "No answer generated."
UNTITLED_STORE = "Untitled Store"
UNTITLED_DOCUMENT = "Untitled Document"


def is_credential_error(error: BaseException) -> bool:
    """Return True if ``error`` looks like a rejected API key.

    The message of the error and of its cause chain are searched for the
    phrases the Gemini API uses for invalid keys.
    """
    current: Optional[BaseException] = error
    while current is not None:
        if isinstance(current, InvalidCredentialError):
            return True
        text = str(current).lower()
        if any(marker in text for marker in CREDENTIAL_ERROR_MARKERS):
            return True
        current = current.__cause__
    return False


def _read(item: Any, *names: str) -> Any:
    """Read the first present field among ``names`` from a dict or object."""
    for name in names:
        if isinstance(item, Mapping):
            value = item.get(name)
        else:
            value = getattr(item, name, None)
        if value is not None:
            return value
    return None


def _as_mapping(response: Any) -> Mapping[str, Any]:
    if isinstance(response, Mapping):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump()
    if hasattr(response, "__dict__"):
        return vars(response)
    return {}


def extract_items(response: Any) -> List[Any]:
    """Pull the array payload out of a listing response.

    The listing endpoints have returned the array under different property
    names over time (camelCase and snake_case, ``files`` vs ``documents``).
    Known names are tried first. If none matches, the first list-valued
    property is used and a warning is logged, since that is a degraded
    guess rather than a recognized envelope.

    Parameters
    ----------
    response : Any
        A list, a dict, a pydantic model or a pager returned by the SDK.

    Returns
    -------
    List[Any]
        The discovered items, or an empty list.
    """
    if response is None:
        return []
    if isinstance(response, (list, tuple)):
        return list(response)

    for key in KNOWN_ARRAY_KEYS:
        value = _read(response, key)
        if isinstance(value, (list, tuple)):
            return list(value)

    for key, value in _as_mapping(response).items():
        if isinstance(value, (list, tuple)):
            logger.warning(f"Auto-detected array data in property: '{key}'")
            return list(value)

    return []


def to_store(item: Any) -> RagStore:
    display_name = _read(item, "display_name", "displayName") or UNTITLED_STORE
    return RagStore(id=str(_read(item, "name", "id")), display_name=display_name)


def to_document(item: Any) -> Document:
    metadata = []
    for entry in _read(item, "custom_metadata", "customMetadata") or []:
        value = _read(entry, "string_value", "stringValue", "value")
        if value is None:
            value = _read(entry, "numeric_value", "numericValue")
        if value is None:
            value = _read(entry, "string_list_value", "stringListValue")
            if value is not None:
                value = ", ".join(_read(value, "values") or [])
        metadata.append(
            CustomMetadata(key=str(_read(entry, "key")), value="" if value is None else str(value))
        )
    return Document(
        id=str(_read(item, "name", "id")),
        display_name=_read(item, "display_name", "displayName") or UNTITLED_DOCUMENT,
        custom_metadata=metadata,
    )


def to_citation(chunk: Any) -> Citation:
    context = _read(chunk, "retrieved_context", "retrievedContext", "web")
    if context is None:
        return Citation()
    return Citation(
        title=_read(context, "title"),
        uri=_read(context, "uri"),
        text=_read(context, "text"),
    )


def parse_example_questions(text: Optional[str]) -> List[str]:
    """Flatten ``[{product, questions: [...]}, ...]`` JSON into questions.

    Malformed JSON or an unexpected shape yields an empty list.
    """
    try:
        data = json.loads(text or "[]")
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse JSON response: {text!r}")
        return []

    if not isinstance(data, list):
        return []

    questions = []
    for item in data:
        if not isinstance(item, Mapping):
            continue
        for question in item.get("questions") or []:
            if isinstance(question, str):
                questions.append(question)
    return questions


class StoreGateway:
    """Async adapter over ``genai.Client`` for File Search stores.

    The client is built lazily from the most recently supplied API key;
    :meth:`initialize` always replaces it so a newly selected key takes
    effect immediately.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        poll_interval: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ):
        self.model = model or config.GEMINI_MODEL
        self.poll_interval = (
            config.OPERATION_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self._api_key = api_key
        self._client = client

    def initialize(self, api_key: Optional[str] = None) -> None:
        """(Re)create the client with ``api_key`` or the configured key."""
        key = api_key or self._api_key or config.GOOGLE_API_KEY
        if not key:
            return
        self._api_key = key
        self._client = genai.Client(api_key=key)
        logger.info("Gemini client initialized")

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    def _aio(self) -> Any:
        if self._client is None:
            self.initialize()
            if self._client is None:
                raise CredentialMissingError()
        return self._client.aio

    async def create_store(self, display_name: str) -> str:
        """Create a store and return its resource name."""
        aio = self._aio()
        try:
            store = await aio.file_search_stores.create(
                config={"display_name": display_name}
            )
        except Exception as exc:
            raise StoreCreateError("Failed to create RAG store", str(exc)) from exc
        if not store.name:
            raise StoreCreateError("Failed to create RAG store: name is missing.")
        logger.info(f"Created store {store.name} ({display_name})")
        return store.name

    async def list_stores(self, page_size: Optional[int] = None) -> List[RagStore]:
        aio = self._aio()
        logger.info("Requesting list of RAG stores...")
        try:
            response = await aio.file_search_stores.list(
                config={"page_size": page_size or config.STORE_PAGE_SIZE}
            )
        except Exception as exc:
            raise StoreListError("Failed to list RAG stores", str(exc)) from exc
        stores = [to_store(item) for item in extract_items(response)]
        logger.debug(f"Found {len(stores)} RAG stores")
        return stores

    async def list_documents(
        self, store_id: str, page_size: Optional[int] = None
    ) -> List[Document]:
        aio = self._aio()
        logger.info(f"Requesting documents for store: {store_id}")
        try:
            response = await aio.file_search_stores.documents.list(
                parent=store_id,
                config={"page_size": page_size or config.DOCUMENT_PAGE_SIZE},
            )
        except Exception as exc:
            raise DocumentListError(
                f"Failed to list documents for {store_id}", str(exc)
            ) from exc
        return [to_document(item) for item in extract_items(response)]

    async def upload_file(
        self,
        store_id: str,
        file: StagedFile,
        metadata: Optional[Sequence[CustomMetadata]] = None,
    ) -> Any:
        """Start uploading ``file`` into ``store_id``.

        Returns
        -------
        Any
            The long-running operation handle; see :meth:`poll_operation`.
        """
        aio = self._aio()
        upload_config = types.UploadToFileSearchStoreConfig(
            display_name=file.name,
            mime_type=file.mime_type,
            custom_metadata=[
                types.CustomMetadata(key=item.key, string_value=item.value)
                for item in metadata or []
            ]
            or None,
        )
        logger.info(f"Uploading file: {file.name} -> {store_id}")
        try:
            return await aio.file_search_stores.upload_to_file_search_store(
                file_search_store_name=store_id,
                file=file.path,
                config=upload_config,
            )
        except Exception as exc:
            raise UploadError(f"Failed to upload {file.name}", str(exc)) from exc

    async def poll_operation(self, operation: Any) -> Any:
        aio = self._aio()
        try:
            return await aio.operations.get(operation)
        except Exception as exc:
            raise UploadError("Failed to poll upload operation", str(exc)) from exc

    async def wait_for_operation(self, operation: Any) -> Any:
        """Poll ``operation`` on a fixed interval until it reports ``done``.

        Raises
        ------
        OperationFailedError
            If the finished operation carries an error.
        """
        while not operation.done:
            logger.debug("Operation still running...")
            await asyncio.sleep(self.poll_interval)
            operation = await self.poll_operation(operation)
        if getattr(operation, "error", None):
            raise OperationFailedError(str(operation.name), operation.error)
        return operation

    async def upload_and_wait(
        self,
        store_id: str,
        file: StagedFile,
        metadata: Optional[Sequence[CustomMetadata]] = None,
    ) -> None:
        operation = await self.upload_file(store_id, file, metadata)
        await self.wait_for_operation(operation)
        logger.info(f"Completed upload: {file.name}")

    async def delete_document(self, document_id: str) -> None:
        aio = self._aio()
        try:
            await aio.file_search_stores.documents.delete(
                name=document_id, config={"force": True}
            )
        except Exception as exc:
            raise DeleteError(f"Failed to delete {document_id}", str(exc)) from exc
        logger.info(f"Deleted document {document_id}")

    async def delete_store(self, store_id: str, force: bool = True) -> None:
        aio = self._aio()
        try:
            await aio.file_search_stores.delete(
                name=store_id, config={"force": force}
            )
        except Exception as exc:
            raise DeleteError(f"Failed to delete {store_id}", str(exc)) from exc
        logger.info(f"Deleted store {store_id}")

    def _file_search_tool(self, store_id: str) -> types.Tool:
        return types.Tool(
            file_search=types.FileSearch(file_search_store_names=[store_id])
        )

    async def query(self, store_id: str, text: str) -> QueryResult:
        """Run a grounded query constrained to ``store_id``."""
        aio = self._aio()
        try:
            response = await aio.models.generate_content(
                model=self.model,
                contents=text + QUERY_SUFFIX,
                config=types.GenerateContentConfig(
                    tools=[self._file_search_tool(store_id)]
                ),
            )
        except Exception as exc:
            raise QueryError("Grounded query failed", str(exc)) from exc

        chunks: Iterable[Any] = []
        if response.candidates and response.candidates[0].grounding_metadata:
            chunks = response.candidates[0].grounding_metadata.grounding_chunks or []
        return QueryResult(
            text=response.text or NO_ANSWER_TEXT,
            grounding_chunks=[to_citation(chunk) for chunk in chunks],
        )

    async def suggest_questions(self, store_id: str) -> List[str]:
        """Generate example questions for a store.

        Best-effort: any failure, including unparsable structured output,
        returns an empty list.
        """
        try:
            aio = self._aio()
            response = await aio.models.generate_content(
                model=self.model,
                contents=EXAMPLE_QUESTIONS_PROMPT,
                config=types.GenerateContentConfig(
                    tools=[self._file_search_tool(store_id)],
                    response_mime_type="application/json",
                    response_schema=EXAMPLE_QUESTIONS_SCHEMA,
                ),
            )
        except Exception as exc:
            logger.warning(f"Could not generate example questions: {exc}")
            return []
        return parse_example_questions(response.text)
