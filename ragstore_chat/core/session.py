# ragstore_chat/core/session.py
"""
Session controller.

Owns the session state and every collaborator (credential gate, library
cache, staging set, chat driver, manage-files view). The presentation
layer only calls the named actions below and reads the resulting state;
it never mutates the collaborators directly.

Remote failures are caught here, at the action that issued the call, and
turned into one of three visible outcomes: an inline message
(``credential_error``, ``staging_error``, ``library.error``, ``alert``),
the full-screen ``Failed`` state, or an apology turn in the transcript.
"""

# imports built-in modules
import asyncio
import inspect
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence

# imports local modules
from ragstore_chat.config import config
from ragstore_chat.core import state as transitions
from ragstore_chat.core.chat import ChatDriver
from ragstore_chat.core.credentials import CredentialGate
from ragstore_chat.core.documents import DocumentManager
from ragstore_chat.core.gateway import StoreGateway, is_credential_error
from ragstore_chat.core.library import LibraryCache
from ragstore_chat.core.models import (
    ChatMessage,
    ConfirmationRequest,
    CustomMetadata,
    Document,
    RagStore,
    StagedFile,
    UploadProgress,
)
from ragstore_chat.core.staging import StagingSet
from ragstore_chat.core.state import (
    EMBEDDING_MESSAGE,
    REGISTERED_MESSAGE,
    AppStatus,
    Chatting,
    Failed,
    Initializing,
    State,
    Uploading,
    Welcome,
)
from ragstore_chat.exceptions import (
    EmptyStagingError,
    InvalidTransitionError,
    NoPendingConfirmationError,
    QueryError,
    RAGAppError,
    StagingError,
)
from ragstore_chat.utils.logger import get_session_logger

logger = get_session_logger()

CREDENTIAL_REQUIRED = "Please select your Gemini API Key first."
CREDENTIAL_INVALID = (
    "The selected API key is invalid. Please select a different one and try again."
)
STORE_DELETE_FAILED = "Failed to delete the document set."

StateListener = Callable[[State], Any]


def session_display_name(files: Sequence[StagedFile], now: Optional[datetime] = None) -> str:
    """Label a new store after the files it is built from.

    One file gives its name, several give ``"<first> + <N-1> others"``.
    """
    if len(files) == 1:
        return files[0].name
    if len(files) > 1:
        return f"{files[0].name} + {len(files) - 1} others"
    now = now or datetime.now()
    return f"Session {now.strftime('%x')} {now.strftime('%X')}"


class SessionController:
    """State container and action dispatcher for one user session.

    Parameters
    ----------
    gateway : StoreGateway
        Remote File Search adapter.
    gate : CredentialGate
        Tracks whether an API key is selected.
    register_pause : Optional[float]
        Seconds to hold the "registered" progress before returning to the
        welcome state. Defaults to ``config.REGISTER_PAUSE``.
    """

    def __init__(
        self,
        gateway: StoreGateway,
        gate: CredentialGate,
        library: Optional[LibraryCache] = None,
        staging: Optional[StagingSet] = None,
        chat: Optional[ChatDriver] = None,
        documents: Optional[DocumentManager] = None,
        register_pause: Optional[float] = None,
    ):
        self.gateway = gateway
        self.gate = gate
        self.library = library or LibraryCache(gateway)
        self.staging = staging or StagingSet()
        self.chat = chat or ChatDriver(gateway)
        self.documents = documents or DocumentManager(gateway)
        self.register_pause = (
            config.REGISTER_PAUSE if register_pause is None else register_pause
        )

        self.state: State = Initializing()
        self.credential_error: Optional[str] = None
        self.staging_error: Optional[str] = None
        self.alert: Optional[str] = None
        self.pending_confirmation: Optional[ConfirmationRequest] = None
        self._listeners: List[StateListener] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def status(self) -> AppStatus:
        return self.state.status

    @property
    def progress(self) -> Optional[UploadProgress]:
        if isinstance(self.state, Uploading):
            return self.state.progress
        return None

    @property
    def active_store(self) -> Optional[RagStore]:
        if isinstance(self.state, Chatting):
            return self.state.store
        return None

    @property
    def example_questions(self) -> List[str]:
        if isinstance(self.state, Chatting):
            return list(self.state.example_questions)
        return []

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self.chat.history)

    @property
    def error(self) -> Optional[str]:
        if isinstance(self.state, Failed):
            return self.state.message
        return None

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> None:
        """Call ``listener(state)`` after every state change."""
        self._listeners.append(listener)

    async def _set_state(self, new_state: State) -> None:
        old_state = self.state
        self.state = new_state
        if isinstance(old_state, Chatting) and not isinstance(new_state, Chatting):
            self.chat.deactivate()
        if old_state.status != new_state.status:
            logger.info(f"{old_state.status.value} -> {new_state.status.value}")
        for listener in self._listeners:
            result = listener(new_state)
            if inspect.isawaitable(result):
                await result

    async def _fail(self, message: str, error: Optional[BaseException]) -> None:
        logger.error(f"{message}: {error}")
        text = f"{message}: {error}" if error else message
        await self._set_state(transitions.fail(self.state, text))

    def _require_welcome(self, action: str) -> None:
        if not isinstance(self.state, Welcome):
            raise InvalidTransitionError(action, self.status.value)

    async def _connect(self) -> None:
        """Rebuild the client with the current key and load the library."""
        self.gateway.initialize(self.gate.api_key)
        await self.library.refresh()

    # ------------------------------------------------------------------
    # Credentials and library
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Initial credential check and library load, then ``Welcome``."""
        if await self.gate.check():
            await self._connect()
        await self._set_state(transitions.library_loaded(self.state))

    async def check_credentials(self) -> bool:
        """Re-check the key, e.g. when the window regains focus.

        The library is loaded when a key becomes selected.
        """
        was_selected = self.gate.is_selected()
        selected = await self.gate.on_focus()
        if selected and not was_selected:
            await self._connect()
        return selected

    async def request_credential(self) -> bool:
        selected = await self.gate.request_selection()
        self.credential_error = self.gate.state.error
        if selected:
            await self._connect()
        return selected

    async def refresh_library(self) -> Optional[List[RagStore]]:
        return await self.library.refresh()

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def stage_file(self, file: StagedFile) -> bool:
        self._require_welcome("stage files")
        try:
            self.staging.add(file)
        except StagingError as e:
            self.staging_error = str(e)
            return False
        self.staging_error = None
        return True

    def stage_path(self, path: str, name: Optional[str] = None) -> bool:
        self._require_welcome("stage files")
        try:
            self.staging.add_path(path, name)
        except StagingError as e:
            self.staging_error = str(e)
            return False
        except OSError as e:
            logger.error(f"Cannot read staged file {path}: {e}")
            self.staging_error = f"Cannot read file: {name or path}"
            return False
        self.staging_error = None
        return True

    def unstage(self, index: int) -> Optional[StagedFile]:
        """Remove the staged file at ``index``; a stale index is ignored."""
        self._require_welcome("remove staged files")
        try:
            return self.staging.remove(index)
        except IndexError:
            logger.warning(f"No staged file at index {index}")
            return None

    # ------------------------------------------------------------------
    # Create store: Welcome -> Uploading -> Welcome
    # ------------------------------------------------------------------

    async def create_store(self) -> Optional[RagStore]:
        """Create a store from the staged files.

        The whole run is all-or-nothing from the session's point of view:
        on any failure the staging set is left intact and no store id is
        kept.

        Returns
        -------
        Optional[RagStore]
            The new store, or None if the run did not complete.
        """
        self._require_welcome("create a document store")
        if not self.gate.is_selected():
            self.credential_error = CREDENTIAL_REQUIRED
            return None
        files = self.staging.files
        if not files:
            self.staging_error = str(EmptyStagingError())
            return None

        self.credential_error = None
        self.staging_error = None
        display_name = session_display_name(files)
        total_files = len(files)

        try:
            await self._set_state(transitions.begin_upload(self.state, total_files))
            store_id = await self.gateway.create_store(display_name)
            for index, file in enumerate(files, start=1):
                await self._set_state(
                    transitions.advance_upload(
                        self.state,
                        index,
                        EMBEDDING_MESSAGE,
                        f"({index}/{total_files}) {file.name}",
                    )
                )
                await self.gateway.upload_and_wait(store_id, file)
            await self._set_state(
                transitions.advance_upload(
                    self.state, total_files + 1, REGISTERED_MESSAGE, ""
                )
            )
            await asyncio.sleep(self.register_pause)
        except RAGAppError as e:
            if is_credential_error(e):
                logger.warning(f"API key rejected during upload: {e}")
                self.gate.mark_invalid(CREDENTIAL_INVALID)
                self.credential_error = CREDENTIAL_INVALID
                await self._set_state(transitions.abort_upload(self.state))
            else:
                await self._fail("Failed to upload files", e)
            return None
        except BaseException:
            # Cancelled task or failing listener: progress must not outlive the run
            if isinstance(self.state, Uploading):
                logger.warning("Upload run interrupted, returning to welcome")
                self.state = transitions.abort_upload(self.state)
            raise

        store = RagStore(id=store_id, display_name=display_name)
        # The listing may not include the new store yet, so no refresh here
        self.library.insert_optimistic(store)
        self.staging.clear()
        await self._set_state(transitions.finish_upload(self.state))
        return store

    # ------------------------------------------------------------------
    # Chat: Welcome <-> Chatting
    # ------------------------------------------------------------------

    async def select_store(self, store: RagStore) -> None:
        self._require_welcome("open a chat")
        self.credential_error = None
        self.alert = None
        self.documents.close()
        try:
            questions = await self.gateway.suggest_questions(store.id)
        except RAGAppError as e:
            logger.warning(f"Could not load example questions for {store.id}: {e}")
            questions = []
        self.chat.activate(store)
        await self._set_state(transitions.enter_chat(self.state, store, questions))

    async def end_chat(self) -> None:
        self.alert = None
        await self._set_state(transitions.end_chat(self.state))
        self.chat.deactivate()
        self.staging.clear()
        await self.library.refresh()

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """Send a chat message; a no-op unless a store is active."""
        if not isinstance(self.state, Chatting) or self.chat.store is None:
            return None
        self.alert = None
        try:
            return await self.chat.send(text)
        except QueryError as e:
            logger.error(f"Failed to get response: {e}")
            self.alert = f"Failed to get response: {e}"
            return None

    # ------------------------------------------------------------------
    # Destructive actions behind a confirmation
    # ------------------------------------------------------------------

    def request_delete_store(self, store: RagStore) -> ConfirmationRequest:
        self._require_welcome("delete a document set")
        self.pending_confirmation = ConfirmationRequest(
            target_kind="store", target_id=store.id, display_name=store.display_name
        )
        return self.pending_confirmation

    def request_delete_document(self, document: Document) -> ConfirmationRequest:
        self._require_welcome("delete a file")
        if not self.documents.is_open:
            raise InvalidTransitionError("delete a file", "no store is being managed")
        self.pending_confirmation = ConfirmationRequest(
            target_kind="document",
            target_id=document.id,
            display_name=document.display_name,
        )
        return self.pending_confirmation

    def cancel_confirmation(self) -> None:
        self.pending_confirmation = None

    async def confirm(self) -> bool:
        """Execute the pending destructive action.

        Store deletion removes the entry locally first and is not rolled
        back if the remote call fails; only a later refresh restores it.
        Document deletion is rolled back on failure.
        """
        request = self.pending_confirmation
        if request is None:
            raise NoPendingConfirmationError()
        self.pending_confirmation = None

        if request.target_kind == "store":
            return await self._delete_store(request.target_id)
        return await self.documents.delete(request.target_id)

    async def _delete_store(self, store_id: str) -> bool:
        self.alert = None
        self.library.remove_optimistic(store_id)
        if self.documents.store is not None and self.documents.store.id == store_id:
            self.documents.close()
        try:
            await self.gateway.delete_store(store_id, force=True)
        except RAGAppError as e:
            logger.error(f"Failed to delete store: {e}")
            self.alert = STORE_DELETE_FAILED
            return False
        await self.library.refresh()
        return True

    # ------------------------------------------------------------------
    # Manage files
    # ------------------------------------------------------------------

    async def open_documents(self, store: RagStore) -> bool:
        self._require_welcome("manage files")
        return await self.documents.open(store)

    async def add_document(
        self, file: StagedFile, metadata: Optional[Sequence[CustomMetadata]] = None
    ) -> bool:
        self._require_welcome("add a file")
        try:
            self.staging.validate(file)
        except StagingError as e:
            self.staging_error = str(e)
            return False
        return await self.documents.add(file, metadata)

    def close_documents(self) -> None:
        self.documents.close()

    # ------------------------------------------------------------------
    # Error recovery
    # ------------------------------------------------------------------

    async def try_again(self) -> None:
        await self._set_state(transitions.recover(self.state))
