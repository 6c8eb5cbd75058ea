# ragstore_chat/core/documents.py
"""
Manage-files view for a single store.

The document list is fetched when the view opens and is never cached
beyond it. Deleting a document is applied locally first and reverted if
the remote delete fails.
"""

# imports built-in modules
from typing import List, Optional, Sequence

# imports local modules
from ragstore_chat.core.gateway import StoreGateway
from ragstore_chat.core.models import CustomMetadata, Document, RagStore, StagedFile
from ragstore_chat.exceptions import RAGAppError
from ragstore_chat.utils.logger import get_session_logger

logger = get_session_logger()


class DocumentManager:
    """State of the manage-files view."""

    def __init__(self, gateway: StoreGateway, page_size: Optional[int] = None):
        self.gateway = gateway
        self.page_size = page_size
        self.store: Optional[RagStore] = None
        self.documents: List[Document] = []
        self.is_loading = False
        self.processing_file: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.store is not None

    async def open(self, store: RagStore) -> bool:
        """Open the view and fetch the store's documents.

        A failed fetch closes the view again.
        """
        self.store = store
        self.documents = []
        self.is_loading = True
        try:
            self.documents = await self.gateway.list_documents(store.id, self.page_size)
        except RAGAppError as e:
            logger.error(f"Failed to fetch documents for {store.id}: {e}")
            self.close()
            return False
        finally:
            self.is_loading = False
        return True

    def close(self) -> None:
        self.store = None
        self.documents = []
        self.processing_file = None

    async def add(
        self, file: StagedFile, metadata: Optional[Sequence[CustomMetadata]] = None
    ) -> bool:
        """Upload ``file`` into the open store, then re-fetch the list.

        On failure the view stays open and the in-progress marker is cleared.
        """
        if self.store is None:
            return False
        store = self.store
        self.processing_file = file.name
        try:
            await self.gateway.upload_and_wait(store.id, file, metadata)
            self.documents = await self.gateway.list_documents(store.id, self.page_size)
        except RAGAppError as e:
            logger.error(f"Failed to upload file to store {store.id}: {e}")
            return False
        finally:
            self.processing_file = None
        return True

    async def delete(self, document_id: str) -> bool:
        if self.store is None:
            return False
        previous = list(self.documents)
        self.documents = [d for d in self.documents if d.id != document_id]
        try:
            await self.gateway.delete_document(document_id)
        except RAGAppError as e:
            logger.error(f"Failed to delete file {document_id}: {e}")
            self.documents = previous
            return False
        return True
