# ragstore_chat/core/library.py
"""
Library cache.

In-memory mirror of the remote store list. Local optimistic changes and
authoritative refreshes are separate operations so each can be exercised
on its own.
"""

# imports built-in modules
from typing import List, Optional

# imports local modules
from ragstore_chat.core.gateway import StoreGateway
from ragstore_chat.core.models import RagStore
from ragstore_chat.exceptions import RAGAppError
from ragstore_chat.utils.logger import get_session_logger

logger = get_session_logger()

LIBRARY_ERROR = "Failed to load your library. Please check your network or API key."


def _unique_by_id(stores: List[RagStore]) -> List[RagStore]:
    seen = set()
    unique = []
    for store in stores:
        if store.id in seen:
            continue
        seen.add(store.id)
        unique.append(store)
    return unique


class LibraryCache:
    """Optimistically updated cache of the user's stores."""

    def __init__(self, gateway: StoreGateway, page_size: Optional[int] = None):
        self.gateway = gateway
        self.page_size = page_size
        self.stores: List[RagStore] = []
        self.error: Optional[str] = None
        self.is_loading = False

    def __len__(self) -> int:
        return len(self.stores)

    def __contains__(self, store_id: object) -> bool:
        return any(store.id == store_id for store in self.stores)

    def get(self, store_id: str) -> Optional[RagStore]:
        for store in self.stores:
            if store.id == store_id:
                return store
        return None

    async def refresh(self) -> Optional[List[RagStore]]:
        """Replace the cache with the remote listing.

        On failure the previous contents are kept and ``error`` is set.

        Returns
        -------
        Optional[List[RagStore]]
            The new contents, or None if the listing failed.
        """
        self.is_loading = True
        try:
            stores = await self.gateway.list_stores(self.page_size)
        except RAGAppError as e:
            logger.error(f"Failed to load existing stores: {e}")
            self.error = LIBRARY_ERROR
            return None
        finally:
            self.is_loading = False

        self.stores = _unique_by_id(stores)
        self.error = None
        return list(self.stores)

    def insert_optimistic(self, store: RagStore) -> None:
        """Put a just-created store at the front without asking the remote."""
        self.stores = [store] + [s for s in self.stores if s.id != store.id]

    def remove_optimistic(self, store_id: str) -> Optional[RagStore]:
        removed = self.get(store_id)
        self.stores = [s for s in self.stores if s.id != store_id]
        return removed
