# ragstore_chat/core/chat.py
"""
Chat driver.

Appends user turns, runs grounded queries against the active store and
appends the model's answer. A failed query still produces a model turn so
the transcript always shows that something came back.
"""

# imports built-in modules
from typing import List, Optional

# imports local modules
from ragstore_chat.core.gateway import StoreGateway
from ragstore_chat.core.models import ChatMessage, RagStore
from ragstore_chat.exceptions import QueryError, RAGAppError
from ragstore_chat.utils.logger import get_session_logger

logger = get_session_logger()

APOLOGY_TEXT = "Sorry, I encountered an error. Please try again."


class ChatDriver:
    """Transcript and in-flight query state for one active store."""

    def __init__(self, gateway: StoreGateway):
        self.gateway = gateway
        self.store: Optional[RagStore] = None
        self.history: List[ChatMessage] = []
        self.is_query_loading = False
        self.last_error: Optional[str] = None

    def activate(self, store: RagStore) -> None:
        self.store = store
        self.reset()

    def deactivate(self) -> None:
        self.store = None
        self.reset()

    def reset(self) -> None:
        self.history = []
        self.is_query_loading = False
        self.last_error = None

    async def send(self, message: str) -> Optional[ChatMessage]:
        """Send ``message`` to the active store.

        Does nothing when no store is active.

        Returns
        -------
        Optional[ChatMessage]
            The model turn that was appended, or None for a no-op.

        Raises
        ------
        QueryError
            After the apology turn has been appended, if the query failed.
        """
        if self.store is None:
            return None

        store = self.store
        self.history.append(ChatMessage.user(message))
        self.is_query_loading = True
        try:
            result = await self.gateway.query(store.id, message)
        except RAGAppError as e:
            logger.error(f"Failed to get response from {store.id}: {e}")
            self.last_error = str(e)
            self.history.append(ChatMessage.model(APOLOGY_TEXT))
            if isinstance(e, QueryError):
                raise
            raise QueryError("Failed to get response", str(e)) from e
        finally:
            self.is_query_loading = False

        reply = ChatMessage.model(result.text, result.grounding_chunks)
        self.history.append(reply)
        return reply
