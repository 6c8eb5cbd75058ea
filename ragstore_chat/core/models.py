# ragstore_chat/core/models.py
"""
Data model shared by the session core.

Plain dataclasses for stores, documents, chat turns, upload progress,
staged files and confirmation requests. None of these are persisted.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

Role = Literal["user", "model"]
TargetKind = Literal["store", "document"]


@dataclass(frozen=True)
class RagStore:
    """A remote document store.

    ``id`` is the opaque resource name (``fileSearchStores/...``) and is the
    primary key. ``display_name`` is not unique.
    """

    id: str
    display_name: str


@dataclass(frozen=True)
class CustomMetadata:
    key: str
    value: str


@dataclass(frozen=True)
class Document:
    """One ingested file inside a store."""

    id: str
    display_name: str
    custom_metadata: List[CustomMetadata] = field(default_factory=list)


@dataclass(frozen=True)
class Citation:
    """A grounding chunk returned alongside an answer."""

    title: Optional[str] = None
    uri: Optional[str] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class QueryResult:
    text: str
    grounding_chunks: List[Citation] = field(default_factory=list)


@dataclass(frozen=True)
class ChatMessage:
    """A single transcript turn."""

    role: Role
    parts: List[str]
    grounding_chunks: List[Citation] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.parts)

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        return cls(role="user", parts=[text])

    @classmethod
    def model(
        cls, text: str, grounding_chunks: Optional[List[Citation]] = None
    ) -> "ChatMessage":
        return cls(role="model", parts=[text], grounding_chunks=grounding_chunks or [])


@dataclass(frozen=True)
class UploadProgress:
    """Progress of one create-store run.

    ``total`` is the number of staged files plus two: one step for creating
    the store and one for registering it in the library.
    """

    current: int
    total: int
    message: str
    file_name: Optional[str] = None

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.current / self.total)


@dataclass(frozen=True)
class StagedFile:
    """A local file waiting to be uploaded."""

    name: str
    path: str
    size: int = 0
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class ConfirmationRequest:
    """Gates one destructive action."""

    target_kind: TargetKind
    target_id: str
    display_name: str

    @property
    def title(self) -> str:
        if self.target_kind == "store":
            return "Delete Document Set?"
        return "Delete File?"

    @property
    def message(self) -> str:
        return (
            f'Are you sure you want to delete "{self.display_name}"? '
            "This action cannot be undone."
        )


@dataclass
class CredentialState:
    selected: bool = False
    error: Optional[str] = None
