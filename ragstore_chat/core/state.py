# ragstore_chat/core/state.py
"""
Session states and transitions.

Each state is its own frozen dataclass carrying only the data that exists
in that state. Transitions are pure functions: they take the current state
and return the next one, raising ``InvalidTransitionError`` when the event
is not allowed from the current state.

    Initializing -> Welcome <-> Uploading
                    Welcome <-> Chatting
    any state    -> Failed  -> Welcome
"""

# imports built-in modules
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

# imports local modules
from ragstore_chat.core.models import RagStore, UploadProgress
from ragstore_chat.exceptions import InvalidTransitionError, SessionError

CREATING_MESSAGE = "Creating document index..."
EMBEDDING_MESSAGE = "Generating embeddings..."
REGISTERED_MESSAGE = "Registered! updating library..."


class AppStatus(str, Enum):
    INITIALIZING = "initializing"
    WELCOME = "welcome"
    UPLOADING = "uploading"
    CHATTING = "chatting"
    ERROR = "error"


@dataclass(frozen=True)
class Initializing:
    status = AppStatus.INITIALIZING


@dataclass(frozen=True)
class Welcome:
    status = AppStatus.WELCOME


@dataclass(frozen=True)
class Uploading:
    progress: UploadProgress
    status = AppStatus.UPLOADING


@dataclass(frozen=True)
class Chatting:
    store: RagStore
    example_questions: Tuple[str, ...] = field(default_factory=tuple)
    status = AppStatus.CHATTING


@dataclass(frozen=True)
class Failed:
    message: str
    status = AppStatus.ERROR


State = Union[Initializing, Welcome, Uploading, Chatting, Failed]


def _require(state: State, expected: type, action: str) -> None:
    if not isinstance(state, expected):
        raise InvalidTransitionError(action, state.status.value)


def library_loaded(state: State) -> State:
    """First library load finished, successfully or not."""
    if isinstance(state, Initializing):
        return Welcome()
    return state


def begin_upload(state: State, file_count: int) -> Uploading:
    _require(state, Welcome, "create a document store")
    if file_count < 1:
        raise SessionError("Cannot create a document store without files")
    return Uploading(
        progress=UploadProgress(current=0, total=file_count + 2, message=CREATING_MESSAGE)
    )


def advance_upload(
    state: State,
    current: int,
    message: str,
    file_name: Optional[str] = None,
) -> Uploading:
    """Move the progress of a running upload forward.

    ``current`` may never go backwards within one run.
    """
    _require(state, Uploading, "report upload progress")
    progress = state.progress
    if current < progress.current:
        raise SessionError(
            f"Upload progress cannot go backwards ({progress.current} -> {current})"
        )
    if current > progress.total:
        raise SessionError(f"Upload progress {current} exceeds total {progress.total}")
    return replace(
        state,
        progress=replace(progress, current=current, message=message, file_name=file_name),
    )


def finish_upload(state: State) -> Welcome:
    _require(state, Uploading, "finish an upload")
    return Welcome()


def abort_upload(state: State) -> Welcome:
    _require(state, Uploading, "abort an upload")
    return Welcome()


def enter_chat(state: State, store: RagStore, example_questions: List[str]) -> Chatting:
    _require(state, Welcome, "open a chat")
    return Chatting(store=store, example_questions=tuple(example_questions))


def end_chat(state: State) -> Welcome:
    _require(state, Chatting, "end a chat")
    return Welcome()


def fail(state: State, message: str) -> Failed:
    """Any state may fail."""
    return Failed(message=message)


def recover(state: State) -> Welcome:
    _require(state, Failed, "try again")
    return Welcome()
