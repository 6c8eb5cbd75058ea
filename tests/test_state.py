# tests/test_state.py
"""Tests for the pure state transition functions."""

import pytest

from ragstore_chat.core import state as transitions
from ragstore_chat.core.models import RagStore
from ragstore_chat.core.state import (
    AppStatus,
    Chatting,
    Failed,
    Initializing,
    Uploading,
    Welcome,
)
from ragstore_chat.exceptions import InvalidTransitionError, SessionError

STORE = RagStore(id="store/7", display_name="manual.pdf")


def test_initializing_leaves_once_library_loaded():
    assert transitions.library_loaded(Initializing()) == Welcome()


def test_library_loaded_keeps_other_states():
    chatting = Chatting(store=STORE)
    assert transitions.library_loaded(chatting) is chatting


def test_begin_upload_sets_total_to_files_plus_two():
    uploading = transitions.begin_upload(Welcome(), 3)
    assert uploading.status == AppStatus.UPLOADING
    assert uploading.progress.current == 0
    assert uploading.progress.total == 5
    assert uploading.progress.message == transitions.CREATING_MESSAGE


def test_begin_upload_requires_files():
    with pytest.raises(SessionError):
        transitions.begin_upload(Welcome(), 0)


def test_second_upload_cannot_start_while_uploading():
    uploading = transitions.begin_upload(Welcome(), 1)
    with pytest.raises(InvalidTransitionError):
        transitions.begin_upload(uploading, 1)


def test_advance_upload_rejects_going_backwards():
    uploading = transitions.advance_upload(
        transitions.begin_upload(Welcome(), 2), 2, transitions.EMBEDDING_MESSAGE
    )
    with pytest.raises(SessionError):
        transitions.advance_upload(uploading, 1, transitions.EMBEDDING_MESSAGE)


def test_advance_upload_rejects_overshooting_total():
    uploading = transitions.begin_upload(Welcome(), 1)
    with pytest.raises(SessionError):
        transitions.advance_upload(uploading, 4, transitions.REGISTERED_MESSAGE)


def test_advance_upload_updates_file_name():
    uploading = transitions.advance_upload(
        transitions.begin_upload(Welcome(), 2),
        1,
        transitions.EMBEDDING_MESSAGE,
        "(1/2) a.pdf",
    )
    assert isinstance(uploading, Uploading)
    assert uploading.progress.file_name == "(1/2) a.pdf"
    assert uploading.progress.total == 4


def test_chat_round_trip():
    chatting = transitions.enter_chat(Welcome(), STORE, ["q1", "q2"])
    assert chatting.example_questions == ("q1", "q2")
    assert transitions.end_chat(chatting) == Welcome()


def test_enter_chat_only_from_welcome():
    with pytest.raises(InvalidTransitionError):
        transitions.enter_chat(Initializing(), STORE, [])


@pytest.mark.parametrize(
    "state",
    [Initializing(), Welcome(), Chatting(store=STORE), Failed(message="x")],
)
def test_any_state_can_fail(state):
    failed = transitions.fail(state, "boom")
    assert failed.status == AppStatus.ERROR
    assert failed.message == "boom"


def test_recover_only_from_failed():
    assert transitions.recover(Failed(message="boom")) == Welcome()
    with pytest.raises(InvalidTransitionError):
        transitions.recover(Welcome())
