# tests/test_session.py
"""Tests for session controller actions other than store creation."""

import pytest

from fakes import make_file
from ragstore_chat.core.models import ChatMessage, Document, QueryResult, RagStore
from ragstore_chat.core.session import STORE_DELETE_FAILED
from ragstore_chat.core.state import AppStatus
from ragstore_chat.exceptions import (
    DeleteError,
    InvalidTransitionError,
    NoPendingConfirmationError,
    QueryError,
    StoreListError,
)

STORE_7 = RagStore(id="store/7", display_name="Washer manual")


async def test_start_loads_library_then_welcome(controller, gateway):
    gateway.stores = [STORE_7]
    assert controller.status == AppStatus.INITIALIZING

    await controller.start()

    assert controller.status == AppStatus.WELCOME
    assert controller.library.stores == [STORE_7]
    assert gateway.initialized_with == ["test_api_key"]


async def test_start_reaches_welcome_when_library_fails(controller, gateway):
    gateway.fail["list_stores"] = StoreListError("Failed to list RAG stores")

    await controller.start()

    assert controller.status == AppStatus.WELCOME
    assert controller.library.error is not None


async def test_start_without_credential_skips_library(controller, gateway, provider):
    provider.api_key = None

    await controller.start()

    assert controller.status == AppStatus.WELCOME
    assert ("list_stores",) not in gateway.calls


async def test_focus_loads_library_once_key_appears(controller, gateway, provider):
    provider.api_key = None
    await controller.start()
    gateway.stores = [STORE_7]

    provider.api_key = "new-key"
    assert await controller.check_credentials() is True

    assert controller.library.stores == [STORE_7]
    assert gateway.initialized_with == ["new-key"]


async def test_request_credential_uses_picked_key(controller, gateway, provider):
    provider.api_key = None
    await controller.start()
    provider.picked_key = "picked"

    assert await controller.request_credential() is True

    assert provider.picker_calls == 1
    assert controller.credential_error is None
    assert gateway.initialized_with == ["picked"]


async def test_select_existing_store_end_to_end(welcome_controller, gateway):
    gateway.questions = ["How do I reset it?", "What is the warranty?"]

    await welcome_controller.select_store(RagStore(id="store/7", display_name="Washer"))

    assert welcome_controller.status == AppStatus.CHATTING
    assert welcome_controller.active_store.id == "store/7"
    assert len(welcome_controller.example_questions) == 2
    assert welcome_controller.messages == []


async def test_select_store_with_no_questions_still_chats(welcome_controller, gateway):
    gateway.questions = []

    await welcome_controller.select_store(STORE_7)

    assert welcome_controller.status == AppStatus.CHATTING
    assert welcome_controller.example_questions == []


async def test_select_store_only_from_welcome(controller):
    with pytest.raises(InvalidTransitionError):
        await controller.select_store(STORE_7)


async def test_send_without_active_store_is_noop(welcome_controller, gateway):
    assert await welcome_controller.send_message("hello") is None
    assert welcome_controller.messages == []
    assert not any(c[0] == "query" for c in gateway.calls)


async def test_send_appends_user_and_model_turns(welcome_controller, gateway, citation):
    gateway.answer = QueryResult(text="Hold reset.", grounding_chunks=[citation])
    await welcome_controller.select_store(STORE_7)

    reply = await welcome_controller.send_message("How do I reset it?")

    assert [m.role for m in welcome_controller.messages] == ["user", "model"]
    assert welcome_controller.messages[0] == ChatMessage.user("How do I reset it?")
    assert reply.grounding_chunks == [citation]
    assert welcome_controller.chat.is_query_loading is False


async def test_failed_send_appends_apology_and_keeps_chatting(welcome_controller, gateway):
    gateway.fail["query"] = QueryError("Grounded query failed", "500")
    await welcome_controller.select_store(STORE_7)

    await welcome_controller.send_message("anything?")

    assert len(welcome_controller.messages) == 2
    assert welcome_controller.messages[1].role == "model"
    assert welcome_controller.messages[1].text.startswith("Sorry")
    assert "Failed to get response" in welcome_controller.alert
    assert welcome_controller.status == AppStatus.CHATTING
    assert welcome_controller.chat.is_query_loading is False


async def test_end_chat_resets_and_refreshes(welcome_controller, gateway):
    await welcome_controller.select_store(STORE_7)
    await welcome_controller.send_message("hi")
    gateway.stores = [STORE_7]

    await welcome_controller.end_chat()

    assert welcome_controller.status == AppStatus.WELCOME
    assert welcome_controller.active_store is None
    assert welcome_controller.messages == []
    assert welcome_controller.example_questions == []
    assert len(welcome_controller.staging) == 0
    assert welcome_controller.library.stores == [STORE_7]
    assert gateway.calls[-1] == ("list_stores",)


async def test_history_cleared_when_chat_fails_out(welcome_controller):
    await welcome_controller.select_store(STORE_7)
    await welcome_controller.send_message("hi")

    await welcome_controller._fail("Unexpected", None)

    assert welcome_controller.status == AppStatus.ERROR
    assert welcome_controller.messages == []


async def test_delete_store_requires_confirmation(welcome_controller, gateway):
    gateway.stores = [STORE_7]
    await welcome_controller.refresh_library()

    request = welcome_controller.request_delete_store(STORE_7)

    assert request.title == "Delete Document Set?"
    assert '"Washer manual"' in request.message
    assert STORE_7.id in welcome_controller.library
    assert not any(c[0] == "delete_store" for c in gateway.calls)


async def test_cancel_confirmation_keeps_store(welcome_controller, gateway):
    gateway.stores = [STORE_7]
    await welcome_controller.refresh_library()
    welcome_controller.request_delete_store(STORE_7)

    welcome_controller.cancel_confirmation()

    assert welcome_controller.pending_confirmation is None
    with pytest.raises(NoPendingConfirmationError):
        await welcome_controller.confirm()


async def test_confirmed_store_delete_refreshes(welcome_controller, gateway):
    other = RagStore(id="store/8", display_name="Car manual")
    gateway.stores = [STORE_7, other]
    await welcome_controller.refresh_library()
    welcome_controller.request_delete_store(STORE_7)

    assert await welcome_controller.confirm() is True

    assert ("delete_store", "store/7", True) in gateway.calls
    assert welcome_controller.library.stores == [other]
    assert gateway.calls[-1] == ("list_stores",)


async def test_failed_store_delete_is_not_rolled_back(welcome_controller, gateway):
    gateway.stores = [STORE_7]
    await welcome_controller.refresh_library()
    gateway.fail["delete_store"] = DeleteError("Failed to delete store/7")
    welcome_controller.request_delete_store(STORE_7)

    assert await welcome_controller.confirm() is False

    # Current behavior: the entry stays gone until the next refresh
    assert STORE_7.id not in welcome_controller.library
    assert welcome_controller.alert == STORE_DELETE_FAILED

    await welcome_controller.refresh_library()
    assert STORE_7.id in welcome_controller.library


async def test_failed_document_delete_is_rolled_back(welcome_controller, gateway):
    doc = Document(id="store/7/documents/a", display_name="a.pdf")
    gateway.documents["store/7"] = [doc]
    await welcome_controller.open_documents(STORE_7)
    gateway.fail["delete_document"] = DeleteError("Failed to delete")

    request = welcome_controller.request_delete_document(doc)
    assert request.title == "Delete File?"
    assert await welcome_controller.confirm() is False

    assert welcome_controller.documents.documents == [doc]
    assert welcome_controller.alert is None


async def test_document_delete_requires_open_view(welcome_controller):
    doc = Document(id="store/7/documents/a", display_name="a.pdf")
    with pytest.raises(InvalidTransitionError):
        welcome_controller.request_delete_document(doc)


async def test_add_document_rejects_unsupported_type(welcome_controller, gateway):
    await welcome_controller.open_documents(STORE_7)

    assert await welcome_controller.add_document(make_file("photo.png")) is False

    assert "Unsupported file type" in welcome_controller.staging_error
    assert not any(c[0] == "upload" for c in gateway.calls)


async def test_stage_and_unstage(welcome_controller):
    assert welcome_controller.stage_file(make_file("a.pdf"))
    assert welcome_controller.stage_file(make_file("b.txt"))
    assert not welcome_controller.stage_file(make_file("c.docx"))

    removed = welcome_controller.unstage(0)

    assert removed.name == "a.pdf"
    assert [f.name for f in welcome_controller.staging] == ["b.txt"]
    assert "c.docx" in welcome_controller.staging_error


async def test_staging_unavailable_while_chatting(welcome_controller):
    await welcome_controller.select_store(STORE_7)
    with pytest.raises(InvalidTransitionError):
        welcome_controller.stage_file(make_file("a.pdf"))


async def test_end_chat_clears_query_alert(welcome_controller, gateway):
    gateway.fail["query"] = QueryError("Grounded query failed", "boom")
    await welcome_controller.select_store(STORE_7)
    await welcome_controller.send_message("anything?")
    assert welcome_controller.alert is not None

    await welcome_controller.end_chat()

    assert welcome_controller.status == AppStatus.WELCOME
    assert welcome_controller.alert is None


async def test_opening_a_chat_clears_old_alert(welcome_controller):
    welcome_controller.alert = STORE_DELETE_FAILED

    await welcome_controller.select_store(STORE_7)

    assert welcome_controller.alert is None


async def test_stage_missing_path_sets_error(welcome_controller, tmp_path):
    missing = tmp_path / "gone.pdf"

    assert welcome_controller.stage_path(str(missing)) is False

    assert "gone.pdf" in welcome_controller.staging_error
    assert len(welcome_controller.staging) == 0


async def test_unstage_stale_index_is_ignored(welcome_controller):
    welcome_controller.stage_file(make_file("a.pdf"))

    assert welcome_controller.unstage(3) is None
    assert [f.name for f in welcome_controller.staging] == ["a.pdf"]
