# tests/test_documents.py
"""Tests for the manage-files view."""

from fakes import make_file
from ragstore_chat.core.documents import DocumentManager
from ragstore_chat.core.models import CustomMetadata, Document, RagStore
from ragstore_chat.exceptions import DeleteError, DocumentListError, UploadError

STORE = RagStore(id="store/7", display_name="Washer")
DOC_A = Document(id="store/7/documents/a", display_name="a.pdf")
DOC_B = Document(id="store/7/documents/b", display_name="b.pdf")


async def test_open_fetches_documents(gateway):
    gateway.documents["store/7"] = [DOC_A, DOC_B]
    manager = DocumentManager(gateway)

    assert await manager.open(STORE) is True

    assert manager.is_open
    assert manager.documents == [DOC_A, DOC_B]
    assert manager.is_loading is False


async def test_open_failure_closes_view(gateway):
    gateway.fail["list_documents"] = DocumentListError("Failed to list documents")
    manager = DocumentManager(gateway)

    assert await manager.open(STORE) is False

    assert not manager.is_open
    assert manager.documents == []


async def test_add_uploads_then_refetches(gateway):
    manager = DocumentManager(gateway)
    await manager.open(STORE)
    metadata = [CustomMetadata(key="model", value="WM2077CW")]

    assert await manager.add(make_file("manual.pdf"), metadata) is True

    assert [d.display_name for d in manager.documents] == ["manual.pdf"]
    assert manager.documents[0].custom_metadata == metadata
    assert gateway.calls[-1] == ("list_documents", "store/7")
    assert manager.processing_file is None


async def test_add_failure_keeps_view_open(gateway):
    gateway.documents["store/7"] = [DOC_A]
    manager = DocumentManager(gateway)
    await manager.open(STORE)
    gateway.fail["upload"] = UploadError("Failed to upload manual.pdf")

    assert await manager.add(make_file("manual.pdf")) is False

    assert manager.is_open
    assert manager.documents == [DOC_A]
    assert manager.processing_file is None


async def test_add_without_open_view_does_nothing(gateway):
    manager = DocumentManager(gateway)

    assert await manager.add(make_file("manual.pdf")) is False
    assert gateway.calls == []


async def test_delete_is_optimistic(gateway):
    gateway.documents["store/7"] = [DOC_A, DOC_B]
    manager = DocumentManager(gateway)
    await manager.open(STORE)

    assert await manager.delete(DOC_A.id) is True

    assert manager.documents == [DOC_B]


async def test_delete_failure_restores_document(gateway):
    gateway.documents["store/7"] = [DOC_A, DOC_B]
    manager = DocumentManager(gateway)
    await manager.open(STORE)
    gateway.fail["delete_document"] = DeleteError("Failed to delete")

    assert await manager.delete(DOC_A.id) is False

    assert manager.documents == [DOC_A, DOC_B]


async def test_close_discards_documents(gateway):
    gateway.documents["store/7"] = [DOC_A]
    manager = DocumentManager(gateway)
    await manager.open(STORE)

    manager.close()

    assert not manager.is_open
    assert manager.documents == []
