# app.py
"""
Chainlit front end for chatting with Gemini File Search document stores.

Users select a Gemini API key, stage local PDF, text or Markdown files (or
fetch a sample manual), turn them into a persistent document store, and
then chat with answers grounded in that store. Existing stores can be
reopened, managed (add or delete files) or deleted.

This module is only a presentation shell: every user action is forwarded
to a :class:`~ragstore_chat.core.session.SessionController` kept in the
Chainlit user session, and the controller's state is re-rendered after
each action.
"""

# imports built-in modules
import functools
from typing import Any, List, Optional

# imports third-party modules
import chainlit as cl
import httpx

# imports local modules
from ragstore_chat.config import config
from ragstore_chat.core import (
    AppStatus,
    CredentialGate,
    EnvCredentialProvider,
    SessionController,
    StoreGateway,
)
from ragstore_chat.core.models import Document, RagStore, StagedFile
from ragstore_chat.core.staging import SAMPLE_DOCUMENTS, fetch_sample, guess_mime_type
from ragstore_chat.core.state import State, Uploading
from ragstore_chat.exceptions import SessionError
from ragstore_chat.utils import (
    format_answer_with_citations,
    format_progress,
    get_app_logger,
    parse_metadata,
)

# Application logger
logger = get_app_logger()

config.validate_or_exit()

ACCEPTED_FILES = {
    "application/pdf": [".pdf"],
    "text/plain": [".txt"],
    "text/markdown": [".md"],
}

STALE_ACTION = "That action is no longer available. The screen has been refreshed."


def _controller() -> SessionController:
    return cl.user_session.get("controller")


async def ask_for_api_key() -> Optional[str]:
    """Ask the user to paste a Gemini API key."""
    res = await cl.AskUserMessage(
        content="🔑 Paste your Gemini API key:", timeout=config.UPLOAD_TIMEOUT
    ).send()
    if not res:
        return None
    return res.get("output")


async def _clear_screen() -> None:
    """Remove the messages of the previous screen to avoid stacking."""
    old_msgs = cl.user_session.get("screen_messages") or []
    for msg in old_msgs:
        await msg.remove()
    cl.user_session.set("screen_messages", [])


async def _show(content: str, actions: Optional[List[cl.Action]] = None) -> cl.Message:
    msg = cl.Message(content=content, actions=actions or [])
    await msg.send()
    screen_msgs = cl.user_session.get("screen_messages") or []
    screen_msgs.append(msg)
    cl.user_session.set("screen_messages", screen_msgs)
    return msg


async def on_state_change(state: State) -> None:
    """Keep a single progress message up to date while uploading."""
    progress_msg: Optional[cl.Message] = cl.user_session.get("progress_msg")
    if isinstance(state, Uploading):
        if progress_msg is None:
            progress_msg = cl.Message(content=format_progress(state.progress))
            await progress_msg.send()
            cl.user_session.set("progress_msg", progress_msg)
        else:
            progress_msg.content = format_progress(state.progress)
            await progress_msg.update()
    elif progress_msg is not None:
        await progress_msg.remove()
        cl.user_session.set("progress_msg", None)


async def show_welcome(controller: SessionController) -> None:
    if controller.gate.is_selected():
        header = "✓ API Key Selected"
        key_actions = []
    else:
        header = "🔑 Select a Gemini API Key to begin"
        key_actions = [cl.Action(name="select_key", payload={}, label="🔑 Select API Key")]
    if controller.credential_error:
        header += f"\n\n❌ {controller.credential_error}"

    await _show(
        "# Chat With Your Document\n"
        "Powered by **FileSearch**. Upload documents once, query anytime.\n\n"
        + header,
        actions=key_actions,
    )

    # Upload new
    staged = controller.staging.files
    lines = ["## Upload New", "Add your PDF, .txt, or .md files."]
    if staged:
        lines.append(f"\n**Selected Files ({len(staged)}):**")
        for file in staged:
            lines.append(f"- {file.name} ({file.size / 1024:.2f} KB)")
    if controller.staging_error:
        lines.append(f"\n❌ {controller.staging_error}")

    upload_actions = [cl.Action(name="add_files", payload={}, label="📎 Browse Files")]
    for sample in SAMPLE_DOCUMENTS:
        upload_actions.append(
            cl.Action(
                name="add_sample",
                payload={"file_name": sample.file_name},
                label=f"📘 {sample.name} ({sample.details})",
            )
        )
    for index, file in enumerate(staged):
        upload_actions.append(
            cl.Action(name="remove_file", payload={"index": index}, label=f"✖ {file.name}")
        )
    if staged:
        upload_actions.append(
            cl.Action(name="create_store", payload={}, label="🚀 Upload and Chat")
        )
    await _show("\n".join(lines), actions=upload_actions)

    # Library
    library = controller.library
    library_actions = [cl.Action(name="refresh_library", payload={}, label="🔄 Refresh")]
    if library.error:
        await _show(f"## Your Library\n❌ {library.error}", actions=library_actions)
    elif not library.stores:
        await _show("## Your Library\nNo document sets yet.", actions=library_actions)
    else:
        await _show("## Your Library", actions=library_actions)
        for store in library.stores:
            payload = {"store_id": store.id, "display_name": store.display_name}
            await _show(
                f"📚 **{store.display_name}**",
                actions=[
                    cl.Action(name="open_store", payload=payload, label="💬 Chat"),
                    cl.Action(name="manage_files", payload=payload, label="🗂️ Files"),
                    cl.Action(name="delete_store", payload=payload, label="🗑️ Delete"),
                ],
            )

    if controller.alert:
        await _show(f"❌ {controller.alert}")

    await show_documents(controller)
    await show_confirmation(controller)


async def show_documents(controller: SessionController) -> None:
    documents = controller.documents
    if not documents.is_open:
        return
    store = documents.store
    lines = [f"## Files in {store.display_name}"]
    if not documents.documents:
        lines.append("No files in this document set.")
    actions = [
        cl.Action(name="add_document", payload={}, label="➕ Add File"),
        cl.Action(name="close_documents", payload={}, label="✖ Close"),
    ]
    for doc in documents.documents:
        meta = ", ".join(f"{m.key}={m.value}" for m in doc.custom_metadata)
        lines.append(f"- {doc.display_name}" + (f" ({meta})" if meta else ""))
        actions.append(
            cl.Action(
                name="delete_document",
                payload={"document_id": doc.id, "display_name": doc.display_name},
                label=f"🗑️ {doc.display_name}",
            )
        )
    await _show("\n".join(lines), actions=actions)


async def show_confirmation(controller: SessionController) -> None:
    request = controller.pending_confirmation
    if request is None:
        return
    await _show(
        f"### {request.title}\n{request.message}",
        actions=[
            cl.Action(name="confirm_delete", payload={}, label="Delete"),
            cl.Action(name="cancel_delete", payload={}, label="Cancel"),
        ],
    )


async def show_chat(controller: SessionController) -> None:
    store = controller.active_store
    actions = [
        cl.Action(name="ask_question", payload={"question": question}, label=question)
        for question in controller.example_questions
    ]
    actions.append(cl.Action(name="end_chat", payload={}, label="📝 New Chat"))
    await _show(f"💬 Chatting with **{store.display_name}**", actions=actions)
    if controller.alert:
        await _show(f"❌ {controller.alert}")


async def show_error(controller: SessionController) -> None:
    await _show(
        f"# Application Error\n{controller.error}",
        actions=[cl.Action(name="try_again", payload={}, label="Try Again")],
    )


async def render(controller: SessionController) -> None:
    await _clear_screen()
    if controller.status == AppStatus.WELCOME:
        await show_welcome(controller)
    elif controller.status == AppStatus.CHATTING:
        await show_chat(controller)
    elif controller.status == AppStatus.ERROR:
        await show_error(controller)


async def _focus() -> SessionController:
    """Re-check the key on every interaction, like a window focus event."""
    controller = _controller()
    await controller.check_credentials()
    return controller


def _store_from(action: cl.Action) -> RagStore:
    return RagStore(
        id=action.payload["store_id"], display_name=action.payload["display_name"]
    )


async def _ask_files(content: str, max_files: int) -> List[StagedFile]:
    files = await cl.AskFileMessage(
        content=content,
        accept=ACCEPTED_FILES,
        max_size_mb=config.MAX_FILE_SIZE_MB,
        max_files=max_files,
        timeout=config.UPLOAD_TIMEOUT,
    ).send()
    return [
        StagedFile(
            name=file.name,
            path=file.path,
            size=file.size,
            mime_type=file.type or guess_mime_type(file.name),
        )
        for file in files or []
    ]


def screen_action(handler):
    """Re-render the current screen when an action no longer applies.

    Buttons from an earlier screen (or a double click) can trigger actions
    the session no longer accepts.
    """

    @functools.wraps(handler)
    async def wrapper(action: cl.Action):
        try:
            return await handler(action)
        except SessionError as e:
            logger.warning(f"Ignored stale action '{action.name}': {e}")
            await cl.Message(content=f"⚠️ {STALE_ACTION}").send()
            await render(_controller())

    return wrapper


@cl.on_chat_start
async def start():
    """Build the session controller and show the welcome screen."""
    provider = EnvCredentialProvider(picker=ask_for_api_key)
    controller = SessionController(StoreGateway(), CredentialGate(provider))
    controller.subscribe(on_state_change)
    cl.user_session.set("controller", controller)

    await controller.start()
    await render(controller)


@cl.action_callback("select_key")
@screen_action
async def on_select_key(action: cl.Action):
    controller = _controller()
    await controller.request_credential()
    await render(controller)


@cl.action_callback("add_files")
@screen_action
async def on_add_files(action: cl.Action):
    controller = await _focus()
    for file in await _ask_files("Select files to add", max_files=10):
        controller.stage_file(file)
    await render(controller)


@cl.action_callback("add_sample")
@screen_action
async def on_add_sample(action: cl.Action):
    controller = await _focus()
    file_name = action.payload.get("file_name")
    sample = next((s for s in SAMPLE_DOCUMENTS if s.file_name == file_name), None)
    if sample is None:
        return
    try:
        path = await fetch_sample(sample)
    except httpx.HTTPError as e:
        logger.error(f"Error fetching sample file: {e}")
        await cl.Message(
            content="❌ Could not fetch the sample document. Please try uploading a local file instead."
        ).send()
        return
    controller.stage_path(path, sample.file_name)
    await render(controller)


@cl.action_callback("remove_file")
@screen_action
async def on_remove_file(action: cl.Action):
    controller = await _focus()
    controller.unstage(int(action.payload["index"]))
    await render(controller)


@cl.action_callback("create_store")
@screen_action
async def on_create_store(action: cl.Action):
    controller = await _focus()
    await _clear_screen()
    await controller.create_store()
    await render(controller)


@cl.action_callback("refresh_library")
@screen_action
async def on_refresh_library(action: cl.Action):
    controller = await _focus()
    await controller.refresh_library()
    await render(controller)


@cl.action_callback("open_store")
@screen_action
async def on_open_store(action: cl.Action):
    controller = await _focus()
    await _clear_screen()
    loading = cl.Message(content="Loading existing session...")
    await loading.send()
    await controller.select_store(_store_from(action))
    await loading.remove()
    await render(controller)


@cl.action_callback("manage_files")
@screen_action
async def on_manage_files(action: cl.Action):
    controller = await _focus()
    await controller.open_documents(_store_from(action))
    await render(controller)


@cl.action_callback("add_document")
@screen_action
async def on_add_document(action: cl.Action):
    controller = await _focus()
    files = await _ask_files("Select a file to add to this document set", max_files=1)
    if not files:
        return
    res = await cl.AskUserMessage(
        content="Optional metadata as `key=value; key=value` (send `-` to skip):",
        timeout=config.UPLOAD_TIMEOUT,
    ).send()
    metadata = parse_metadata(res.get("output") if res else None)

    processing = cl.Message(content=f"Processing `{files[0].name}`...")
    await processing.send()
    await controller.add_document(files[0], metadata)
    await processing.remove()
    await render(controller)


@cl.action_callback("close_documents")
@screen_action
async def on_close_documents(action: cl.Action):
    controller = _controller()
    controller.close_documents()
    await render(controller)


@cl.action_callback("delete_store")
@screen_action
async def on_delete_store(action: cl.Action):
    controller = await _focus()
    controller.request_delete_store(_store_from(action))
    await render(controller)


@cl.action_callback("delete_document")
@screen_action
async def on_delete_document(action: cl.Action):
    controller = await _focus()
    controller.request_delete_document(
        Document(
            id=action.payload["document_id"],
            display_name=action.payload["display_name"],
        )
    )
    await render(controller)


@cl.action_callback("confirm_delete")
@screen_action
async def on_confirm_delete(action: cl.Action):
    controller = _controller()
    if controller.pending_confirmation is not None:
        await controller.confirm()
    await render(controller)


@cl.action_callback("cancel_delete")
@screen_action
async def on_cancel_delete(action: cl.Action):
    controller = _controller()
    controller.cancel_confirmation()
    await render(controller)


async def _answer(controller: SessionController, text: str) -> None:
    before = len(controller.messages)
    await controller.send_message(text)
    # The apology turn of a failed query is rendered like any answer
    for turn in controller.messages[before:]:
        if turn.role == "model":
            await cl.Message(content=format_answer_with_citations(turn)).send()
    if controller.alert:
        await cl.Message(content=f"❌ {controller.alert}").send()


@cl.action_callback("ask_question")
@screen_action
async def on_ask_question(action: cl.Action):
    controller = _controller()
    question: Any = action.payload.get("question")
    if question:
        await cl.Message(content=question, author="user").send()
        await _answer(controller, question)


@cl.action_callback("end_chat")
@screen_action
async def on_end_chat(action: cl.Action):
    controller = _controller()
    await controller.end_chat()
    await render(controller)


@cl.action_callback("try_again")
@screen_action
async def on_try_again(action: cl.Action):
    controller = _controller()
    await controller.try_again()
    await render(controller)


@cl.on_message
async def main(message: cl.Message):
    """Send chat messages to the active document store."""
    controller = _controller()
    if controller.status != AppStatus.CHATTING:
        await cl.Message(
            content="Open a document set from your library or upload files to start chatting."
        ).send()
        return
    await _answer(controller, message.content)


@cl.on_chat_end
async def on_chat_end():
    """Handle chat end."""
    logger.info("Chat session ended")
