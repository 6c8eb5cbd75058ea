# ragstore_chat/utils/formatters.py
"""
Response formatting utilities.

Contains functions for rendering answers with their grounding citations,
upload progress and document metadata as Markdown text.
"""

from typing import List, Optional

from ragstore_chat.core.models import ChatMessage, CustomMetadata, UploadProgress

SNIPPET_LENGTH = 160
PROGRESS_BAR_WIDTH = 20


def _snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    text = " ".join(text.split())
    if len(text) > length:
        return text[:length].rstrip() + "..."
    return text


def format_answer_with_citations(message: ChatMessage) -> str:
    """Format a model turn with a numbered sources section.

    Parameters
    ----------
    message : ChatMessage
        A model turn carrying optional grounding chunks.

    Returns
    -------
    str
        The answer text followed by a **Sources:** section listing each
        grounding chunk's title (linked when a URI is known) and a short
        excerpt of the supporting text.
    """
    answer_text = message.text

    citations = []
    if message.grounding_chunks:
        citations.append("\n\n**Sources:**")
        for i, chunk in enumerate(message.grounding_chunks):
            citation_text = f"{i + 1}. "
            title = chunk.title or "Source Document"
            if chunk.uri:
                citation_text += f"[{title}]({chunk.uri})"
            else:
                citation_text += title

            if chunk.text:
                citation_text += f" - _{_snippet(chunk.text)}_"

            citations.append(citation_text)

    return answer_text + "\n".join(citations)


def format_progress(progress: Optional[UploadProgress]) -> str:
    """Render upload progress as a text bar with its message."""
    if progress is None:
        return "Preparing..."
    filled = round(progress.fraction * PROGRESS_BAR_WIDTH)
    bar = "█" * filled + "░" * (PROGRESS_BAR_WIDTH - filled)
    lines = [
        f"**{progress.message or 'Preparing...'}**",
        f"`{bar}` {progress.current}/{progress.total}",
    ]
    if progress.file_name:
        lines.append(f"📄 {progress.file_name}")
    return "\n".join(lines)


def parse_metadata(text: Optional[str]) -> List[CustomMetadata]:
    """Parse ``key=value`` pairs separated by ``;`` or new lines.

    Entries without ``=`` or with an empty key are skipped; order is kept.
    """
    metadata = []
    if not text:
        return metadata
    for entry in text.replace("\n", ";").split(";"):
        key, sep, value = entry.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        metadata.append(CustomMetadata(key=key, value=value.strip()))
    return metadata
