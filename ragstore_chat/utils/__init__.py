# ragstore_chat/utils/__init__.py
"""
Utilities package.

Contains logging, formatting, and other utility functions.
"""

from ragstore_chat.utils.formatters import (
    format_answer_with_citations,
    format_progress,
    parse_metadata,
)
from ragstore_chat.utils.logger import (
    get_app_logger,
    get_gateway_logger,
    get_session_logger,
    resolve_level,
    setup_logger,
)

__all__ = [
    "format_answer_with_citations",
    "format_progress",
    "parse_metadata",
    "setup_logger",
    "get_app_logger",
    "get_gateway_logger",
    "get_session_logger",
    "resolve_level",
]
