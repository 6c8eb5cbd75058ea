# ragstore_chat/core/__init__.py
"""
Core business logic package.

Contains the session controller, the Gemini File Search gateway, the
library cache, the chat driver and the manage-files view.
"""

from ragstore_chat.core.chat import ChatDriver
from ragstore_chat.core.credentials import CredentialGate, EnvCredentialProvider
from ragstore_chat.core.documents import DocumentManager
from ragstore_chat.core.gateway import StoreGateway
from ragstore_chat.core.library import LibraryCache
from ragstore_chat.core.session import SessionController
from ragstore_chat.core.staging import StagingSet
from ragstore_chat.core.state import AppStatus

__all__ = [
    "AppStatus",
    "ChatDriver",
    "CredentialGate",
    "DocumentManager",
    "EnvCredentialProvider",
    "LibraryCache",
    "SessionController",
    "StagingSet",
    "StoreGateway",
]
