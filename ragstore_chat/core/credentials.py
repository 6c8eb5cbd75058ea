# ragstore_chat/core/credentials.py
"""
Credential gate.

Tracks whether a usable Gemini API key is currently selected. The host
environment is re-queried on every focus or visibility event; a host that
offers no credential capability simply reports "no credential".
"""

# imports built-in modules
import os
from typing import Awaitable, Callable, Optional, Protocol

# imports local modules
from ragstore_chat.core.models import CredentialState
from ragstore_chat.exceptions import PickerUnavailableError
from ragstore_chat.utils.logger import get_session_logger

logger = get_session_logger()

PICKER_UNAVAILABLE = "API key selection is not available in this environment."
PICKER_FAILED = "Failed to open API key selection."


class CredentialProvider(Protocol):
    """Host capability that knows about the selected API key."""

    async def has_selected_credential(self) -> bool: ...

    async def open_credential_picker(self) -> None: ...

    def get_api_key(self) -> Optional[str]: ...


class EnvCredentialProvider:
    """Credential provider backed by an in-memory key and the environment.

    Parameters
    ----------
    env_var : str
        Environment variable consulted when no key was set explicitly.
    picker : Optional[Callable[[], Awaitable[Optional[str]]]]
        Coroutine function asking the user for a key. When omitted the
        provider has no picker and :meth:`open_credential_picker` raises
        :class:`~ragstore_chat.exceptions.PickerUnavailableError`.
    """

    def __init__(
        self,
        env_var: str = "GOOGLE_API_KEY",
        picker: Optional[Callable[[], Awaitable[Optional[str]]]] = None,
    ):
        self.env_var = env_var
        self.picker = picker
        self._api_key: Optional[str] = None

    def set_api_key(self, api_key: Optional[str]) -> None:
        self._api_key = (api_key or "").strip() or None

    def get_api_key(self) -> Optional[str]:
        return self._api_key or os.getenv(self.env_var) or None

    async def has_selected_credential(self) -> bool:
        return self.get_api_key() is not None

    async def open_credential_picker(self) -> None:
        if self.picker is None:
            raise PickerUnavailableError(PICKER_UNAVAILABLE)
        api_key = await self.picker()
        if api_key:
            self.set_api_key(api_key)


class CredentialGate:
    """Gate that enables downstream store initialization.

    ``state.selected`` is re-derived from the provider on each :meth:`check`
    and never persisted.
    """

    def __init__(self, provider: Optional[CredentialProvider] = None):
        self.provider = provider
        self.state = CredentialState()

    def is_selected(self) -> bool:
        return self.state.selected

    @property
    def api_key(self) -> Optional[str]:
        if self.provider is None or not hasattr(self.provider, "get_api_key"):
            return None
        return self.provider.get_api_key()

    async def check(self) -> bool:
        """Re-query the provider and update ``state.selected``."""
        has_selected = getattr(self.provider, "has_selected_credential", None)
        if has_selected is None:
            self.state.selected = False
            return False
        try:
            self.state.selected = bool(await has_selected())
        except Exception as e:
            logger.error(f"Error checking for API key: {e}")
            self.state.selected = False
        return self.state.selected

    async def on_focus(self) -> bool:
        return await self.check()

    async def on_visibility_change(self, visible: bool) -> bool:
        if not visible:
            return self.state.selected
        return await self.check()

    def mark_invalid(self, message: str) -> None:
        """Record a key rejected by the remote service."""
        self.state.selected = False
        self.state.error = message

    async def request_selection(self) -> bool:
        """Open the host picker, then re-run the presence check once.

        Returns
        -------
        bool
            Whether a credential is selected afterwards.
        """
        open_picker = getattr(self.provider, "open_credential_picker", None)
        if open_picker is None:
            logger.info("open_credential_picker() not available.")
            self.state.error = PICKER_UNAVAILABLE
            return False

        try:
            await open_picker()
        except PickerUnavailableError:
            logger.info("open_credential_picker() not available.")
            self.state.error = PICKER_UNAVAILABLE
        except Exception as e:
            logger.error(f"Failed to open API key selection dialog: {e}")
            self.state.error = PICKER_FAILED
        else:
            self.state.error = None

        return await self.check()
