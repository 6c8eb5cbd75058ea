# ragstore_chat/exceptions.py
"""
Custom exception classes for the application.

Provides structured error handling with specific exception types
for different error scenarios.
"""


class RAGAppError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


# Gateway Exceptions
class GatewayError(RAGAppError):
    """Base exception for Gemini File Search errors."""

    pass


class StoreCreateError(GatewayError):
    """Creating a document store failed."""

    pass


class StoreListError(GatewayError):
    """Listing document stores failed."""

    pass


class DocumentListError(GatewayError):
    """Listing the documents of a store failed."""

    pass


class UploadError(GatewayError):
    """Uploading a file into a store failed."""

    pass


class OperationFailedError(UploadError):
    """A long-running operation finished with an error."""

    def __init__(self, operation_name: str, error: object):
        super().__init__(f"Operation {operation_name} failed", str(error))


class DeleteError(GatewayError):
    """Deleting a store or a document failed."""

    pass


class QueryError(GatewayError):
    """Grounded query failed."""

    pass


# Credential Exceptions
class CredentialError(RAGAppError):
    """Base exception for API key problems."""

    pass


class CredentialMissingError(CredentialError):
    """No API key is available to build a client."""

    def __init__(self):
        super().__init__(
            "Gemini AI client not initialized. Please wait for the API key to load."
        )


class InvalidCredentialError(CredentialError):
    """The remote service rejected the API key."""

    pass


class PickerUnavailableError(CredentialError):
    """The host offers no way to pick an API key."""

    pass


# Staging Exceptions
class StagingError(RAGAppError):
    """Base exception for local file staging errors."""

    pass


class UnsupportedFileTypeError(StagingError):
    """File extension not accepted for staging."""

    def __init__(self, file_name: str):
        super().__init__(f"Unsupported file type: {file_name}")


class FileTooLargeError(StagingError):
    """File exceeds the configured size limit."""

    def __init__(self, file_name: str, max_size_mb: int):
        super().__init__(f"File too large: {file_name}", f"limit is {max_size_mb} MB")


class EmptyStagingError(StagingError):
    """No files are staged."""

    def __init__(self):
        super().__init__("No files selected")


# Session Exceptions
class SessionError(RAGAppError):
    """Base exception for session state machine errors."""

    pass


class InvalidTransitionError(SessionError):
    """Action not allowed in the current state."""

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} while {status}")


class NoActiveStoreError(SessionError):
    """Operation requires an active store."""

    def __init__(self):
        super().__init__("No active document store")


class NoPendingConfirmationError(SessionError):
    """Confirm or cancel called with nothing pending."""

    def __init__(self):
        super().__init__("No pending confirmation")
