class HookdropError(Exception):
    """Base exception for all hookdrop errors."""


class UploadError(HookdropError):
    """Exception raised when an upload fails"""


class TransientIOError(UploadError):
    """Raised on network failures and 5xx responses. Safe to retry."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class IntegrityMissingError(UploadError):
    """Raised when the storage response carries no ETag for an uploaded part."""


class PartRejectedError(UploadError):
    """Raised when storage refuses a part with a non-retryable 4xx response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthorizationError(UploadError):
    """Raised when no upload URL could be obtained for a part."""


class AuthorizationExpiredError(AuthorizationError):
    """Raised when storage rejects a presigned URL as expired or forbidden."""


class SessionFinalizeError(UploadError):
    """Raised when an upload session could not be completed."""


class SessionStateError(UploadError):
    """Raised on an invalid upload session state transition."""


class StoreError(HookdropError):
    """Base exception for metadata store errors."""


class RecordNotFoundError(StoreError):
    """Raised when a record to update does not exist."""

    def __init__(self, key: dict[str, str]):
        super().__init__(f"Record not found: {key}")
        self.key = key


class NotificationError(HookdropError):
    """Raised when a webhook notification could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
