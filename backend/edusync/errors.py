"""Error taxonomy shared by the upload pipeline and the repositories.

Upload errors carry the HTTP status they surface as and a stable category
name (`error_type`) that is echoed to clients as `errorType`. Provider
details (status code, provider error code) stay on the exception for
server-side logging.
"""

from typing import Optional


class UploadError(Exception):
    """Base class for every failure of the upload pipeline."""
    status_code = 500

    @property
    def error_type(self) -> str:
        return type(self).__name__


class EmptyPayload(UploadError):
    status_code = 400

    def __init__(self, message: str = "No file uploaded or file is empty."):
        super().__init__(message)


class PayloadTooLarge(UploadError):
    status_code = 400

    def __init__(self, size: int, max_size: int):
        super().__init__(f"File size exceeds maximum limit of {max_size // (1024 * 1024)}MB.")
        self.size = size
        self.max_size = max_size


class MisconfiguredStore(UploadError):
    """Object store credentials or container name are missing.

    Raised while building the gateway; the application refuses to start.
    """
    status_code = 503


class StoreError(UploadError):
    """A failure talking to the object store."""
    status_code = 500


class StoreRequestFailed(StoreError):
    """The provider answered and rejected the request (auth, quota, not found)."""

    def __init__(self, message: str, provider_status: Optional[int] = None, provider_error_code: Optional[str] = None):
        super().__init__(message)
        self.provider_status = provider_status
        self.provider_error_code = provider_error_code

    def __str__(self):
        base = super().__str__()
        return f"{base} (status={self.provider_status}, code={self.provider_error_code})"


class StoreUnavailable(StoreError):
    """Transport level failure (timeout, DNS, connection reset)."""


class UploadVerificationFailed(StoreError):
    """The store acknowledged a write but the object is not there."""


class DuplicateRecord(Exception):
    """An insert used an identifier that already exists."""


class ConcurrencyConflict(Exception):
    """An update touched a row that changed underneath it but still exists."""
