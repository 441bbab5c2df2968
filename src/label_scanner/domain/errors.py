"""Domain errors raised by scan services."""


class ScanError(Exception):
    """Base class for errors reported back to a client as a short message."""

    client_message = "Scan failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.client_message)
        self.detail = detail


class InvalidImageError(ScanError):
    """Raised when the submitted image payload cannot be decoded."""

    client_message = "Invalid image format"


class AnalysisError(ScanError):
    """Raised when the analyzer cannot produce plausible nutrient values."""

    client_message = "Failed to process image"


class ScanNotFoundError(ScanError):
    """Raised when a confirm references no pending scan."""

    client_message = "Image data not found"


class PersistenceError(ScanError):
    """Raised when the repository rejects a write or read."""

    client_message = "Failed to save results"

    def __init__(self, client_message: str, detail: str | None = None) -> None:
        super().__init__(detail)
        self.client_message = client_message
