"""
Exception classes for the Treehole exporter.

Every failure in the client terminates the current operation and is
surfaced to the caller with enough information to show a user message.
"""


class TreeholeError(Exception):
    """Base exception for all Treehole exporter errors."""
    pass


class NetworkError(TreeholeError):
    """Raised when the transport cannot complete a request (DNS, timeout, reset)."""
    pass


class HttpStatusError(TreeholeError):
    """Raised when the server answers with a non-2xx HTTP status."""

    def __init__(self, status: int, status_text: str = ""):
        self.status = status
        self.status_text = status_text
        super().__init__(f"HTTP {status} {status_text}".rstrip())


class ApiFailure(TreeholeError):
    """Raised when a well-formed envelope reports ``success: false``."""

    def __init__(self, message: str, code: int = 0):
        self.message = message
        self.code = code
        super().__init__(message)


class MalformedResponse(TreeholeError):
    """Raised when a response body is not JSON or does not have the expected shape."""
    pass
