"""Exceptions for contox."""


class ContoxError(Exception):
    """Base class for contox errors."""


class ConfigurationError(ContoxError):
    """Raised when credentials or the project cannot be resolved."""


class TransportError(ContoxError):
    """Raised when a V2 API call fails or returns an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
