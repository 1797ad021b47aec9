"""Exceptions raised by the visibility analysis engine."""

from typing import Optional


class VisibilityError(Exception):
    """Base exception for visibility analysis errors."""

    pass


class ConfigurationError(VisibilityError):
    """A selected provider is missing a credential or model, or the config is invalid."""

    pass


class ProviderAPIError(VisibilityError):
    """Transport failure or non-2xx reply from a provider endpoint."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ResponseParseError(VisibilityError):
    """Provider reply could not be parsed into the expected shape."""

    pass


class TaskStateError(VisibilityError):
    """Illegal task status transition."""

    pass
