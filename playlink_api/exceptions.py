from __future__ import annotations

from typing import Any, Optional

GENERIC_FAILURE = "Something went wrong. Please try again."


class BackendError(Exception):
    """Base for every failure talking to the PlayLink backend."""

    default_message = GENERIC_FAILURE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BackendUnavailable(BackendError):
    """Transport failure: connection refused, DNS, timeout."""


class BackendResponseError(BackendError):
    """
    Non-2xx answer. `message` is the backend's own `{message}` text when it sent one,
    so it can be shown to the user verbatim.
    """

    def __init__(self, status_code: int, message: Optional[str] = None, payload: Any = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class NotAuthenticated(BackendResponseError):
    """401 from the backend: the session cookie is missing or expired."""

    default_message = "Please sign in to continue."


class BackendPayloadError(BackendError):
    """2xx answer whose body does not match the expected shape."""

    def __init__(self, resource: str, errors: Any = None):
        self.resource = resource
        self.errors = errors or []
        super().__init__()
