from .client import PlayLinkClient
from .exceptions import BackendError, BackendResponseError, BackendUnavailable, NotAuthenticated

__all__ = [
    "PlayLinkClient",
    "BackendError",
    "BackendResponseError",
    "BackendUnavailable",
    "NotAuthenticated",
]
