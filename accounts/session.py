"""
Explicit session object for the signed-in PlayLink user.

One `PlayLinkSession` is built per request by `PlayLinkSessionMiddleware` and handed to
views as `request.playlink`. It owns the request's backend client and is the only
writer of the user: `initialize`, `sign_in`, `sign_out` and `expire`. Everything else
reads.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.db import models

from playlink_api.client import PlayLinkClient
from playlink_api.exceptions import BackendError, BackendPayloadError, BackendResponseError, BackendUnavailable
from playlink_api.resources import AuthenticatedUser

logger = logging.getLogger(__name__)

BACKEND_COOKIES_KEY = "playlink:backend_cookies"


class SessionState(models.TextChoices):
    UNINITIALIZED = "UNINITIALIZED", "Not checked yet"
    ANONYMOUS = "ANONYMOUS", "Anonymous"
    AUTHENTICATED = "AUTHENTICATED", "Signed in"


def build_client(cookies: Optional[dict] = None) -> PlayLinkClient:
    return PlayLinkClient(
        settings.PLAYLINK_API_URL,
        cookies=cookies,
        timeout=settings.PLAYLINK_API_TIMEOUT,
    )


class PlayLinkSession:
    def __init__(self, store):
        self._store = store
        self._client: Optional[PlayLinkClient] = None
        self._user: Optional[AuthenticatedUser] = None
        self.state = SessionState.UNINITIALIZED
        self.backend_unreachable = False

    # ---- backend client ------------------------------------------------------

    @property
    def client(self) -> PlayLinkClient:
        if self._client is None:
            self._client = build_client(self._store.get(BACKEND_COOKIES_KEY) or {})
        return self._client

    def close(self) -> None:
        """Persist backend cookies into the site session and release the client."""
        if self._client is None:
            return
        cookies = self._client.cookies
        if self.state == SessionState.ANONYMOUS and not cookies:
            self._store.pop(BACKEND_COOKIES_KEY, None)
        elif cookies and cookies != self._store.get(BACKEND_COOKIES_KEY):
            self._store[BACKEND_COOKIES_KEY] = cookies
        self._client.close()
        self._client = None

    # ---- reads ---------------------------------------------------------------

    def initialize(self) -> None:
        """Ask the backend who owns the session cookie. Runs at most once per request."""
        if self.state != SessionState.UNINITIALIZED:
            return
        if not self._store.get(BACKEND_COOKIES_KEY):
            self._set_anonymous()
            return
        try:
            data = self.client.authenticate()
        except BackendUnavailable:
            # Keep the cookies: the backend may only be briefly unreachable.
            self.backend_unreachable = True
            self._set_anonymous()
            return
        except BackendResponseError:
            self._forget()
            return

        user = data.get("user") if isinstance(data, dict) else None
        if not (isinstance(user, dict) and data.get("authenticated")):
            self._forget()
            return
        try:
            self._user = AuthenticatedUser.from_api(user)
        except BackendPayloadError:
            self._forget()
            return
        self.state = SessionState.AUTHENTICATED

    @property
    def user(self) -> Optional[AuthenticatedUser]:
        self.initialize()
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def account_type(self) -> Optional[str]:
        user = self.user
        return user.account_type if user else None

    # ---- writes --------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> AuthenticatedUser:
        self.client.clear_cookies()
        data = self.client.login(email, password)
        payload = data.get("user") if isinstance(data.get("user"), dict) else data
        if "accountType" not in payload and data.get("accountType"):
            payload = {**payload, "accountType": data["accountType"]}
        self._user = AuthenticatedUser.from_api(payload)
        self.state = SessionState.AUTHENTICATED
        if hasattr(self._store, "cycle_key"):
            self._store.cycle_key()
        logger.info("User %s signed in as %s", self._user.id, self._user.account_type)
        return self._user

    def sign_out(self) -> None:
        try:
            self.client.logout()
        except BackendError as exc:
            logger.warning("Backend logout failed, clearing local session anyway: %s", exc)
        finally:
            self._forget()

    def expire(self) -> None:
        """Drop a session the backend no longer recognises."""
        self._forget()

    def _set_anonymous(self) -> None:
        self._user = None
        self.state = SessionState.ANONYMOUS

    def _forget(self) -> None:
        self._set_anonymous()
        self._store.pop(BACKEND_COOKIES_KEY, None)
        if self._client is not None:
            self._client.clear_cookies()
