from unittest import mock

from django.contrib.messages import get_messages
from django.core.cache import cache
from django.test import SimpleTestCase

from playlink_api.testing import FakeBackend

from .session import BACKEND_COOKIES_KEY


class BackendTestCase(SimpleTestCase):
    """Routes every backend call made during a test to `self.backend`."""

    def setUp(self):
        super().setUp()
        cache.clear()
        self.backend = FakeBackend()
        patcher = mock.patch("playlink_api.client.default_transport", side_effect=self.backend.transport)
        patcher.start()
        self.addCleanup(patcher.stop)

    def sign_in(self, account_type="VENUE_OWNER", **user):
        self.backend.signed_in_as(account_type, **user)
        session = self.client.session
        session[BACKEND_COOKIES_KEY] = {"sid": "test-session"}
        session.save()
        return session

    def set_session(self, values):
        session = self.client.session
        for key, value in values.items():
            session[key] = value
        session.save()
        return session

    @staticmethod
    def messages_of(response):
        return [str(m) for m in get_messages(response.wsgi_request)]
