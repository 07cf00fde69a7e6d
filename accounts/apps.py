from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

SESSION_MIDDLEWARE = "django.contrib.sessions.middleware.SessionMiddleware"
PLAYLINK_MIDDLEWARE = "accounts.middleware.PlayLinkSessionMiddleware"


class AccountsConfig(AppConfig):
    name = "accounts"
    verbose_name = "Accounts"

    def ready(self):
        # Backend cookies live in the site session, so the gate must run inside it.
        middleware = list(settings.MIDDLEWARE)
        if PLAYLINK_MIDDLEWARE not in middleware:
            raise ImproperlyConfigured(f"{PLAYLINK_MIDDLEWARE} is missing from MIDDLEWARE")
        if SESSION_MIDDLEWARE not in middleware or middleware.index(SESSION_MIDDLEWARE) > middleware.index(
            PLAYLINK_MIDDLEWARE
        ):
            raise ImproperlyConfigured(f"{PLAYLINK_MIDDLEWARE} must come after {SESSION_MIDDLEWARE}")
