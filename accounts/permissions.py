# accounts/permissions.py
from functools import wraps
from urllib.parse import urlencode

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect, resolve_url

from playlink_api.resources import AccountType, PLAYER_TYPES

PLAYER = tuple(PLAYER_TYPES)
VENUE_OWNER = (AccountType.VENUE_OWNER,)

UNAVAILABLE_MESSAGE = "PlayLink is temporarily unavailable. Please try again in a moment."


def redirect_to_login(request):
    url = resolve_url(settings.LOGIN_URL)
    return redirect(f"{url}?{urlencode({'next': request.get_full_path()})}")


def home_url_name(user) -> str:
    """Landing page per role: owners work from their dashboard, everyone else from home."""
    if user is not None and user.is_venue_owner:
        return "backoffice:dashboard"
    return "home"


def is_allowed(user, roles) -> bool:
    return bool(user is not None and (not roles or user.account_type in roles))


def _deny(request, roles):
    user = request.playlink.user
    if user is None:
        if request.playlink.backend_unreachable:
            messages.error(request, UNAVAILABLE_MESSAGE)
        return redirect_to_login(request)
    messages.error(request, "You do not have access to that page.")
    return redirect(home_url_name(user))


def role_required(*roles):
    """
    Gate a function view on a signed-in user with one of `roles` (any role when empty).
    Anonymous visitors go to login with `next`; a wrong role goes to that role's home.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if not is_allowed(request.playlink.user, roles):
                return _deny(request, roles)
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator


login_required = role_required()
player_required = role_required(*PLAYER)
owner_required = role_required(*VENUE_OWNER)


class RoleRequiredMixin:
    allowed_roles: tuple = ()

    def dispatch(self, request, *args, **kwargs):
        if not is_allowed(request.playlink.user, self.allowed_roles):
            return _deny(request, self.allowed_roles)
        return super().dispatch(request, *args, **kwargs)


class OwnerRequiredMixin(RoleRequiredMixin):
    allowed_roles = VENUE_OWNER
