from django.urls import reverse


def session_context(request):
    """
    Inject the signed-in user and a role-gated menu. base.html iterates `nav_items`.
    """
    session = getattr(request, "playlink", None)
    user = session.user if session is not None else None
    is_owner = bool(user and user.is_venue_owner)
    is_player = bool(user and user.is_player)
    items = [
        {"label": "Home", "url": reverse("home"), "visible": not is_owner},
        {"label": "Venues", "url": reverse("facilities:venue_list"), "visible": True},
        {"label": "My Bookings", "url": reverse("bookings:my_bookings"), "visible": is_player},
        {"label": "Wallet", "url": reverse("wallet:summary"), "visible": is_player},
        {"label": "Dashboard", "url": reverse("backoffice:dashboard"), "visible": is_owner},
        {"label": "Calendar", "url": reverse("bookings:calendar"), "visible": is_owner},
        {"label": "My Venues", "url": reverse("facilities:my_venues"), "visible": is_owner},
        {"label": "Bookings", "url": reverse("bookings:owner_bookings"), "visible": is_owner},
        {"label": "Reports", "url": reverse("backoffice:report"), "visible": is_owner},
        {"label": "Add Venue", "url": reverse("facilities:venue_new"), "visible": is_owner},
        {"label": "Notifications", "url": reverse("notifications:list"), "visible": user is not None},
        {"label": "Login", "url": reverse("accounts:login"), "visible": user is None},
        {"label": "Sign up", "url": reverse("accounts:signup"), "visible": user is None},
    ]
    return {
        "playlink_user": user,
        "nav_items": [i for i in items if i["visible"]],
    }
