import logging

from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from accounts.permissions import login_required
from playlink.feedback import flash_backend_error
from playlink_api.exceptions import BackendError

logger = logging.getLogger(__name__)


@login_required
def notification_list(request):
    items = []
    try:
        items = request.playlink.client.notifications()
    except BackendError as exc:
        flash_backend_error(request, exc)
    unread = sum(1 for n in items if not n.is_read)
    return render(request, "notifications/list.html", {"notifications": items, "unread_count": unread})


@login_required
@require_POST
def mark_read(request, notification_id: str):
    try:
        request.playlink.client.mark_notification_read(notification_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
    return redirect("notifications:list")


@login_required
@require_POST
def mark_all_read(request):
    try:
        request.playlink.client.mark_all_notifications_read()
    except BackendError as exc:
        flash_backend_error(request, exc)
    else:
        logger.debug("All notifications marked read for %s", request.playlink.user.id)
    return redirect("notifications:list")
