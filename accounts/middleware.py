from __future__ import annotations

import logging

from django.contrib import messages

from playlink_api.exceptions import NotAuthenticated

from .permissions import redirect_to_login
from .session import PlayLinkSession

logger = logging.getLogger(__name__)


class PlayLinkSessionMiddleware:
    """
    Attach `request.playlink` and scope its backend client to the request.

    Must sit after SessionMiddleware: backend cookies are written back into the site
    session before SessionMiddleware saves it.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.playlink = PlayLinkSession(request.session)
        try:
            response = self.get_response(request)
        finally:
            request.playlink.close()
        return response

    def process_exception(self, request, exception):
        # A 401 from any backend call means the session expired mid-visit.
        if isinstance(exception, NotAuthenticated):
            logger.info("Backend session expired on %s", request.path)
            request.playlink.expire()
            messages.info(request, exception.message)
            return redirect_to_login(request)
        return None
