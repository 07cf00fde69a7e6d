from django.contrib import messages

from playlink_api.exceptions import BackendError, NotAuthenticated


def flash_form_errors(request, form) -> None:
    """Surface each validation error once as an error message, field errors first."""
    seen = set()
    for name, errors in form.errors.items():
        for error in errors:
            if error in seen:
                continue
            seen.add(error)
            messages.error(request, error)


def flash_backend_error(request, exc: BackendError) -> None:
    """
    Show the backend's message and keep the page alive. An expired session is
    re-raised so PlayLinkSessionMiddleware can send the user to login.
    """
    if isinstance(exc, NotAuthenticated):
        raise exc
    messages.error(request, exc.message)
