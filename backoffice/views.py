import logging

from django.shortcuts import render
from django.utils import timezone

from accounts.permissions import owner_required
from playlink.feedback import flash_backend_error, flash_form_errors
from playlink_api.exceptions import BackendError, NotAuthenticated
from playlink_api.resources import OwnerAnalytics, OwnerSummary

from .forms import ReportFilterForm
from .utils import peak_hours, report_columns, revenue_by_venue, summary_kpis

logger = logging.getLogger(__name__)


def _fetch(label, call, default):
    """Each dashboard panel loads on its own; one failing panel leaves the rest alive."""
    try:
        return call()
    except NotAuthenticated:
        raise
    except BackendError as exc:
        logger.warning("Dashboard panel %s unavailable: %s", label, exc)
        return default


@owner_required
def dashboard(request):
    client = request.playlink.client
    summary = _fetch("summary", client.owner_summary, OwnerSummary())
    detailed = _fetch("detailed", client.owner_detailed, OwnerAnalytics())
    venues = _fetch("venues", client.my_venues, [])
    bookings = _fetch("bookings", client.owner_bookings, [])

    now = timezone.localtime().replace(tzinfo=None)
    upcoming = sorted((b for b in bookings if b.end > now and not b.is_cancelled), key=lambda b: b.start)

    context = {
        "now": now,
        "kpis": summary_kpis(summary),
        "revenue_by_venue": revenue_by_venue(detailed),
        "peak_hours": peak_hours(detailed),
        "venues": venues,
        "upcoming_bookings": upcoming[:10],
    }
    return render(request, "backoffice/dashboard.html", context)


@owner_required
def report(request):
    """
    Owner booking report with optional date range and venue filters.
    """
    client = request.playlink.client
    venues = _fetch("venues", client.my_venues, [])
    form = ReportFilterForm(request.GET or None, venues=venues)

    rows = []
    if form.is_bound and not form.is_valid():
        flash_form_errors(request, form)
    else:
        params = form.to_params() if form.is_bound else {}
        try:
            rows = client.owner_report(**params)
        except BackendError as exc:
            flash_backend_error(request, exc)

    return render(
        request,
        "backoffice/report.html",
        {"form": form, "rows": rows, "columns": report_columns(rows)},
    )
