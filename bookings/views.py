from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional
from urllib.parse import urlencode

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_time
from django.views.decorators.http import require_POST

from accounts.permissions import login_required, owner_required, player_required
from playlink.feedback import flash_backend_error, flash_form_errors
from playlink_api.exceptions import BackendError, NotAuthenticated
from playlink_api.resources import BookedSlot, Booking, Sport, Venue, bookings_from_api
from scheduling.conflicts import ALL_SPORTS, SLOT_LENGTH, find_conflict
from scheduling.grid import ViewMode, build_grid, parse_mode, visible_range

from .forms import BookingRequestForm, CancelConfirmForm, SlotActionForm

logger = logging.getLogger(__name__)


# ---- Helpers -----------------------------------------------------------------

def _day_from(raw: Optional[str]) -> date:
    return (parse_date(raw) if raw else None) or timezone.localdate()


def calendar_url(venue_id: str, day: date, mode: str = ViewMode.WEEK, sport: str = ALL_SPORTS) -> str:
    query = {"venue": venue_id, "date": day.isoformat(), "view": mode}
    if sport and sport != ALL_SPORTS:
        query["sport"] = sport
    return f"{reverse('bookings:calendar')}?{urlencode(query)}"


def _venue_sports(client, venue_id: str) -> List[Sport]:
    try:
        return client.venue_sports(venue_id)
    except NotAuthenticated:
        raise
    except BackendError as exc:
        logger.warning("Sports unavailable for venue %s: %s", venue_id, exc)
        return []


def _slot_conflict(client, venue_id: str, day: date, slot_time, sport=ALL_SPORTS, duration=SLOT_LENGTH):
    """Advisory overlap check against the owner calendar; skipped when the calendar is unavailable."""
    try:
        bookings = client.venue_calendar(venue_id, day, day)
    except NotAuthenticated:
        raise
    except BackendError as exc:
        logger.warning("Conflict check skipped for venue %s: %s", venue_id, exc)
        return None
    return find_conflict(day, slot_time, bookings, sport, duration)


def _booked_slots(request, venue_id: str, day: date) -> List[BookedSlot]:
    try:
        return request.playlink.client.booked_slots(venue_id, day)
    except NotAuthenticated:
        raise
    except BackendError as exc:
        logger.warning("Booked slots unavailable for venue %s on %s: %s", venue_id, day, exc)
        messages.warning(
            request, "Existing bookings could not be loaded. The backend confirms availability at checkout."
        )
        return []


def _find_booking(client, venue_id: str, day: date, booking_id: str) -> Optional[Booking]:
    for booking in client.venue_calendar(venue_id, day, day):
        if booking.id == booking_id:
            return booking
    return None


# ---- Owner calendar ----------------------------------------------------------

@owner_required
def calendar(request):
    client = request.playlink.client
    venues: List[Venue] = []
    try:
        venues = client.my_venues()
    except BackendError as exc:
        flash_backend_error(request, exc)

    venue_id = request.GET.get("venue") or (venues[0].id if venues else None)
    venue = next((v for v in venues if v.id == venue_id), None)
    reference = _day_from(request.GET.get("date"))
    try:
        mode = parse_mode(request.GET.get("view"))
    except ValueError:
        mode = ViewMode.WEEK
    sport_filter = request.GET.get("sport") or ALL_SPORTS

    ctx = {
        "venues": venues,
        "venue": venue,
        "venue_id": venue_id,
        "mode": mode,
        "sport_filter": sport_filter,
        "sports": [],
        "grid": None,
        "disabled": False,
    }
    if not venue_id:
        return render(request, "bookings/calendar.html", ctx)

    ctx["sports"] = _venue_sports(client, venue_id)
    start, end = visible_range(reference, mode)
    bookings: List[Booking] = []
    try:
        bookings = client.venue_calendar(venue_id, start, end)
    except NotAuthenticated:
        raise
    except BackendError as exc:
        if settings.PLAYLINK_CALENDAR_FAIL_OPEN:
            logger.warning("Calendar fetch failed for venue %s, showing slots as free: %s", venue_id, exc)
            messages.warning(request, "Bookings could not be loaded. Slots shown as available may already be taken.")
        else:
            logger.error("Calendar fetch failed for venue %s: %s", venue_id, exc)
            messages.error(request, exc.message)
            ctx["disabled"] = True

    grid = build_grid(reference, mode, bookings, sport_filter)
    ctx.update({
        "grid": grid,
        "previous_url": calendar_url(venue_id, grid.previous, mode, sport_filter),
        "next_url": calendar_url(venue_id, grid.next, mode, sport_filter),
        "today_url": calendar_url(venue_id, timezone.localdate(), mode, sport_filter),
        "day_url": calendar_url(venue_id, reference, ViewMode.DAY, sport_filter),
        "week_url": calendar_url(venue_id, reference, ViewMode.WEEK, sport_filter),
    })
    return render(request, "bookings/calendar.html", ctx)


@owner_required
def slot_action(request, venue_id: str):
    client = request.playlink.client
    sports = _venue_sports(client, venue_id)
    conflict = None

    if request.method == "POST":
        form = SlotActionForm(request.POST, sports=sports)
        if form.is_valid():
            try:
                result = client.create_walk_in(venue_id, form.to_payload())
            except BackendError as exc:
                flash_backend_error(request, exc)
            else:
                logger.info("Slot %s created on venue %s for %s", form.cleaned_data["action"], venue_id,
                            form.cleaned_data["date"])
                fallback = "Slot blocked." if form.is_block else "Walk-in booking created!"
                messages.success(request, result.get("message") or fallback)
                return redirect(calendar_url(venue_id, form.cleaned_data["date"]))
            conflict = _slot_conflict(
                client, venue_id, form.cleaned_data["date"], form.cleaned_data["start_time"],
                sport=form.cleaned_data["sport"] or ALL_SPORTS, duration=form.slot_length,
            )
        else:
            flash_form_errors(request, form)
    else:
        day = _day_from(request.GET.get("date"))
        slot_time = parse_time(request.GET.get("time") or "")
        form = SlotActionForm(
            initial={"date": day, "start_time": slot_time, "sport": request.GET.get("sport") or ""},
            sports=sports,
        )
        if slot_time is not None:
            conflict = _slot_conflict(client, venue_id, day, slot_time, sport=request.GET.get("sport") or ALL_SPORTS)

    return render(
        request,
        "bookings/slot_action.html",
        {"form": form, "venue_id": venue_id, "conflict": conflict},
    )


@owner_required
def booking_detail(request, venue_id: str, booking_id: str):
    """Read-only booking snapshot with a confirmed cancel action."""
    day = _day_from(request.GET.get("date") or request.POST.get("date"))
    client = request.playlink.client

    if request.method == "POST":
        form = CancelConfirmForm(request.POST)
        if not form.is_valid():
            flash_form_errors(request, form)
            return redirect(f"{request.path}?{urlencode({'date': day.isoformat()})}")
        try:
            result = client.cancel_booking(booking_id)
        except BackendError as exc:
            flash_backend_error(request, exc)
            return redirect(f"{request.path}?{urlencode({'date': day.isoformat()})}")
        logger.info("Booking %s cancelled on venue %s", booking_id, venue_id)
        messages.success(request, result.get("message") or "Booking cancelled successfully.")
        return redirect(calendar_url(venue_id, day))

    try:
        booking = _find_booking(client, venue_id, day, booking_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
        return redirect(calendar_url(venue_id, day))
    if booking is None:
        messages.error(request, "Booking not found.")
        return redirect(calendar_url(venue_id, day))

    return render(
        request,
        "bookings/booking_detail.html",
        {"booking": booking, "venue_id": venue_id, "day": day, "form": CancelConfirmForm()},
    )


@owner_required
def owner_bookings(request):
    bookings: List[Booking] = []
    try:
        bookings = request.playlink.client.owner_bookings()
    except BackendError as exc:
        flash_backend_error(request, exc)
    status = request.GET.get("status", "").upper()
    if status:
        bookings = [b for b in bookings if b.status == status]
    return render(request, "bookings/owner_bookings.html", {"bookings": bookings, "status": status})


# ---- Player flow -------------------------------------------------------------

@player_required
def booking_create(request, venue_id: str):
    client = request.playlink.client
    try:
        venue = client.get_venue(venue_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
        return redirect("facilities:venue_list")
    sports = venue.sports or _venue_sports(client, venue_id)

    quote = None
    if request.method == "POST":
        form = BookingRequestForm(request.POST, sports=sports)
        if form.is_valid():
            payload = form.to_payload(venue_id)
            if request.POST.get("action") == "checkout":
                try:
                    result = client.checkout_session(payload)
                except BackendError as exc:
                    flash_backend_error(request, exc)
                else:
                    checkout_url = result.get("checkoutUrl")
                    if checkout_url:
                        logger.info("Checkout started for venue %s", venue_id)
                        return redirect(checkout_url)
                    messages.error(request, result.get("message") or "Failed to start payment")
            else:
                try:
                    result = client.calculate_price(payload)
                    quote = result.get("totalAmount", result.get("total_amount"))
                except BackendError as exc:
                    flash_backend_error(request, exc)
                if quote is None:
                    quote = form.estimate(venue.price_per_hour)
        else:
            flash_form_errors(request, form)
    else:
        form = BookingRequestForm(initial={"date": request.GET.get("date"), "hours": 1}, sports=sports)

    day = _day_from(request.POST.get("date") or request.GET.get("date"))
    ctx = {
        "venue": venue,
        "form": form,
        "quote": quote,
        "availability_day": day,
        "booked_slots": _booked_slots(request, venue_id, day),
    }
    return render(request, "bookings/booking_form.html", ctx)


@login_required
def checkout_success(request):
    session_id = request.GET.get("session_id")
    if not session_id:
        messages.error(request, "Missing payment session.")
        return redirect("bookings:my_bookings")
    try:
        result = request.playlink.client.checkout_success(session_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
        return redirect("bookings:my_bookings")
    raw = result.get("booking") if isinstance(result, dict) else None
    booking = next(iter(bookings_from_api([raw])), None) if isinstance(raw, dict) else None
    return render(
        request,
        "bookings/checkout_success.html",
        {"booking": booking, "message": result.get("message") or "Payment successful. Your booking is confirmed."},
    )


@player_required
@require_POST
def pay_split_share(request, booking_id: str):
    try:
        result = request.playlink.client.pay_split_share(booking_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
    else:
        checkout_url = result.get("checkoutUrl")
        if checkout_url:
            return redirect(checkout_url)
        messages.success(request, result.get("message") or "Your share has been paid.")
    return redirect("bookings:my_bookings")


@player_required
def my_bookings(request):
    bookings: List[Booking] = []
    try:
        bookings = request.playlink.client.my_bookings()
    except BackendError as exc:
        flash_backend_error(request, exc)
    now = timezone.localtime().replace(tzinfo=None)
    upcoming = sorted((b for b in bookings if b.end > now), key=lambda b: b.start)
    past = sorted((b for b in bookings if b.end <= now), key=lambda b: b.start, reverse=True)
    return render(request, "bookings/my_bookings.html", {"upcoming": upcoming, "past": past})
