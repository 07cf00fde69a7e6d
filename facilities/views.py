from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.contrib import messages
from django.core.cache import cache
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_POST
from django.views.generic import View

from accounts.permissions import OwnerRequiredMixin, owner_required, player_required
from playlink.feedback import flash_backend_error, flash_form_errors
from playlink_api.exceptions import BackendError
from playlink_api.resources import Venue

from .forms import (
    ConfirmForm,
    PricingRuleForm,
    ReviewForm,
    ReviewReplyForm,
    VenueSearchForm,
    step_form,
    step_values,
)
from .wizard import Action, Step, StepRejected, VenueWizard

logger = logging.getLogger(__name__)


# ---- Search helpers ----------------------------------------------------------

def filter_venues(venues: Iterable[Venue], name: str = "", location: str = "", sport: str = "") -> List[Venue]:
    """Case-insensitive substring filters applied on top of the backend search."""
    name = (name or "").strip().lower()
    location = (location or "").strip().lower()
    sport = (sport or "").strip().lower()
    out = []
    for venue in venues:
        if name and name not in venue.name.lower():
            continue
        if location and location not in f"{venue.address} {venue.city}".lower():
            continue
        if sport and venue.sports and not any(s.name.lower() == sport for s in venue.sports):
            continue
        out.append(venue)
    return out


def _load_venue(request, venue_id: str) -> Optional[Venue]:
    try:
        return request.playlink.client.get_venue(venue_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
        return None


# ---- Home / list / detail ----------------------------------------------------

def home(request):
    venues: List[Venue] = []
    try:
        venues = request.playlink.client.list_venues()[:6]
    except BackendError as exc:
        logger.warning("Featured venues unavailable: %s", exc)
    return render(request, "facilities/home.html", {"venues": venues, "search_form": VenueSearchForm()})


class VenueListView(View):
    template_name = "facilities/venue_list.html"

    def get(self, request):
        form = VenueSearchForm(request.GET or None)
        filters = form.cleaned_data if form.is_bound and form.is_valid() else {}
        venues: List[Venue] = []
        try:
            venues = request.playlink.client.list_venues(search=filters.get("name"))
        except BackendError as exc:
            flash_backend_error(request, exc)
        venues = filter_venues(
            venues,
            name=filters.get("name", ""),
            location=filters.get("location", ""),
            sport=filters.get("sport", ""),
        )
        return render(request, self.template_name, {"form": form, "venues": venues})


class MyVenueListView(OwnerRequiredMixin, View):
    template_name = "facilities/my_venues.html"

    def get(self, request):
        venues: List[Venue] = []
        try:
            venues = request.playlink.client.my_venues()
        except BackendError as exc:
            flash_backend_error(request, exc)
        return render(request, self.template_name, {"venues": venues})


class VenueDetailView(View):
    template_name = "facilities/venue_detail.html"

    def get(self, request, venue_id: str):
        venue = _load_venue(request, venue_id)
        if venue is None:
            return redirect("facilities:venue_list")

        client = request.playlink.client
        reviews = []
        try:
            reviews = client.reviews(venue_id)
        except BackendError as exc:
            logger.warning("Reviews unavailable for venue %s: %s", venue_id, exc)

        sports = venue.sports
        if not sports:
            try:
                sports = client.venue_sports(venue_id)
            except BackendError as exc:
                logger.warning("Sports unavailable for venue %s: %s", venue_id, exc)

        user = request.playlink.user
        is_owner = bool(user and user.is_venue_owner and venue.owner_id == user.id)
        rating = round(sum(r.rating for r in reviews) / len(reviews), 1) if reviews else None
        ctx = {
            "venue": venue,
            "sports": sports,
            "reviews": reviews,
            "average_rating": rating,
            "is_owner": is_owner,
            "review_form": ReviewForm() if user and user.is_player else None,
            "reply_form": ReviewReplyForm() if is_owner else None,
        }
        return render(request, self.template_name, ctx)


# ---- Reviews -----------------------------------------------------------------

@player_required
@require_POST
def review_create(request, venue_id: str):
    form = ReviewForm(request.POST)
    if not form.is_valid():
        flash_form_errors(request, form)
        return redirect("facilities:venue_detail", venue_id=venue_id)
    try:
        request.playlink.client.add_review(venue_id, form.cleaned_data["rating"], form.cleaned_data["comment"])
    except BackendError as exc:
        flash_backend_error(request, exc)
    else:
        messages.success(request, "Thanks for your review!")
    return redirect("facilities:venue_detail", venue_id=venue_id)


@owner_required
@require_POST
def review_reply(request, venue_id: str, review_id: str):
    form = ReviewReplyForm(request.POST)
    if not form.is_valid():
        flash_form_errors(request, form)
        return redirect("facilities:venue_detail", venue_id=venue_id)
    try:
        request.playlink.client.reply_to_review(venue_id, review_id, form.cleaned_data["reply"])
    except BackendError as exc:
        flash_backend_error(request, exc)
    else:
        messages.success(request, "Reply posted.")
    return redirect("facilities:venue_detail", venue_id=venue_id)


# ---- Pricing rules -----------------------------------------------------------

@owner_required
def pricing_rules(request, venue_id: str):
    venue = _load_venue(request, venue_id)
    if venue is None:
        return redirect("facilities:my_venues")
    client = request.playlink.client

    if request.method == "POST":
        form = PricingRuleForm(request.POST)
        if form.is_valid():
            try:
                client.add_pricing_rule(venue_id, form.to_payload())
            except BackendError as exc:
                flash_backend_error(request, exc)
            else:
                messages.success(request, "Pricing rule added.")
                return redirect("facilities:pricing_rules", venue_id=venue_id)
        else:
            flash_form_errors(request, form)
    else:
        form = PricingRuleForm()

    rules = []
    try:
        rules = client.pricing_rules(venue_id)
    except BackendError as exc:
        flash_backend_error(request, exc)
    return render(request, "facilities/pricing_rules.html", {"venue": venue, "rules": rules, "form": form})


@owner_required
def pricing_rule_delete(request, venue_id: str, rule_id: str):
    if request.method == "POST":
        form = ConfirmForm(request.POST)
        if form.is_valid():
            try:
                request.playlink.client.delete_pricing_rule(venue_id, rule_id)
            except BackendError as exc:
                flash_backend_error(request, exc)
            else:
                messages.success(request, "Pricing rule deleted.")
            return redirect("facilities:pricing_rules", venue_id=venue_id)
        flash_form_errors(request, form)
    else:
        form = ConfirmForm()
    return render(
        request,
        "facilities/pricing_rule_confirm_delete.html",
        {"form": form, "venue_id": venue_id, "rule_id": rule_id},
    )


# ---- Venue creation wizard ---------------------------------------------------

def _submit_lock_key(request) -> str:
    if not request.session.session_key:
        request.session.save()
    return f"facilities:venue_submit:{request.session.session_key}"


class VenueCreateWizardView(OwnerRequiredMixin, View):
    """
    Four-step venue listing. Every POST saves the step's fields into the session,
    applies the requested transition and redirects back here.
    """

    template_name = "facilities/venue_wizard.html"

    def get(self, request):
        wizard = VenueWizard.from_session(request.session)
        return self._render(request, wizard, step_form(wizard.step, wizard.data))

    def post(self, request):
        wizard = VenueWizard.from_session(request.session)
        action = request.POST.get("action", Action.NEXT)

        form = step_form(wizard.step, wizard.data, request.POST)
        if action == Action.BACK:
            # Back is never gated; only a fully valid step is kept.
            if form.is_valid():
                wizard.update(step_values(form))
            wizard.back()
            wizard.to_session(request.session)
            return redirect("facilities:venue_new")

        if not form.is_valid():
            flash_form_errors(request, form)
            return self._render(request, wizard, form)
        wizard.update(step_values(form))

        if action == Action.SUBMIT:
            return self._submit(request, wizard)

        try:
            wizard.apply(action)
        except StepRejected as exc:
            messages.error(request, exc.message)
        wizard.to_session(request.session)
        return redirect("facilities:venue_new")

    def _submit(self, request, wizard: VenueWizard):
        wizard.to_session(request.session)
        lock = _submit_lock_key(request)
        if not cache.add(lock, True, settings.PLAYLINK_SUBMIT_LOCK_SECONDS):
            logger.info("Ignored repeated venue submit for session %s", request.session.session_key)
            messages.info(request, "Your venue is already being submitted.")
            return redirect("facilities:venue_new")
        try:
            result = wizard.submit(request.playlink.client)
        except StepRejected as exc:
            messages.error(request, exc.message)
            return redirect("facilities:venue_new")
        except BackendError as exc:
            flash_backend_error(request, exc)
            return redirect("facilities:venue_new")
        finally:
            cache.delete(lock)

        VenueWizard.discard(request.session)
        message = result.get("message") if isinstance(result, dict) else None
        logger.info("Venue created by %s", request.playlink.user.id)
        messages.success(request, message or "Venue created successfully!")
        return redirect("facilities:my_venues")

    def _render(self, request, wizard: VenueWizard, form):
        return render(
            request,
            self.template_name,
            {
                "wizard": wizard,
                "form": form,
                "steps": list(Step),
                "is_last_step": wizard.step == Step.IMAGES,
                "action_url": reverse("facilities:venue_new"),
            },
        )
