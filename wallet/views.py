from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.contrib import messages
from django.db import models
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_POST

from accounts.permissions import player_required
from playlink.feedback import flash_backend_error, flash_form_errors
from playlink_api.exceptions import BackendError, NotAuthenticated
from playlink_api.resources import WalletSummary

from .forms import PRESETS, TopUpForm

logger = logging.getLogger(__name__)

PENDING_TOPUP_KEY = "wallet:pending_topup"


class PaymentOutcome(models.TextChoices):
    """Statuses the payment element reports back after confirming an intent."""

    SUCCEEDED = "succeeded", "Succeeded"
    PROCESSING = "processing", "Processing"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method", "Requires payment method"


@player_required
def summary(request):
    wallet = WalletSummary(balance=Decimal("0"))
    try:
        wallet = request.playlink.client.wallet_summary()
    except BackendError as exc:
        flash_backend_error(request, exc)
    return render(
        request,
        "wallet/summary.html",
        {"wallet": wallet, "form": TopUpForm(), "presets": PRESETS},
    )


def _current_balance(request) -> Optional[Decimal]:
    """Balance shown beside the payment element; the page works without it."""
    try:
        return request.playlink.client.wallet_balance().balance
    except NotAuthenticated:
        raise
    except BackendError as exc:
        logger.warning("Wallet balance unavailable: %s", exc)
        return None


@player_required
@require_POST
def topup(request):
    """Start a top-up: the backend returns a payment intent secret for the payment element."""
    form = TopUpForm(request.POST)
    if not form.is_valid():
        flash_form_errors(request, form)
        return redirect("wallet:summary")
    amount = form.amount_value()
    try:
        data = request.playlink.client.wallet_topup(amount)
    except BackendError as exc:
        flash_backend_error(request, exc)
        return redirect("wallet:summary")

    client_secret = data.get("clientSecret")
    if not client_secret:
        messages.error(request, "Failed to initialize payment")
        return redirect("wallet:summary")

    request.session[PENDING_TOPUP_KEY] = amount
    balance = _current_balance(request)
    return render(
        request,
        "wallet/topup_pay.html",
        {
            "amount": amount,
            "balance": balance,
            "balance_after": balance + Decimal(str(amount)) if balance is not None else None,
            "client_secret": client_secret,
            "publishable_key": settings.STRIPE_PUBLISHABLE_KEY,
            "return_url": request.build_absolute_uri(reverse("wallet:confirm_topup")),
        },
    )


@player_required
def confirm_topup(request):
    """
    Return leg of the payment element. Only a succeeded intent is reconciled with the
    backend; other outcomes are reported and nothing is credited.
    """
    params = request.POST if request.method == "POST" else request.GET
    intent_id = params.get("payment_intent")
    outcome = params.get("redirect_status") or params.get("status")

    if not intent_id:
        messages.error(request, "Missing payment reference.")
        return redirect("wallet:summary")

    if outcome == PaymentOutcome.PROCESSING:
        messages.info(request, "Your payment is processing. Your balance will update once it completes.")
        return redirect("wallet:summary")
    if outcome != PaymentOutcome.SUCCEEDED:
        messages.error(request, "Payment failed. Please try another payment method.")
        return redirect("wallet:summary")

    # Cleared only once the backend accepts the confirmation.
    amount = request.session.get(PENDING_TOPUP_KEY)
    try:
        request.playlink.client.confirm_topup(intent_id, amount)
    except BackendError as exc:
        flash_backend_error(request, exc)
    else:
        request.session.pop(PENDING_TOPUP_KEY, None)
        logger.info("Wallet top-up %s confirmed for user %s", intent_id, request.playlink.user.id)
        if amount is not None:
            messages.success(request, f"Your wallet has been topped up with LKR {amount:.2f}.")
        else:
            messages.success(request, "Your wallet has been topped up.")
    return redirect("wallet:summary")
