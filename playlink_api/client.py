from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from .exceptions import BackendPayloadError, BackendResponseError, BackendUnavailable, NotAuthenticated
from .resources import (
    BookedSlot,
    Booking,
    Notification,
    OwnerAnalytics,
    OwnerSummary,
    PricingRule,
    Review,
    Sport,
    Venue,
    WalletSummary,
    bookings_from_api,
    parse_list,
)

logger = logging.getLogger(__name__)


def default_transport() -> httpx.BaseTransport:
    # Every failure is terminal for the user action; nothing is retried.
    return httpx.HTTPTransport(retries=0)


def _items(data: Any, *keys: str) -> list:
    """Lists arrive bare or wrapped in an object (`{"bookings": [...]}`)."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


class PlayLinkClient:
    """
    Synchronous client for the PlayLink REST backend.

    One instance lives for one Django request: it carries the backend session
    cookies (credentialed, cookie-based auth), enforces a timeout on every call and
    is closed when the response leaves the site, so no call outlives its page.
    """

    def __init__(
        self,
        base_url: str,
        *,
        cookies: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url,
            cookies=cookies or {},
            timeout=httpx.Timeout(timeout),
            transport=transport or default_transport(),
            headers={"Accept": "application/json"},
        )

    # ---- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PlayLinkClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def cookies(self) -> Dict[str, str]:
        return {c.name: c.value for c in self._http.cookies.jar}

    def clear_cookies(self) -> None:
        self._http.cookies.clear()

    # ---- transport -----------------------------------------------------------

    def request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None) -> Any:
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("Backend timeout on %s %s: %s", method, path, exc)
            raise BackendUnavailable() from exc
        except httpx.TransportError as exc:
            logger.warning("Backend unreachable on %s %s: %s", method, path, exc)
            raise BackendUnavailable() from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)

        data: Any = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                data = None

        if response.is_success:
            return data if data is not None else {}

        message = data.get("message") if isinstance(data, dict) else None
        logger.warning("Backend rejected %s %s (%s): %s", method, path, response.status_code, message)
        if response.status_code == 401:
            raise NotAuthenticated(response.status_code, message, data)
        raise BackendResponseError(response.status_code, message, data)

    def get(self, path: str, **params: Any) -> Any:
        clean = {k: v for k, v in params.items() if v not in (None, "")}
        return self.request("GET", path, params=clean or None)

    def post(self, path: str, payload: Any = None) -> Any:
        return self.request("POST", path, json=payload)

    # ---- session -------------------------------------------------------------

    def authenticate(self) -> dict:
        return self.get("/api/users/authenticate")

    def login(self, email: str, password: str) -> dict:
        return self.post("/api/users/login", {"email": email, "password": password})

    def logout(self) -> None:
        self.post("/api/users/logout")

    def register(self, payload: dict) -> dict:
        return self.post("/api/users/register", payload)

    # ---- venues --------------------------------------------------------------

    def list_venues(self, search: Optional[str] = None) -> List[Venue]:
        data = self.get("/api/venues", search=search)
        return parse_list(Venue, _items(data, "venues"))

    def get_venue(self, venue_id: str) -> Venue:
        data = self.get(f"/api/venues/{venue_id}")
        if isinstance(data, dict) and isinstance(data.get("venue"), dict):
            data = data["venue"]
        return Venue.from_api(data)

    def create_venue(self, payload: dict) -> dict:
        return self.post("/api/venues", payload)

    def my_venues(self) -> List[Venue]:
        data = self.get("/api/venues/my-venues")
        return parse_list(Venue, _items(data, "venues"))

    def venue_sports(self, venue_id: str) -> List[Sport]:
        data = self.get(f"/api/venues/{venue_id}/sports")
        return parse_list(Sport, _items(data, "sports"))

    # ---- pricing rules -------------------------------------------------------

    def pricing_rules(self, venue_id: str) -> List[PricingRule]:
        data = self.get(f"/api/venues/{venue_id}/pricing-rules")
        return parse_list(PricingRule, _items(data, "rules", "pricingRules"))

    def add_pricing_rule(self, venue_id: str, payload: dict) -> dict:
        return self.post(f"/api/venues/{venue_id}/pricing-rules", payload)

    def delete_pricing_rule(self, venue_id: str, rule_id: str) -> dict:
        return self.request("DELETE", f"/api/venues/{venue_id}/pricing-rules/{rule_id}")

    # ---- reviews -------------------------------------------------------------

    def reviews(self, venue_id: str) -> List[Review]:
        data = self.get(f"/api/venues/{venue_id}/reviews")
        return parse_list(Review, _items(data, "reviews"))

    def add_review(self, venue_id: str, rating: int, comment: str) -> dict:
        return self.post(f"/api/venues/{venue_id}/reviews", {"rating": rating, "comment": comment})

    def reply_to_review(self, venue_id: str, review_id: str, reply: str) -> dict:
        return self.post(f"/api/venues/{venue_id}/reviews/{review_id}/reply", {"reply": reply})

    # ---- bookings ------------------------------------------------------------

    def my_bookings(self) -> List[Booking]:
        return bookings_from_api(_items(self.get("/api/bookings/my"), "bookings"))

    def owner_bookings(self) -> List[Booking]:
        return bookings_from_api(_items(self.get("/api/bookings/owner"), "bookings"))

    def venue_calendar(self, venue_id: str, start: date, end: date) -> List[Booking]:
        data = self.get(
            f"/api/bookings/venue/{venue_id}/calendar",
            start=start.isoformat(),
            end=end.isoformat(),
        )
        return bookings_from_api(_items(data, "bookings"))

    def booked_slots(self, venue_id: str, day: date) -> List[BookedSlot]:
        """Taken ranges on one day, as any signed-in player may see them."""
        data = self.get(f"/api/bookings/booked-slots/{venue_id}", date=day.isoformat())
        slots = []
        for item in _items(data, "slots", "bookedSlots"):
            try:
                slots.append(BookedSlot.from_api(item))
            except BackendPayloadError:
                continue
        return sorted(slots, key=lambda s: s.start)

    def create_walk_in(self, venue_id: str, payload: dict) -> dict:
        return self.post(f"/api/bookings/venue/{venue_id}/walk-in", payload)

    def cancel_booking(self, booking_id: str) -> dict:
        return self.request("PATCH", f"/api/bookings/{booking_id}/cancel")

    def calculate_price(self, payload: dict) -> dict:
        return self.post("/api/bookings/calculate-price", payload)

    def checkout_session(self, payload: dict) -> dict:
        return self.post("/api/bookings/checkout-session", payload)

    def checkout_success(self, session_id: str) -> dict:
        return self.get("/api/bookings/checkout-success", session_id=session_id)

    def pay_split_share(self, booking_id: str) -> dict:
        return self.post("/api/bookings/pay-split-share", {"bookingId": booking_id})

    # ---- wallet --------------------------------------------------------------

    def wallet_summary(self) -> WalletSummary:
        return WalletSummary.from_api(self.get("/api/wallet/summary") or {})

    def wallet_balance(self) -> WalletSummary:
        """Balance only; `transactions` stays empty."""
        return WalletSummary.from_api(self.get("/api/wallet/my-balance") or {})

    def wallet_topup(self, amount) -> dict:
        return self.post("/api/wallet/topup", {"amount": amount})

    def confirm_topup(self, payment_intent_id: str, amount=None) -> dict:
        payload: Dict[str, Any] = {"paymentIntentId": payment_intent_id}
        if amount is not None:
            payload["amount"] = amount
        return self.post("/api/wallet/confirm-topup", payload)

    # ---- analytics -----------------------------------------------------------

    def owner_summary(self) -> OwnerSummary:
        return OwnerSummary.from_api(self.get("/api/analytics/owner/summary"))

    def owner_detailed(self) -> OwnerAnalytics:
        return OwnerAnalytics.from_api(self.get("/api/analytics/owner/detailed"))

    def owner_report(self, **params: Any) -> list:
        return _items(self.get("/api/analytics/owner/report", **params), "rows", "report")

    # ---- notifications -------------------------------------------------------

    def notifications(self) -> List[Notification]:
        data = self.get("/api/notifications")
        return parse_list(Notification, _items(data, "notifications"))

    def mark_notification_read(self, notification_id: str) -> dict:
        return self.request("PUT", f"/api/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> dict:
        return self.request("PUT", "/api/notifications/all-read")
