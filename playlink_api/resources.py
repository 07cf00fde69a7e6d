"""
View models for what the backend returns.

The backend is the system of record; these are read-mostly snapshots validated from
its JSON with pydantic. Keys arrive in snake_case from most endpoints and camelCase
from a few, so fields list every spelling as a validation alias. A payload that does
not fit raises `BackendPayloadError`, never a half-filled model.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, time
from decimal import Decimal
from typing import Annotated, Any, Iterable, List, Optional, Type, TypeVar

from django.db import models
from django.utils import timezone
from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import BackendPayloadError

logger = logging.getLogger(__name__)


class AccountType(models.TextChoices):
    PLAYER = "PLAYER", "Player"
    USER = "USER", "Player"
    VENUE_OWNER = "VENUE_OWNER", "Venue owner"
    EMPLOYEE = "EMPLOYEE", "Employee"


PLAYER_TYPES = {AccountType.PLAYER, AccountType.USER}


class BookingStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    CANCELLED = "CANCELLED", "Cancelled"
    COMPLETED = "COMPLETED", "Completed"
    BLOCKED = "BLOCKED", "Blocked"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"


class TransactionDirection(models.TextChoices):
    CREDIT = "CREDIT", "Credit"
    DEBIT = "DEBIT", "Debit"


DAYS_OF_WEEK = [
    (0, "Sun"),
    (1, "Mon"),
    (2, "Tue"),
    (3, "Wed"),
    (4, "Thu"),
    (5, "Fri"),
    (6, "Sat"),
]


# ---- Field types -------------------------------------------------------------

def to_local_naive(value: datetime) -> datetime:
    """Express an aware timestamp as naive local (TIME_ZONE) wall-clock time."""
    if timezone.is_aware(value):
        return timezone.localtime(value).replace(tzinfo=None)
    return value


LocalDateTime = Annotated[datetime, AfterValidator(to_local_naive)]


def _upper(value: str) -> str:
    return value.upper()


UpperStr = Annotated[str, AfterValidator(_upper)]


M = TypeVar("M", bound="Resource")


class Resource(BaseModel):
    """Frozen snapshot built from one backend object. Null and blank keys read as missing."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_blanks(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None and v != ""}
        return data

    @classmethod
    def from_api(cls: Type[M], payload: Any) -> M:
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Unreadable %s payload from backend: %s", cls.__name__, exc)
            raise BackendPayloadError(cls.__name__, exc.errors(include_url=False)) from exc


def parse_list(model: Type[M], items: Optional[Iterable[Any]]) -> List[M]:
    return [model.from_api(item) for item in items or []]


# ---- Session -----------------------------------------------------------------

class AuthenticatedUser(Resource):
    id: str = Field("", validation_alias=AliasChoices("id", "user_id", "userId"))
    email: str = ""
    full_name: str = Field("", validation_alias=AliasChoices("full_name", "fullName", "name"))
    account_type: UpperStr = Field(AccountType.PLAYER, validation_alias=AliasChoices("account_type", "accountType"))
    city: str = ""

    @property
    def is_player(self) -> bool:
        return self.account_type in PLAYER_TYPES

    @property
    def is_venue_owner(self) -> bool:
        return self.account_type == AccountType.VENUE_OWNER

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Partner"

    def to_session(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "accountType": self.account_type,
            "city": self.city,
        }


# ---- Venues ------------------------------------------------------------------

class Sport(Resource):
    id: str = Field(validation_alias=AliasChoices("sport_id", "sportId", "id"))
    name: str = Field("", validation_alias=AliasChoices("name", "sport_name", "sportName"))


class Venue(Resource):
    id: str = Field(validation_alias=AliasChoices("venue_id", "venueId", "id"))
    name: str = Field("", validation_alias=AliasChoices("venue_name", "venueName", "name"))
    address: str = ""
    city: str = Field("", validation_alias=AliasChoices("city", "location"))
    price_per_hour: Decimal = Field(Decimal("0"), validation_alias=AliasChoices("price_per_hour", "pricePerHour"))
    is_active: bool = Field(True, validation_alias=AliasChoices("is_active", "isActive"))
    image_urls: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("image_urls", "imageUrls", "images"),
    )
    sports: List[Sport] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    owner_id: Optional[str] = Field(None, validation_alias=AliasChoices("owner_id", "ownerId"))
    description: str = ""
    court_type: str = Field("", validation_alias=AliasChoices("court_type", "courtType"))

    @field_validator("image_urls", mode="before")
    @classmethod
    def _image_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [u for u in value if u]
        return value

    @field_validator("sports", mode="before")
    @classmethod
    def _sport_entries(cls, value: Any) -> Any:
        # Some endpoints send bare sport names instead of objects.
        if isinstance(value, list):
            return [s if isinstance(s, (dict, Sport)) else {"id": s, "name": str(s)} for s in value]
        return value

    @field_validator("amenities", mode="before")
    @classmethod
    def _amenity_names(cls, value: Any) -> Any:
        if isinstance(value, list):
            names = [a.get("name", "") if isinstance(a, dict) else a for a in value]
            return [n for n in names if n]
        return value

    @property
    def location(self) -> str:
        return ", ".join(p for p in (self.address, self.city) if p)


# ---- Bookings ----------------------------------------------------------------

class Booking(Resource):
    """A reservation or block on a venue over the half-open interval [start, end)."""

    id: str = Field(validation_alias=AliasChoices("booking_id", "bookingId", "id"))
    venue_id: Optional[str] = Field(None, validation_alias=AliasChoices("venue_id", "venueId"))
    start: LocalDateTime = Field(validation_alias=AliasChoices("booking_start", "bookingStart", "start"))
    end: LocalDateTime = Field(validation_alias=AliasChoices("booking_end", "bookingEnd", "end"))
    status: UpperStr = BookingStatus.PENDING
    payment_status: UpperStr = Field(
        PaymentStatus.PENDING, validation_alias=AliasChoices("payment_status", "paymentStatus"),
    )
    total_amount: Decimal = Field(Decimal("0"), validation_alias=AliasChoices("total_amount", "totalAmount", "amount"))
    is_initiator: Optional[bool] = Field(None, validation_alias=AliasChoices("is_initiator", "isInitiator"))
    share_amount: Optional[Decimal] = Field(None, validation_alias=AliasChoices("share_amount", "shareAmount"))
    customer_name: str = Field(
        "", validation_alias=AliasChoices("customer_name", "customerName", "guest_name", "guestName"),
    )
    customer_email: str = Field(
        "", validation_alias=AliasChoices("customer_email", "customerEmail", "guest_email", "guestEmail"),
    )
    sport_id: Optional[str] = Field(None, validation_alias=AliasChoices("sport_id", "sportId"))
    sport_name: str = Field("", validation_alias=AliasChoices("sport_name", "sportName"))
    court_name: str = Field("", validation_alias=AliasChoices("court_name", "courtName"))
    created_by: Optional[str] = Field(None, validation_alias=AliasChoices("created_by", "createdBy"))
    source: UpperStr = Field("", validation_alias=AliasChoices("booking_source", "source", "booking_type", "type"))
    venue_name: str = Field("", validation_alias=AliasChoices("venue_name", "venueName"))

    @property
    def is_block(self) -> bool:
        return self.status == BookingStatus.BLOCKED

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    @property
    def is_walk_in(self) -> bool:
        if self.is_block:
            return False
        if self.source:
            return self.source in {"WALK_IN", "WALKIN", "MANUAL"}
        return not self.created_by and bool(self.customer_name or self.customer_email)

    @property
    def has_split_share_due(self) -> bool:
        return self.is_initiator is False and self.payment_status != PaymentStatus.PAID


def bookings_from_api(items: Optional[Iterable[Any]]) -> List[Booking]:
    """Build bookings, skipping entries the calendar cannot place (logged by `from_api`)."""
    out: List[Booking] = []
    for item in items or []:
        try:
            out.append(Booking.from_api(item))
        except BackendPayloadError:
            continue
    return out


class BookedSlot(Resource):
    """A taken time range as shown to players; carries no customer data."""

    start: LocalDateTime = Field(validation_alias=AliasChoices("booking_start", "bookingStart", "start"))
    end: LocalDateTime = Field(validation_alias=AliasChoices("booking_end", "bookingEnd", "end"))
    status: UpperStr = ""


# ---- Pricing rules -----------------------------------------------------------

class PricingRule(Resource):
    id: str = Field(validation_alias=AliasChoices("rule_id", "ruleId", "id"))
    name: str = ""
    start_time: Optional[time] = Field(None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: Optional[time] = Field(None, validation_alias=AliasChoices("end_time", "endTime"))
    multiplier: Decimal = Decimal("1")
    days_of_week: List[int] = Field(default_factory=list, validation_alias=AliasChoices("days_of_week", "daysOfWeek"))

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _days_from_json(cls, value: Any) -> Any:
        # Stored as a JSON string by the backend.
        if isinstance(value, str):
            return json.loads(value) if value.strip() else []
        return value

    def days_label(self) -> str:
        if not self.days_of_week or len(set(self.days_of_week)) == 7:
            return "Every day"
        labels = dict(DAYS_OF_WEEK)
        return ", ".join(labels[d] for d in self.days_of_week if d in labels)


# ---- Reviews -----------------------------------------------------------------

class Review(Resource):
    id: str = Field(validation_alias=AliasChoices("review_id", "reviewId", "id"))
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    reply: str = Field("", validation_alias=AliasChoices("owner_reply", "ownerReply", "reply"))
    author_name: str = Field("Player", validation_alias=AliasChoices("author_name", "full_name", "fullName"))
    created_at: Optional[LocalDateTime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))

    @model_validator(mode="before")
    @classmethod
    def _author_from_names(cls, data: Any) -> Any:
        if not isinstance(data, dict) or any(data.get(k) for k in ("author_name", "full_name", "fullName")):
            return data
        joined = " ".join(str(p) for p in (data.get("first_name"), data.get("last_name")) if p)
        return {**data, "author_name": joined} if joined else data


# ---- Wallet ------------------------------------------------------------------

class WalletTransaction(Resource):
    id: str = Field("", validation_alias=AliasChoices("transaction_id", "transactionId", "id"))
    amount: Decimal
    direction: UpperStr = TransactionDirection.CREDIT
    description: str = ""
    venue_name: str = Field("", validation_alias=AliasChoices("venue_name", "venueName"))
    created_at: Optional[LocalDateTime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))

    @property
    def is_credit(self) -> bool:
        return self.direction == TransactionDirection.CREDIT


class WalletSummary(Resource):
    balance: Decimal = Field(Decimal("0"), validation_alias=AliasChoices("balance", "points"))
    transactions: List[WalletTransaction] = Field(default_factory=list)


# ---- Notifications -----------------------------------------------------------

class Notification(Resource):
    id: str = Field(validation_alias=AliasChoices("notification_id", "notificationId", "id"))
    message: str = ""
    title: str = ""
    kind: str = Field("", validation_alias=AliasChoices("type", "kind"))
    is_read: bool = Field(False, validation_alias=AliasChoices("is_read", "isRead"))
    created_at: Optional[LocalDateTime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))


# ---- Owner analytics ---------------------------------------------------------

class OwnerSummary(Resource):
    total_bookings: int = Field(0, validation_alias=AliasChoices("total_bookings", "totalBookings"))
    total_revenue: Decimal = Field(Decimal("0"), validation_alias=AliasChoices("total_revenue", "totalRevenue"))
    active_venues: int = Field(0, validation_alias=AliasChoices("active_venues", "activeVenues"))


class VenueRevenue(Resource):
    venue: str = Field("Venue", validation_alias=AliasChoices("venue_name", "venueName", "name"))
    revenue: Decimal = Field(Decimal("0"), validation_alias=AliasChoices("revenue", "total_revenue", "totalRevenue"))
    bookings: int = Field(0, validation_alias=AliasChoices("bookings", "total_bookings", "totalBookings"))


class PeakHour(Resource):
    hour: int = Field(ge=0, le=23)
    bookings: int = Field(0, validation_alias=AliasChoices("bookings", "count"))

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"


class OwnerAnalytics(Resource):
    revenue_by_venue: List[VenueRevenue] = Field(
        default_factory=list, validation_alias=AliasChoices("revenue_by_venue", "revenueByVenue"),
    )
    peak_hours: List[PeakHour] = Field(default_factory=list, validation_alias=AliasChoices("peak_hours", "peakHours"))
