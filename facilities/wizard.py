"""
Four-step venue listing wizard.

Steps form a line: Basic Info -> Pricing & Policy -> Sports & Amenities -> Images.
Moving forward is allowed only when the current step's guard passes; moving back is
always allowed. Guards and transitions are plain data so the rules read in one place.
"""
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Callable, Dict, Optional, Tuple

from django.db import models

SPORTS = [
    (1, "Football"),
    (2, "Futsal"),
    (3, "Basketball"),
    (4, "Tennis"),
    (5, "Badminton"),
]

AMENITIES = [
    (1, "Changing Room"),
    (2, "Shower"),
    (3, "Parking"),
    (4, "Floodlights"),
    (5, "Scoreboard"),
]

POLICIES = [
    (1, "Standard (Refund 90% within 5 hours)"),
    (2, "Strict (Refund 80% within 24 hours)"),
    (3, "Flexible (Refund 90% within 6 hours)"),
]

MAX_IMAGES = 5


class Step(IntEnum):
    BASIC_INFO = 1
    PRICING_POLICY = 2
    SPORTS_AMENITIES = 3
    IMAGES = 4

    @property
    def label(self) -> str:
        return {
            Step.BASIC_INFO: "Basic Information",
            Step.PRICING_POLICY: "Pricing & Policy",
            Step.SPORTS_AMENITIES: "Sports & Amenities",
            Step.IMAGES: "Images",
        }[self]


class Action(models.TextChoices):
    NEXT = "next", "Next"
    BACK = "back", "Back"
    SUBMIT = "submit", "Submit"


class StepRejected(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ---- Guards ------------------------------------------------------------------
# Each returns None when the step may be left forwards, else the message to show.

def _blank(value) -> bool:
    return not str(value or "").strip()


def parse_price(raw) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def basic_info_complete(data: dict) -> Optional[str]:
    if any(_blank(data.get(k)) for k in ("name", "address", "city")):
        return "Please fill in all required fields"
    return None


def price_is_number(data: dict) -> Optional[str]:
    if parse_price(data.get("price_per_hour")) is None:
        return "Please enter a valid price"
    return None


def has_sport(data: dict) -> Optional[str]:
    if not data.get("sport_ids"):
        return "Please select at least one sport"
    return None


def no_gate(data: dict) -> Optional[str]:
    return None


STEP_GUARDS: Dict[Step, Callable[[dict], Optional[str]]] = {
    Step.BASIC_INFO: basic_info_complete,
    Step.PRICING_POLICY: price_is_number,
    Step.SPORTS_AMENITIES: has_sport,
    Step.IMAGES: no_gate,
}

TRANSITIONS: Dict[Tuple[Step, str], Step] = {
    (Step.BASIC_INFO, Action.NEXT): Step.PRICING_POLICY,
    (Step.PRICING_POLICY, Action.NEXT): Step.SPORTS_AMENITIES,
    (Step.SPORTS_AMENITIES, Action.NEXT): Step.IMAGES,
    (Step.BASIC_INFO, Action.BACK): Step.BASIC_INFO,
    (Step.PRICING_POLICY, Action.BACK): Step.BASIC_INFO,
    (Step.SPORTS_AMENITIES, Action.BACK): Step.PRICING_POLICY,
    (Step.IMAGES, Action.BACK): Step.SPORTS_AMENITIES,
}


def empty_data() -> dict:
    return {
        "name": "",
        "description": "",
        "address": "",
        "city": "",
        "price_per_hour": "",
        "cancellation_policy_id": POLICIES[0][0],
        "sport_ids": [],
        "amenity_ids": [],
        "image_urls": [""],
    }


class VenueWizard:
    SESSION_KEY = "facilities:venue_wizard"

    def __init__(self, data: Optional[dict] = None, step: Step = Step.BASIC_INFO, submitting: bool = False):
        self.data = {**empty_data(), **(data or {})}
        self.step = Step(step)
        self.submitting = submitting

    # ---- persistence ---------------------------------------------------------

    @classmethod
    def from_session(cls, store) -> "VenueWizard":
        raw = store.get(cls.SESSION_KEY)
        if not raw:
            return cls()
        return cls(data=raw.get("data"), step=Step(raw.get("step", Step.BASIC_INFO)))

    def to_session(self, store) -> None:
        store[self.SESSION_KEY] = {"data": self.data, "step": int(self.step)}

    @classmethod
    def discard(cls, store) -> None:
        store.pop(cls.SESSION_KEY, None)

    # ---- transitions ---------------------------------------------------------

    def update(self, values: dict) -> None:
        self.data.update(values)

    @property
    def progress(self) -> int:
        return int(self.step) * 100 // len(Step)

    def apply(self, action: str) -> Step:
        target = TRANSITIONS.get((self.step, action))
        if target is None:
            raise StepRejected(f"Cannot {action} from {self.step.label}")
        if action == Action.NEXT:
            problem = STEP_GUARDS[self.step](self.data)
            if problem:
                raise StepRejected(problem)
        self.step = target
        return self.step

    def advance(self) -> Step:
        return self.apply(Action.NEXT)

    def back(self) -> Step:
        return self.apply(Action.BACK)

    # ---- submission ----------------------------------------------------------

    def payload(self) -> dict:
        price = Decimal(str(parse_price(self.data.get("price_per_hour"))))
        price_value = int(price) if price == price.to_integral_value() else float(price)
        images = [u.strip() for u in self.data.get("image_urls") or [] if u and u.strip()]
        return {
            "name": self.data["name"].strip(),
            "description": (self.data.get("description") or "").strip(),
            "address": self.data["address"].strip(),
            "city": self.data["city"].strip(),
            "pricePerHour": price_value,
            "cancellationPolicyId": int(self.data.get("cancellation_policy_id") or POLICIES[0][0]),
            "sportIds": [int(s) for s in self.data.get("sport_ids") or []],
            "amenityIds": [int(a) for a in self.data.get("amenity_ids") or []],
            "imageUrls": images[:MAX_IMAGES],
        }

    def submit(self, client) -> Optional[dict]:
        """
        Send the venue once. Returns the backend answer, or None when a submit is
        already in flight or done. Backend errors propagate, clear the flag and leave
        the wizard on step 4 for another try.
        """
        if self.step != Step.IMAGES:
            raise StepRejected("Finish every step before submitting")
        if self.submitting:
            return None
        for step in Step:
            problem = STEP_GUARDS[step](self.data)
            if problem:
                raise StepRejected(problem)
        self.submitting = True
        try:
            return client.create_venue(self.payload())
        except Exception:
            self.submitting = False
            raise
