from datetime import date, datetime
from decimal import Decimal

import httpx
from django.test import SimpleTestCase, override_settings

from .client import PlayLinkClient
from .exceptions import (
    GENERIC_FAILURE,
    BackendPayloadError,
    BackendResponseError,
    BackendUnavailable,
    NotAuthenticated,
)
from .resources import AuthenticatedUser, Booking, PricingRule, Review, Venue, bookings_from_api
from .testing import FakeBackend


class ClientErrorMappingTests(SimpleTestCase):
    def setUp(self):
        self.backend = FakeBackend()
        self.client_ = PlayLinkClient("http://backend.test", transport=self.backend.transport())
        self.addCleanup(self.client_.close)

    def test_transport_failure_becomes_generic_unavailable(self):
        self.backend.fail("GET", "/api/venues")
        with self.assertRaises(BackendUnavailable) as ctx:
            self.client_.list_venues()
        self.assertEqual(ctx.exception.message, GENERIC_FAILURE)

    def test_timeout_becomes_unavailable(self):
        self.backend.fail("GET", "/api/venues", httpx.ReadTimeout("slow"))
        with self.assertRaises(BackendUnavailable):
            self.client_.list_venues()

    def test_server_message_is_kept_verbatim(self):
        self.backend.on("POST", "/api/bookings/venue/v1/walk-in", {"message": "Slot already booked"}, status=409)
        with self.assertRaises(BackendResponseError) as ctx:
            self.client_.create_walk_in("v1", {})
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.message, "Slot already booked")

    def test_error_without_message_falls_back_to_generic(self):
        self.backend.on("GET", "/api/wallet/summary", lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(BackendResponseError) as ctx:
            self.client_.wallet_summary()
        self.assertEqual(ctx.exception.message, GENERIC_FAILURE)

    def test_401_is_not_authenticated(self):
        self.backend.on("GET", "/api/bookings/my", {"message": "Session expired"}, status=401)
        with self.assertRaises(NotAuthenticated) as ctx:
            self.client_.my_bookings()
        self.assertEqual(ctx.exception.message, "Session expired")

    def test_empty_success_body_is_empty_dict(self):
        self.backend.on("PATCH", "/api/bookings/b1/cancel", lambda request: httpx.Response(204))
        self.assertEqual(self.client_.cancel_booking("b1"), {})

    def test_each_call_is_sent_once(self):
        self.backend.on("POST", "/api/venues", {"message": "boom"}, status=500)
        with self.assertRaises(BackendResponseError):
            self.client_.create_venue({"name": "Arena"})
        self.assertEqual(len(self.backend.calls("POST", "/api/venues")), 1)


class ClientEndpointTests(SimpleTestCase):
    def setUp(self):
        self.backend = FakeBackend()
        self.client_ = PlayLinkClient("http://backend.test", transport=self.backend.transport())
        self.addCleanup(self.client_.close)

    def test_calendar_query_uses_iso_dates(self):
        self.backend.on("GET", "/api/bookings/venue/v1/calendar", {"bookings": []})
        self.client_.venue_calendar("v1", date(2026, 2, 16), date(2026, 2, 22))
        request = self.backend.calls("GET", "/api/bookings/venue/v1/calendar")[0]
        self.assertEqual(request.url.params["start"], "2026-02-16")
        self.assertEqual(request.url.params["end"], "2026-02-22")

    def test_lists_arrive_bare_or_wrapped(self):
        self.backend.on("GET", "/api/venues", [{"venue_id": "v1", "venue_name": "Urban Sports Arena"}])
        self.backend.on("GET", "/api/venues/my-venues", {"venues": [{"id": "v2", "name": "Court Two"}]})
        self.assertEqual([v.id for v in self.client_.list_venues()], ["v1"])
        self.assertEqual([v.name for v in self.client_.my_venues()], ["Court Two"])

    def test_blank_search_is_not_sent(self):
        self.backend.on("GET", "/api/venues", [])
        self.client_.list_venues(search="")
        self.assertNotIn("search", self.backend.calls("GET", "/api/venues")[0].url.params)

    def test_login_cookies_are_exposed_for_the_session(self):
        self.backend.on("POST", "/api/users/login", {"user": {"id": "u1"}}, cookies={"sid": "abc"})
        self.client_.login("a@b.test", "pw")
        self.assertEqual(self.client_.cookies, {"sid": "abc"})

    def test_split_share_and_topup_payloads(self):
        self.backend.on("POST", "/api/bookings/pay-split-share", {})
        self.backend.on("POST", "/api/wallet/confirm-topup", {})
        self.client_.pay_split_share("b9")
        self.client_.confirm_topup("pi_1", 1500)
        self.assertEqual(self.backend.last_json("POST", "/api/bookings/pay-split-share"), {"bookingId": "b9"})
        self.assertEqual(
            self.backend.last_json("POST", "/api/wallet/confirm-topup"),
            {"paymentIntentId": "pi_1", "amount": 1500},
        )

    def test_booked_slots_for_one_day_in_start_order(self):
        self.backend.on("GET", "/api/bookings/booked-slots/v1", {"slots": [
            {"booking_start": "2026-02-16T14:00:00", "booking_end": "2026-02-16T15:00:00", "status": "confirmed"},
            {"booking_start": "2026-02-16T09:00:00", "booking_end": "2026-02-16T10:00:00", "status": "PENDING"},
            {"status": "CONFIRMED"},
        ]})
        slots = self.client_.booked_slots("v1", date(2026, 2, 16))
        request = self.backend.calls("GET", "/api/bookings/booked-slots/v1")[0]
        self.assertEqual(request.url.params["date"], "2026-02-16")
        self.assertEqual([s.start.hour for s in slots], [9, 14])
        self.assertEqual(slots[1].status, "CONFIRMED")

    def test_malformed_list_entry_is_a_payload_error(self):
        self.backend.on("GET", "/api/venues/v1/reviews", {"reviews": [{"review_id": "r1", "rating": "4.5"}]})
        with self.assertRaises(BackendPayloadError) as ctx:
            self.client_.reviews("v1")
        self.assertEqual(ctx.exception.resource, "Review")
        self.assertEqual(ctx.exception.message, GENERIC_FAILURE)

    def test_notifications_read_all_uses_put(self):
        self.backend.on("PUT", "/api/notifications/all-read", {})
        self.client_.mark_all_notifications_read()
        self.assertEqual(len(self.backend.calls("PUT", "/api/notifications/all-read")), 1)


@override_settings(TIME_ZONE="Asia/Colombo")
class ResourceParsingTests(SimpleTestCase):
    def test_booking_accepts_snake_case_and_camel_case(self):
        snake = Booking.from_api({
            "booking_id": "b1", "venue_id": "v1",
            "booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00",
            "status": "confirmed", "sport_id": 1, "total_amount": "2500.00",
        })
        camel = Booking.from_api({
            "bookingId": "b1", "venueId": "v1",
            "bookingStart": "2026-02-16T10:00:00", "bookingEnd": "2026-02-16T11:00:00",
            "status": "CONFIRMED", "sportId": "1", "totalAmount": 2500,
        })
        self.assertEqual(snake.start, camel.start)
        self.assertEqual(snake.status, "CONFIRMED")
        self.assertEqual(snake.sport_id, camel.sport_id)
        self.assertEqual(snake.total_amount, Decimal("2500.00"))

    def test_aware_timestamps_become_local_wall_clock(self):
        booking = Booking.from_api({
            "booking_id": "b1",
            "booking_start": "2026-02-16T04:30:00Z",
            "booking_end": "2026-02-16T05:30:00Z",
        })
        self.assertEqual(booking.start, datetime(2026, 2, 16, 10, 0))
        self.assertIsNone(booking.start.tzinfo)

    def test_walk_in_and_block_classification(self):
        walk_in = Booking.from_api({
            "booking_id": "b1", "booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00",
            "customer_name": "Walk-in Customer",
        })
        online = Booking.from_api({
            "booking_id": "b2", "booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00",
            "created_by": "u5",
        })
        block = Booking.from_api({
            "booking_id": "b3", "booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00",
            "status": "BLOCKED", "customer_name": "ignored",
        })
        self.assertTrue(walk_in.is_walk_in)
        self.assertFalse(online.is_walk_in)
        self.assertTrue(block.is_block)
        self.assertFalse(block.is_walk_in)

    def test_bookings_without_time_range_are_skipped(self):
        items = [
            {"booking_id": "ok", "booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00"},
            {"booking_id": "broken"},
        ]
        self.assertEqual([b.id for b in bookings_from_api(items)], ["ok"])

    def test_split_share_due_only_for_unpaid_participants(self):
        base = {"booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00"}
        due = Booking.from_api({**base, "booking_id": "b1", "is_initiator": False, "payment_status": "PENDING"})
        paid = Booking.from_api({**base, "booking_id": "b2", "is_initiator": False, "payment_status": "PAID"})
        initiator = Booking.from_api({**base, "booking_id": "b3", "is_initiator": True})
        self.assertTrue(due.has_split_share_due)
        self.assertFalse(paid.has_split_share_due)
        self.assertFalse(initiator.has_split_share_due)

    def test_venue_location_and_price(self):
        venue = Venue.from_api({"venue_id": "v1", "venue_name": "Arena", "address": "1 Main St",
                                "city": "Colombo", "price_per_hour": "2500"})
        self.assertEqual(venue.location, "1 Main St, Colombo")
        self.assertEqual(venue.price_per_hour, Decimal("2500"))

    def test_pricing_rule_days_label(self):
        every = PricingRule.from_api({"rule_id": "r1", "name": "Peak", "multiplier": 1.5, "days_of_week": []})
        all_days = PricingRule.from_api({"rule_id": "r2", "name": "Peak", "days_of_week": "[0,1,2,3,4,5,6]"})
        weekend = PricingRule.from_api({"rule_id": "r3", "name": "Weekend", "daysOfWeek": [0, 6]})
        self.assertEqual(every.days_label(), "Every day")
        self.assertEqual(all_days.days_label(), "Every day")
        self.assertEqual(weekend.days_label(), "Sun, Sat")

    def test_junk_numbers_are_rejected_not_zeroed(self):
        with self.assertRaises(BackendPayloadError):
            Venue.from_api({"venue_id": "v1", "price_per_hour": "N/A"})
        with self.assertRaises(BackendPayloadError):
            Booking.from_api({
                "booking_id": "b1", "booking_start": "2026-02-16T10:00:00",
                "booking_end": "2026-02-16T11:00:00", "total_amount": "oops",
            })

    def test_null_and_blank_keys_read_as_missing(self):
        venue = Venue.from_api({"venue_id": 7, "venue_name": None, "price_per_hour": "", "images": "a.jpg"})
        self.assertEqual(venue.id, "7")
        self.assertEqual(venue.name, "")
        self.assertEqual(venue.price_per_hour, Decimal("0"))
        self.assertEqual(venue.image_urls, ["a.jpg"])

    def test_review_rating_must_be_a_whole_star(self):
        self.assertEqual(Review.from_api({"review_id": "r1", "rating": "4"}).rating, 4)
        for rating in ("4.5", 0, 6, "great"):
            with self.subTest(rating=rating), self.assertRaises(BackendPayloadError):
                Review.from_api({"review_id": "r1", "rating": rating})

    def test_review_author_from_first_and_last_name(self):
        review = Review.from_api({"review_id": "r1", "rating": 5, "first_name": "Nimal", "last_name": "Perera"})
        self.assertEqual(review.author_name, "Nimal Perera")
        self.assertEqual(Review.from_api({"review_id": "r2", "rating": 5}).author_name, "Player")

    def test_user_round_trips_through_the_session_shape(self):
        user = AuthenticatedUser.from_api({"user_id": 3, "fullName": "Asha", "account_type": "venue_owner"})
        self.assertTrue(user.is_venue_owner)
        self.assertEqual(AuthenticatedUser.from_api(user.to_session()), user)
