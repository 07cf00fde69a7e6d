from datetime import date, time

from django.test import SimpleTestCase, override_settings
from django.urls import reverse

from accounts.testing import BackendTestCase
from playlink_api.resources import Sport
from scheduling.grid import CellState, ViewMode

from .forms import BookingRequestForm, SlotActionForm
from .views import calendar_url

SPORTS = [Sport(id="1", name="Futsal"), Sport(id="2", name="Tennis")]
VENUES = [{"venue_id": "v1", "venue_name": "Urban Sports Arena", "owner_id": "u1"}]
ONLINE_10_TO_11 = {
    "booking_id": "b1", "venue_id": "v1", "status": "CONFIRMED", "sport_id": 1, "created_by": "u5",
    "booking_start": "2026-02-16T10:00:00", "booking_end": "2026-02-16T11:00:00", "total_amount": 2500,
}
BLOCK_15_TO_17 = {
    "booking_id": "b2", "venue_id": "v1", "status": "BLOCKED",
    "booking_start": "2026-02-16T15:00:00", "booking_end": "2026-02-16T17:00:00",
}


class SlotActionFormTests(SimpleTestCase):
    walk_in = {
        "date": "2026-02-16", "start_time": "12:00", "duration": "2", "action": "WALK_IN", "sport": "1",
        "amount_paid": "1500", "customer_name": "Walk-in Customer", "customer_email": "customer@test.com",
    }

    def form(self, **overrides):
        return SlotActionForm({**self.walk_in, **overrides}, sports=SPORTS)

    def test_walk_in_payload(self):
        form = self.form()
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            "date": "2026-02-16", "startTime": "12:00", "duration": 2, "type": "WALK_IN", "sportId": "1",
            "customerName": "Walk-in Customer", "customerEmail": "customer@test.com", "amountPaid": 1500,
        })

    def test_block_payload_has_no_walk_in_fields(self):
        form = self.form(action="BLOCK", duration="1.5", sport="")
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            "date": "2026-02-16", "startTime": "12:00", "duration": 1.5, "type": "BLOCK",
        })

    def test_block_needs_no_customer(self):
        self.assertTrue(self.form(action="BLOCK", customer_name="", customer_email="", amount_paid="").is_valid())

    def test_walk_in_needs_a_customer_name(self):
        form = self.form(customer_name="  ")
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["customer_name"], ["Customer name is required for a walk-in booking"])

    def test_amount_and_email_are_optional_but_checked(self):
        self.assertTrue(self.form(amount_paid="", customer_email="").is_valid())
        self.assertFalse(self.form(amount_paid="-1").is_valid())
        self.assertFalse(self.form(customer_email="not-an-email").is_valid())

    def test_durations_are_a_fixed_set(self):
        for value in ("1", "1.5", "2", "2.5", "3", "4", "5"):
            with self.subTest(value=value):
                self.assertTrue(self.form(duration=value).is_valid())
        self.assertFalse(self.form(duration="6").is_valid())
        self.assertFalse(self.form(duration="0.5").is_valid())

    def test_start_must_be_on_the_grid(self):
        self.assertFalse(self.form(start_time="12:30").is_valid())
        self.assertFalse(self.form(start_time="06:00").is_valid())
        self.assertFalse(self.form(start_time="22:00").is_valid())
        self.assertTrue(self.form(start_time="21:00").is_valid())

    def test_unknown_sport_is_rejected(self):
        self.assertFalse(self.form(sport="99").is_valid())


class BookingRequestFormTests(SimpleTestCase):
    def test_checkout_payload(self):
        form = BookingRequestForm(
            {"date": "2027-02-17", "time": "10:00", "hours": "2", "sport": "s1"},
            sports=[Sport(id="s1", name="Futsal")],
        )
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload("v1"), {
            "venueId": "v1", "date": "2027-02-17", "time": "10:00", "hours": 2, "sportId": "s1",
        })

    def test_missing_fields_share_one_message(self):
        form = BookingRequestForm({"date": "", "time": "", "hours": ""})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["date"], ["Please select date, time and duration"])


class CalendarViewTests(BackendTestCase):
    url = reverse("bookings:calendar")

    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")
        self.backend.on("GET", "/api/venues/my-venues", VENUES)
        self.backend.on("GET", "/api/venues/v1/sports", [{"sport_id": "1", "name": "Futsal"}])
        self.backend.on("GET", "/api/bookings/venue/v1/calendar", {"bookings": [ONLINE_10_TO_11, BLOCK_15_TO_17]})

    def cell(self, response, hour, column=0):
        row = next(r for r in response.context["grid"].rows if r.hour == hour)
        return row.cells[column]

    def test_day_view_classifies_cells(self):
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "day"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context["grid"].rows), 15)
        self.assertEqual(self.cell(response, 10).state, CellState.ONLINE)
        self.assertEqual(self.cell(response, 11).state, CellState.AVAILABLE)
        self.assertEqual(self.cell(response, 15).state, CellState.BLOCKED)
        self.assertEqual(self.cell(response, 16).state, CellState.BLOCKED)
        request = self.backend.calls("GET", "/api/bookings/venue/v1/calendar")[0]
        self.assertEqual((request.url.params["start"], request.url.params["end"]), ("2026-02-16", "2026-02-16"))

    def test_week_view_fetches_monday_to_sunday(self):
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-22", "view": "week"})
        request = self.backend.calls("GET", "/api/bookings/venue/v1/calendar")[0]
        self.assertEqual((request.url.params["start"], request.url.params["end"]), ("2026-02-16", "2026-02-22"))
        self.assertEqual(len(response.context["grid"].days), 7)
        self.assertEqual(self.cell(response, 10, column=0).state, CellState.ONLINE)

    def test_first_venue_is_the_default(self):
        response = self.client.get(self.url, {"date": "2026-02-16"})
        self.assertEqual(response.context["venue_id"], "v1")

    def test_unknown_view_falls_back_to_week(self):
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "month"})
        self.assertEqual(response.context["mode"], ViewMode.WEEK)

    def test_sport_filter_hides_other_sports_but_not_venue_wide_blocks(self):
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "day", "sport": "2"})
        self.assertEqual(self.cell(response, 10).state, CellState.AVAILABLE)
        self.assertEqual(self.cell(response, 15).state, CellState.BLOCKED)

    def test_navigation_links_step_by_view(self):
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "day"})
        self.assertEqual(response.context["next_url"], calendar_url("v1", date(2026, 2, 17), ViewMode.DAY))
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "week"})
        self.assertEqual(response.context["previous_url"], calendar_url("v1", date(2026, 2, 9), ViewMode.WEEK))

    def test_fetch_failure_fails_open_with_a_warning(self):
        self.backend.fail("GET", "/api/bookings/venue/v1/calendar")
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "day"})
        self.assertFalse(response.context["disabled"])
        self.assertTrue(all(c.is_available for c in response.context["grid"].cells()))
        self.assertTrue(any("could not be loaded" in m for m in self.messages_of(response)))

    @override_settings(PLAYLINK_CALENDAR_FAIL_OPEN=False)
    def test_fetch_failure_can_fail_closed(self):
        self.backend.fail("GET", "/api/bookings/venue/v1/calendar")
        response = self.client.get(self.url, {"venue": "v1", "date": "2026-02-16", "view": "day"})
        self.assertTrue(response.context["disabled"])
        self.assertIn("Something went wrong. Please try again.", self.messages_of(response))


class SlotActionViewTests(BackendTestCase):
    url = reverse("bookings:slot_action", args=["v1"])

    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")
        self.backend.on("GET", "/api/venues/v1/sports", [{"sport_id": "1", "name": "Futsal"}])
        self.backend.on("GET", "/api/bookings/venue/v1/calendar", {"bookings": [ONLINE_10_TO_11]})

    def test_prefills_slot_and_warns_about_overlap(self):
        response = self.client.get(self.url, {"date": "2026-02-16", "time": "10:00"})
        form = response.context["form"]
        self.assertEqual(form.initial["date"], date(2026, 2, 16))
        self.assertEqual(form.initial["start_time"], time(10, 0))
        self.assertEqual(response.context["conflict"].id, "b1")

    def test_overlap_warning_follows_the_sport_filter(self):
        other = self.client.get(self.url, {"date": "2026-02-16", "time": "10:00", "sport": "2"})
        same = self.client.get(self.url, {"date": "2026-02-16", "time": "10:00", "sport": "1"})
        self.assertIsNone(other.context["conflict"])
        self.assertEqual(same.context["conflict"].id, "b1")

    def test_rejected_request_still_warns_across_the_whole_duration(self):
        self.backend.on("POST", "/api/bookings/venue/v1/walk-in", {"message": "Slot already booked"}, status=409)
        long = self.client.post(self.url, {
            "date": "2026-02-16", "start_time": "09:00", "duration": "2", "action": "BLOCK", "sport": "1",
        })
        short = self.client.post(self.url, {
            "date": "2026-02-16", "start_time": "09:00", "duration": "1", "action": "BLOCK", "sport": "1",
        })
        self.assertEqual(long.context["conflict"].id, "b1")
        self.assertIsNone(short.context["conflict"])

    def test_free_slot_has_no_warning(self):
        response = self.client.get(self.url, {"date": "2026-02-16", "time": "11:00"})
        self.assertIsNone(response.context["conflict"])

    def test_walk_in_success_returns_to_calendar(self):
        self.backend.on("POST", "/api/bookings/venue/v1/walk-in",
                        {"message": "Walk-in booking created!", "bookingId": "b_new_123"})
        response = self.client.post(self.url, {
            "date": "2026-02-16", "start_time": "12:00", "duration": "2", "action": "WALK_IN", "sport": "1",
            "amount_paid": "1500", "customer_name": "Walk-in Customer", "customer_email": "customer@test.com",
        })
        self.assertRedirects(response, calendar_url("v1", date(2026, 2, 16)), fetch_redirect_response=False)
        self.assertIn("Walk-in booking created!", self.messages_of(response))
        self.assertEqual(len(self.backend.calls("POST", "/api/bookings/venue/v1/walk-in")), 1)
        self.assertEqual(self.backend.last_json("POST", "/api/bookings/venue/v1/walk-in")["customerName"],
                         "Walk-in Customer")

    def test_failure_keeps_the_form_open_with_the_server_message(self):
        self.backend.on("POST", "/api/bookings/venue/v1/walk-in", {"message": "Slot already booked"}, status=409)
        response = self.client.post(self.url, {
            "date": "2026-02-16", "start_time": "10:00", "duration": "1", "action": "BLOCK",
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn("Slot already booked", self.messages_of(response))
        self.assertEqual(response.context["form"].data["start_time"], "10:00")

    def test_invalid_walk_in_sends_nothing(self):
        self.client.post(self.url, {"date": "2026-02-16", "start_time": "12:00", "duration": "1", "action": "WALK_IN"})
        self.assertEqual(self.backend.calls("POST", "/api/bookings/venue/v1/walk-in"), [])


class CancelConfirmationTests(BackendTestCase):
    url = reverse("bookings:booking_detail", args=["v1", "b1"])

    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")
        self.backend.on("GET", "/api/bookings/venue/v1/calendar", {"bookings": [ONLINE_10_TO_11, BLOCK_15_TO_17]})
        self.backend.on("PATCH", "/api/bookings/b1/cancel", {"message": "Booking cancelled and refunded"})

    def test_detail_shows_refund_wording_for_bookings(self):
        response = self.client.get(self.url, {"date": "2026-02-16"})
        self.assertEqual(response.context["booking"].id, "b1")
        self.assertContains(response, "fully refunded")

    def test_detail_shows_free_slot_wording_for_blocks(self):
        response = self.client.get(reverse("bookings:booking_detail", args=["v1", "b2"]), {"date": "2026-02-16"})
        self.assertContains(response, "free this slot")
        self.assertNotContains(response, "fully refunded")

    def test_unknown_booking_returns_to_calendar(self):
        response = self.client.get(reverse("bookings:booking_detail", args=["v1", "nope"]), {"date": "2026-02-16"})
        self.assertRedirects(response, calendar_url("v1", date(2026, 2, 16)), fetch_redirect_response=False)

    def test_unconfirmed_cancel_sends_no_request(self):
        response = self.client.post(self.url, {"date": "2026-02-16"})
        self.assertEqual(self.backend.calls("PATCH"), [])
        self.assertIn("Please confirm the cancellation first.", self.messages_of(response))

    def test_confirmed_cancel_sends_exactly_one_patch(self):
        response = self.client.post(self.url, {"date": "2026-02-16", "confirm": "on"})
        self.assertEqual(len(self.backend.calls("PATCH")), 1)
        self.assertEqual(len(self.backend.calls("PATCH", "/api/bookings/b1/cancel")), 1)
        self.assertRedirects(response, calendar_url("v1", date(2026, 2, 16)), fetch_redirect_response=False)
        self.assertIn("Booking cancelled and refunded", self.messages_of(response))


class PlayerBookingFlowTests(BackendTestCase):
    venue = {"venue_id": "v1", "venue_name": "Urban Sports Arena", "price_per_hour": 2500,
             "sports": [{"sport_id": "s1", "name": "Futsal"}]}
    booking = {"date": "2027-02-17", "time": "10:00", "hours": "1", "sport": "s1"}

    def setUp(self):
        super().setUp()
        self.backend.on("GET", "/api/venues/v1", self.venue)
        self.backend.on("GET", "/api/bookings/booked-slots/v1", {"slots": []})
        self.url = reverse("bookings:booking_new", args=["v1"])

    def test_anonymous_player_is_sent_to_login_first(self):
        response = self.client.get(self.url)
        self.assertTrue(response["Location"].startswith(reverse("accounts:login")))

    def test_price_preview(self):
        self.sign_in("USER")
        self.backend.on("POST", "/api/bookings/calculate-price", {"totalAmount": 2500})
        response = self.client.post(self.url, {**self.booking, "action": "preview"})
        self.assertEqual(response.context["quote"], 2500)
        self.assertContains(response, "LKR 2,500.00")

    def test_checkout_redirects_to_payment_page(self):
        self.sign_in("USER")
        self.backend.on("POST", "/api/bookings/checkout-session",
                        {"success": True, "checkoutUrl": "http://checkout.stripe.com/test-mock-url"})
        response = self.client.post(self.url, {**self.booking, "action": "checkout"})
        self.assertRedirects(response, "http://checkout.stripe.com/test-mock-url", fetch_redirect_response=False)
        self.assertEqual(self.backend.last_json("POST", "/api/bookings/checkout-session"), {
            "venueId": "v1", "date": "2027-02-17", "time": "10:00", "hours": 1, "sportId": "s1",
        })

    def test_checkout_failure_shows_message(self):
        self.sign_in("USER")
        self.backend.on("POST", "/api/bookings/checkout-session", {"message": "Slot no longer available"}, status=409)
        response = self.client.post(self.url, {**self.booking, "action": "checkout"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("Slot no longer available", self.messages_of(response))

    def test_booking_page_lists_taken_slots_for_the_chosen_date(self):
        self.sign_in("USER")
        self.backend.on("GET", "/api/bookings/booked-slots/v1", {"slots": [
            {"booking_start": "2027-02-17T18:00:00", "booking_end": "2027-02-17T20:00:00", "status": "CONFIRMED"},
        ]})
        response = self.client.get(self.url, {"date": "2027-02-17"})
        request = self.backend.calls("GET", "/api/bookings/booked-slots/v1")[0]
        self.assertEqual(request.url.params["date"], "2027-02-17")
        self.assertEqual(response.context["availability_day"], date(2027, 2, 17))
        self.assertContains(response, "18:00 - 20:00")

    def test_free_date_says_so(self):
        self.sign_in("USER")
        response = self.client.get(self.url, {"date": "2027-02-17"})
        self.assertContains(response, "this date is fully available")

    def test_booked_slots_failure_still_shows_the_form(self):
        self.sign_in("USER")
        self.backend.fail("GET", "/api/bookings/booked-slots/v1")
        response = self.client.get(self.url, {"date": "2027-02-17"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["booked_slots"], [])
        self.assertIn(
            "Existing bookings could not be loaded. The backend confirms availability at checkout.",
            self.messages_of(response),
        )

    def test_checkout_success_confirms_with_session_id(self):
        self.sign_in("USER")
        self.backend.on("GET", "/api/bookings/checkout-success", {"message": "Booking confirmed!"})
        response = self.client.get(reverse("bookings:checkout_success"), {"session_id": "cs_test_1"})
        self.assertContains(response, "Booking confirmed!")
        request = self.backend.calls("GET", "/api/bookings/checkout-success")[0]
        self.assertEqual(request.url.params["session_id"], "cs_test_1")


class MyBookingsTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in("USER")

    def test_split_share_payment(self):
        self.backend.on("POST", "/api/bookings/pay-split-share", {"message": "Share paid"})
        response = self.client.post(reverse("bookings:pay_split_share", args=["b7"]))
        self.assertRedirects(response, reverse("bookings:my_bookings"), fetch_redirect_response=False)
        self.assertEqual(self.backend.last_json("POST", "/api/bookings/pay-split-share"), {"bookingId": "b7"})

    def test_bookings_split_into_upcoming_and_past(self):
        self.backend.on("GET", "/api/bookings/my", {"bookings": [
            {"booking_id": "old", "booking_start": "2020-01-01T10:00:00", "booking_end": "2020-01-01T11:00:00"},
            {"booking_id": "new", "booking_start": "2099-01-01T10:00:00", "booking_end": "2099-01-01T11:00:00"},
        ]})
        response = self.client.get(reverse("bookings:my_bookings"))
        self.assertEqual([b.id for b in response.context["upcoming"]], ["new"])
        self.assertEqual([b.id for b in response.context["past"]], ["old"])
