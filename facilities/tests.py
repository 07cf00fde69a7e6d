from django.core.cache import cache
from django.test import SimpleTestCase
from django.urls import reverse

from accounts.testing import BackendTestCase
from playlink_api.exceptions import BackendResponseError
from playlink_api.resources import Sport, Venue

from .forms import PricingRuleForm
from .views import filter_venues
from .wizard import Action, Step, StepRejected, VenueWizard


class CountingClient:
    def __init__(self, error=None):
        self.payloads = []
        self.error = error

    def create_venue(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error
        return {"message": "Venue created successfully!"}


def filled_wizard():
    wizard = VenueWizard()
    wizard.update({"name": "Arena A", "address": "1 Main St", "city": "Colombo"})
    wizard.advance()
    wizard.update({"price_per_hour": "2500"})
    wizard.advance()
    wizard.update({"sport_ids": [1]})
    wizard.advance()
    return wizard


class WizardStateMachineTests(SimpleTestCase):
    def test_happy_path_payload(self):
        wizard = filled_wizard()
        self.assertEqual(wizard.step, Step.IMAGES)
        client = CountingClient()
        wizard.submit(client)
        payload = client.payloads[0]
        self.assertEqual(payload["imageUrls"], [])
        self.assertEqual(payload["pricePerHour"], 2500)
        self.assertIsInstance(payload["pricePerHour"], int)
        self.assertEqual(payload["sportIds"], [1])
        self.assertEqual(payload["name"], "Arena A")
        self.assertEqual(payload["cancellationPolicyId"], 1)

    def test_fractional_price_stays_a_number(self):
        wizard = filled_wizard()
        wizard.update({"price_per_hour": "1999.5"})
        self.assertEqual(wizard.payload()["pricePerHour"], 1999.5)

    def test_blank_image_urls_are_dropped_and_capped(self):
        wizard = filled_wizard()
        wizard.update({"image_urls": ["", "  ", "https://img/1.jpg"] + [f"https://img/{i}.jpg" for i in range(2, 8)]})
        urls = wizard.payload()["imageUrls"]
        self.assertEqual(urls[0], "https://img/1.jpg")
        self.assertEqual(len(urls), 5)

    def test_invalid_advance_never_moves_the_step(self):
        cases = [
            (Step.BASIC_INFO, {"name": "Arena", "address": "", "city": "Colombo"}, "Please fill in all required fields"),
            (Step.PRICING_POLICY, {"price_per_hour": "twenty"}, "Please enter a valid price"),
            (Step.PRICING_POLICY, {"price_per_hour": ""}, "Please enter a valid price"),
            (Step.SPORTS_AMENITIES, {"sport_ids": []}, "Please select at least one sport"),
        ]
        for step, data, message in cases:
            with self.subTest(step=step, data=data):
                wizard = VenueWizard(data={"name": "A", "address": "B", "city": "C", "price_per_hour": "1",
                                           "sport_ids": [1], **data}, step=step)
                with self.assertRaises(StepRejected) as ctx:
                    wizard.advance()
                self.assertEqual(ctx.exception.message, message)
                self.assertEqual(wizard.step, step)

    def test_back_always_succeeds(self):
        for step in Step:
            with self.subTest(step=step):
                wizard = VenueWizard(step=step)
                wizard.back()
                self.assertEqual(wizard.step, Step(max(1, step - 1)))

    def test_no_advance_past_the_last_step(self):
        wizard = filled_wizard()
        with self.assertRaises(StepRejected):
            wizard.apply(Action.NEXT)
        self.assertEqual(wizard.step, Step.IMAGES)

    def test_repeated_submit_sends_one_request(self):
        wizard = filled_wizard()
        client = CountingClient()
        wizard.submit(client)
        self.assertIsNone(wizard.submit(client))
        self.assertIsNone(wizard.submit(client))
        self.assertEqual(len(client.payloads), 1)

    def test_submit_before_last_step_is_rejected(self):
        wizard = VenueWizard()
        client = CountingClient()
        with self.assertRaises(StepRejected):
            wizard.submit(client)
        self.assertEqual(client.payloads, [])

    def test_failed_submit_allows_a_retry_and_stays_on_images(self):
        wizard = filled_wizard()
        client = CountingClient(error=BackendResponseError(400, "Venue name already taken"))
        with self.assertRaises(BackendResponseError):
            wizard.submit(client)
        self.assertEqual(wizard.step, Step.IMAGES)
        self.assertFalse(wizard.submitting)
        client.error = None
        self.assertIsNotNone(wizard.submit(client))
        self.assertEqual(len(client.payloads), 2)

    def test_session_round_trip_keeps_step_and_data(self):
        store = {}
        wizard = filled_wizard()
        wizard.to_session(store)
        restored = VenueWizard.from_session(store)
        self.assertEqual(restored.step, Step.IMAGES)
        self.assertEqual(restored.data["city"], "Colombo")
        VenueWizard.discard(store)
        self.assertEqual(VenueWizard.from_session(store).step, Step.BASIC_INFO)


class WizardViewTests(BackendTestCase):
    url = reverse("facilities:venue_new")

    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")
        self.backend.on("POST", "/api/venues", {"message": "Venue created successfully!"}, status=201)

    def wizard_step(self):
        return self.client.session[VenueWizard.SESSION_KEY]["step"]

    def walk_to_images(self):
        self.client.post(self.url, {"action": "next", "name": "Arena A", "address": "1 Main St", "city": "Colombo"})
        self.client.post(self.url, {"action": "next", "price_per_hour": "2500", "cancellation_policy_id": "1"})
        self.client.post(self.url, {"action": "next", "sport_ids": ["1"], "amenity_ids": ["3"]})

    def test_only_owners_may_list_venues(self):
        self.sign_in("USER")
        response = self.client.get(self.url)
        self.assertRedirects(response, reverse("home"), fetch_redirect_response=False)

    def test_incomplete_basic_info_stays_on_step_one(self):
        response = self.client.post(self.url, {"action": "next", "name": "Arena A", "address": "", "city": ""})
        self.assertRedirects(response, self.url, fetch_redirect_response=False)
        self.assertIn("Please fill in all required fields", self.messages_of(response))
        self.assertEqual(self.wizard_step(), 1)

    def test_back_from_pricing_keeps_entered_data(self):
        self.client.post(self.url, {"action": "next", "name": "Arena A", "address": "1 Main St", "city": "Colombo"})
        self.client.post(self.url, {"action": "back", "price_per_hour": "abc"})
        state = self.client.session[VenueWizard.SESSION_KEY]
        self.assertEqual(state["step"], 1)
        self.assertEqual(state["data"]["price_per_hour"], "abc")

    def test_back_succeeds_even_when_the_step_fails_validation(self):
        self.walk_to_images()
        response = self.client.post(self.url, {"action": "back", "image_url_0": "h" * 600})
        self.assertRedirects(response, self.url, fetch_redirect_response=False)
        state = self.client.session[VenueWizard.SESSION_KEY]
        self.assertEqual(state["step"], 3)
        self.assertNotIn("h" * 600, state["data"].get("image_urls", []))

    def test_back_with_tampered_policy_leaves_step_two(self):
        self.client.post(self.url, {"action": "next", "name": "Arena A", "address": "1 Main St", "city": "Colombo"})
        self.client.post(self.url, {"action": "back", "price_per_hour": "2500", "cancellation_policy_id": "99"})
        self.assertEqual(self.wizard_step(), 1)

    def test_happy_path_sends_one_venue(self):
        self.walk_to_images()
        self.assertEqual(self.wizard_step(), 4)
        response = self.client.post(self.url, {"action": "submit"})
        self.assertRedirects(response, reverse("facilities:my_venues"), fetch_redirect_response=False)
        payload = self.backend.last_json("POST", "/api/venues")
        self.assertEqual(payload["imageUrls"], [])
        self.assertEqual(payload["pricePerHour"], 2500)
        self.assertEqual(payload["sportIds"], [1])
        self.assertEqual(payload["amenityIds"], [3])
        self.assertNotIn(VenueWizard.SESSION_KEY, self.client.session)

        # A second submit from a stale page finds no finished wizard.
        self.client.post(self.url, {"action": "submit"})
        self.assertEqual(len(self.backend.calls("POST", "/api/venues")), 1)

    def test_submit_in_flight_elsewhere_sends_nothing(self):
        self.walk_to_images()
        cache.add(f"facilities:venue_submit:{self.client.session.session_key}", True)
        response = self.client.post(self.url, {"action": "submit"})
        self.assertIn("Your venue is already being submitted.", self.messages_of(response))
        self.assertEqual(self.backend.calls("POST", "/api/venues"), [])

    def test_backend_failure_stays_on_images_with_message(self):
        self.backend.on("POST", "/api/venues", {"message": "Venue name already taken"}, status=400)
        self.walk_to_images()
        response = self.client.post(self.url, {"action": "submit"})
        self.assertIn("Venue name already taken", self.messages_of(response))
        self.assertEqual(self.wizard_step(), 4)


class VenueSearchTests(BackendTestCase):
    venues = [
        {"venue_id": "v1", "venue_name": "Urban Sports Arena", "city": "Colombo 07",
         "sports": [{"sport_id": "s1", "name": "Futsal"}]},
        {"venue_id": "v2", "venue_name": "Lake Courts", "address": "Kandy Rd", "city": "Kandy",
         "sports": [{"sport_id": "s4", "name": "Tennis"}]},
    ]

    def test_filter_venues_is_case_insensitive(self):
        venues = [Venue.from_api(v) for v in self.venues]
        self.assertEqual([v.id for v in filter_venues(venues, name="urban")], ["v1"])
        self.assertEqual([v.id for v in filter_venues(venues, location="KANDY")], ["v2"])
        self.assertEqual([v.id for v in filter_venues(venues, sport="tennis")], ["v2"])
        self.assertEqual(len(filter_venues(venues)), 2)

    def test_venue_without_sports_is_not_hidden_by_sport_filter(self):
        venue = Venue(id="v3", name="Open Field", sports=[])
        self.assertEqual(filter_venues([venue], sport="Futsal"), [venue])

    def test_list_view_searches_backend_then_filters_locally(self):
        self.backend.on("GET", "/api/venues", self.venues)
        response = self.client.get(reverse("facilities:venue_list"), {"location": "colombo"})
        self.assertEqual([v.id for v in response.context["venues"]], ["v1"])

    def test_list_view_survives_backend_outage(self):
        self.backend.fail("GET", "/api/venues")
        response = self.client.get(reverse("facilities:venue_list"))
        self.assertEqual(response.status_code, 200)
        self.assertIn("Something went wrong. Please try again.", self.messages_of(response))


class ReviewTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in("USER")
        self.backend.on("POST", "/api/venues/v1/reviews", {"message": "ok"}, status=201)

    def test_rating_is_required_before_sending(self):
        response = self.client.post(reverse("facilities:review_create", args=["v1"]), {"comment": "Great"})
        self.assertIn("Please select a rating", self.messages_of(response))
        self.assertEqual(self.backend.calls("POST", "/api/venues/v1/reviews"), [])

    def test_rating_out_of_range_is_rejected(self):
        self.client.post(reverse("facilities:review_create", args=["v1"]), {"rating": "6"})
        self.assertEqual(self.backend.calls("POST", "/api/venues/v1/reviews"), [])

    def test_valid_review_is_posted_with_cookie_auth_only(self):
        self.client.post(reverse("facilities:review_create", args=["v1"]), {"rating": "4", "comment": "Nice"})
        request = self.backend.calls("POST", "/api/venues/v1/reviews")[0]
        self.assertEqual(self.backend.last_json("POST", "/api/venues/v1/reviews"), {"rating": 4, "comment": "Nice"})
        self.assertNotIn("authorization", request.headers)


class PricingRuleTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")

    def test_multiplier_below_one_is_rejected(self):
        form = PricingRuleForm({"name": "Off peak", "start_time": "07:00", "end_time": "09:00", "multiplier": "0.8"})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["multiplier"], ["Multiplier must be 1.0 or greater"])

    def test_rule_payload(self):
        form = PricingRuleForm({"name": "Weekend Peak", "start_time": "18:00", "end_time": "21:00",
                                "multiplier": "1.5", "days_of_week": ["0", "6"]})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            "name": "Weekend Peak", "startTime": "18:00", "endTime": "21:00",
            "multiplier": 1.5, "daysOfWeek": [0, 6],
        })

    def test_delete_requires_confirmation(self):
        self.backend.on("DELETE", "/api/venues/v1/pricing-rules/r1", {})
        url = reverse("facilities:pricing_rule_delete", args=["v1", "r1"])
        self.client.post(url, {})
        self.assertEqual(self.backend.calls("DELETE"), [])
        response = self.client.post(url, {"confirm": "on"})
        self.assertRedirects(response, reverse("facilities:pricing_rules", args=["v1"]), fetch_redirect_response=False)
        self.assertEqual(len(self.backend.calls("DELETE", "/api/venues/v1/pricing-rules/r1")), 1)


class VenueDetailTests(BackendTestCase):
    def test_owner_sees_reply_form_for_own_venue(self):
        self.sign_in("VENUE_OWNER", id="owner-1")
        self.backend.on("GET", "/api/venues/v1", {"venue_id": "v1", "venue_name": "Arena", "owner_id": "owner-1",
                                                  "sports": [{"sport_id": "s1", "name": "Futsal"}]})
        self.backend.on("GET", "/api/venues/v1/reviews", [{"review_id": "r1", "rating": 5, "comment": "Great"}])
        response = self.client.get(reverse("facilities:venue_detail", args=["v1"]))
        self.assertTrue(response.context["is_owner"])
        self.assertIsNotNone(response.context["reply_form"])
        self.assertIsNone(response.context["review_form"])
        self.assertEqual(response.context["average_rating"], 5)
        self.assertEqual(response.context["sports"], [Sport(id="s1", name="Futsal")])

    def test_unreadable_reviews_leave_the_venue_page_up(self):
        self.backend.on("GET", "/api/venues/v1", {"venue_id": "v1", "venue_name": "Arena",
                                                  "sports": [{"sport_id": "s1", "name": "Futsal"}]})
        self.backend.on("GET", "/api/venues/v1/reviews", [{"review_id": "r1", "rating": "4.5"}])
        response = self.client.get(reverse("facilities:venue_detail", args=["v1"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["reviews"], [])
        self.assertIsNone(response.context["average_rating"])
        self.assertEqual(response.context["venue"].name, "Arena")
