from decimal import Decimal

from django.test import SimpleTestCase
from django.urls import reverse

from accounts.testing import BackendTestCase

from .forms import TopUpForm
from .views import PENDING_TOPUP_KEY


class TopUpFormTests(SimpleTestCase):
    def test_minimum_amount(self):
        form = TopUpForm({"amount": "99"})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["amount"], ["Minimum top-up amount is LKR 100"])

    def test_whole_amounts_are_sent_as_integers(self):
        form = TopUpForm({"amount": "2000"})
        self.assertTrue(form.is_valid())
        self.assertEqual(form.amount_value(), 2000)
        self.assertIsInstance(form.amount_value(), int)

    def test_fractional_amounts_are_kept(self):
        form = TopUpForm({"amount": "150.50"})
        self.assertTrue(form.is_valid())
        self.assertEqual(form.amount_value(), 150.5)


class WalletSummaryTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in("USER")

    def test_balance_and_transactions(self):
        self.backend.on("GET", "/api/wallet/summary", {
            "balance": "3500.00",
            "transactions": [{"transaction_id": "t1", "amount": 2000, "direction": "CREDIT", "description": "Top up"}],
        })
        response = self.client.get(reverse("wallet:summary"))
        self.assertEqual(response.context["wallet"].balance, Decimal("3500.00"))
        self.assertContains(response, "LKR 3,500.00")

    def test_backend_failure_shows_zero_balance(self):
        self.backend.fail("GET", "/api/wallet/summary")
        response = self.client.get(reverse("wallet:summary"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["wallet"].balance, Decimal("0"))

    def test_owners_are_sent_to_their_dashboard(self):
        self.backend.signed_in_as("VENUE_OWNER")
        response = self.client.get(reverse("wallet:summary"))
        self.assertRedirects(response, reverse("backoffice:dashboard"), fetch_redirect_response=False)


class TopUpTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in("USER")

    def test_amount_below_minimum_sends_nothing(self):
        response = self.client.post(reverse("wallet:topup"), {"amount": "50"})
        self.assertRedirects(response, reverse("wallet:summary"), fetch_redirect_response=False)
        self.assertEqual(self.backend.calls("POST", "/api/wallet/topup"), [])
        self.assertIn("Minimum top-up amount is LKR 100", self.messages_of(response))

    def test_payment_page_carries_client_secret(self):
        self.backend.on("POST", "/api/wallet/topup", {"clientSecret": "pi_123_secret_456"})
        response = self.client.post(reverse("wallet:topup"), {"amount": "2000"})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "pi_123_secret_456")
        self.assertEqual(self.backend.last_json("POST", "/api/wallet/topup"), {"amount": 2000})
        self.assertEqual(self.client.session[PENDING_TOPUP_KEY], 2000)

    def test_payment_page_shows_balance_after_top_up(self):
        self.backend.on("POST", "/api/wallet/topup", {"clientSecret": "pi_123_secret_456"})
        self.backend.on("GET", "/api/wallet/my-balance", {"balance": 500})
        response = self.client.post(reverse("wallet:topup"), {"amount": "2000"})
        self.assertEqual(response.context["balance"], Decimal("500"))
        self.assertEqual(response.context["balance_after"], Decimal("2500"))
        self.assertContains(response, "LKR 2,500.00")

    def test_payment_page_works_without_balance(self):
        self.backend.on("POST", "/api/wallet/topup", {"clientSecret": "pi_123_secret_456"})
        self.backend.fail("GET", "/api/wallet/my-balance")
        response = self.client.post(reverse("wallet:topup"), {"amount": "2000"})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.context["balance"])
        self.assertNotContains(response, "After this top-up")

    def test_missing_client_secret(self):
        self.backend.on("POST", "/api/wallet/topup", {})
        response = self.client.post(reverse("wallet:topup"), {"amount": "2000"})
        self.assertRedirects(response, reverse("wallet:summary"), fetch_redirect_response=False)
        self.assertIn("Failed to initialize payment", self.messages_of(response))


class ConfirmTopUpTests(BackendTestCase):
    url = reverse("wallet:confirm_topup")

    def setUp(self):
        super().setUp()
        self.sign_in("USER")
        self.set_session({PENDING_TOPUP_KEY: 2000})
        self.backend.on("POST", "/api/wallet/confirm-topup", {"success": True})

    def test_succeeded_intent_is_confirmed_once(self):
        response = self.client.get(self.url, {"payment_intent": "pi_123", "redirect_status": "succeeded"})
        self.assertRedirects(response, reverse("wallet:summary"), fetch_redirect_response=False)
        self.assertEqual(len(self.backend.calls("POST", "/api/wallet/confirm-topup")), 1)
        self.assertEqual(self.backend.last_json("POST", "/api/wallet/confirm-topup"),
                         {"paymentIntentId": "pi_123", "amount": 2000})
        self.assertIn("Your wallet has been topped up with LKR 2000.00.", self.messages_of(response))
        self.assertNotIn(PENDING_TOPUP_KEY, self.client.session)

    def test_pending_amount_survives_a_failed_confirmation(self):
        params = {"payment_intent": "pi_123", "redirect_status": "succeeded"}
        self.backend.on("POST", "/api/wallet/confirm-topup", {"message": "Payment not found"}, status=500)
        response = self.client.get(self.url, params)
        self.assertIn("Payment not found", self.messages_of(response))
        self.assertEqual(self.client.session[PENDING_TOPUP_KEY], 2000)

        self.backend.on("POST", "/api/wallet/confirm-topup", {"success": True})
        self.client.get(self.url, params)
        self.assertEqual(self.backend.last_json("POST", "/api/wallet/confirm-topup")["amount"], 2000)
        self.assertNotIn(PENDING_TOPUP_KEY, self.client.session)

    def test_processing_sends_nothing(self):
        response = self.client.get(self.url, {"payment_intent": "pi_123", "redirect_status": "processing"})
        self.assertEqual(self.backend.calls("POST", "/api/wallet/confirm-topup"), [])
        self.assertTrue(any("processing" in m for m in self.messages_of(response)))

    def test_failed_payment_sends_nothing(self):
        response = self.client.get(self.url, {"payment_intent": "pi_123", "redirect_status": "requires_payment_method"})
        self.assertEqual(self.backend.calls("POST", "/api/wallet/confirm-topup"), [])
        self.assertIn("Payment failed. Please try another payment method.", self.messages_of(response))

    def test_missing_intent(self):
        response = self.client.get(self.url, {"redirect_status": "succeeded"})
        self.assertEqual(self.backend.calls("POST"), [])
        self.assertIn("Missing payment reference.", self.messages_of(response))
