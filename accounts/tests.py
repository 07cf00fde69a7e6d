from django.contrib.sessions.backends.cache import SessionStore
from django.urls import reverse

from .forms import SignupForm
from .permissions import UNAVAILABLE_MESSAGE
from .session import BACKEND_COOKIES_KEY, PlayLinkSession, SessionState
from .testing import BackendTestCase

OWNER = {"id": "u1", "email": "owner@playlink.test", "fullName": "Venue Boss", "accountType": "VENUE_OWNER"}
PLAYER = {"id": "u2", "email": "player@playlink.test", "fullName": "Sam Player", "accountType": "USER"}


class SessionObjectTests(BackendTestCase):
    def session(self, cookies=None):
        store = SessionStore()
        if cookies:
            store[BACKEND_COOKIES_KEY] = cookies
        playlink = PlayLinkSession(store)
        self.addCleanup(playlink.close)
        return playlink, store

    def test_starts_uninitialized_and_becomes_anonymous_without_a_call(self):
        playlink, _ = self.session()
        self.assertEqual(playlink.state, SessionState.UNINITIALIZED)
        self.assertIsNone(playlink.user)
        self.assertEqual(playlink.state, SessionState.ANONYMOUS)
        self.assertEqual(self.backend.requests, [])

    def test_initialize_runs_once(self):
        self.backend.signed_in_as("USER")
        playlink, _ = self.session({"sid": "abc"})
        self.assertTrue(playlink.is_authenticated)
        self.assertTrue(playlink.user.is_player)
        self.assertEqual(len(self.backend.calls("GET", "/api/users/authenticate")), 1)

    def test_rejected_cookie_is_forgotten(self):
        self.backend.anonymous()
        playlink, store = self.session({"sid": "stale"})
        self.assertIsNone(playlink.user)
        self.assertNotIn(BACKEND_COOKIES_KEY, store)

    def test_unreachable_backend_keeps_cookies(self):
        self.backend.fail("GET", "/api/users/authenticate")
        playlink, store = self.session({"sid": "abc"})
        self.assertIsNone(playlink.user)
        self.assertEqual(playlink.state, SessionState.ANONYMOUS)
        self.assertEqual(store[BACKEND_COOKIES_KEY], {"sid": "abc"})
        self.assertTrue(playlink.backend_unreachable)

    def test_unreadable_user_is_forgotten(self):
        self.backend.on("GET", "/api/users/authenticate",
                        {"authenticated": True, "user": {"id": "u1", "email": ["not", "an", "email"]}})
        playlink, store = self.session({"sid": "abc"})
        self.assertIsNone(playlink.user)
        self.assertFalse(playlink.backend_unreachable)
        self.assertNotIn(BACKEND_COOKIES_KEY, store)

    def test_sign_out_clears_state_even_when_backend_fails(self):
        self.backend.signed_in_as("USER")
        self.backend.fail("POST", "/api/users/logout")
        playlink, store = self.session({"sid": "abc"})
        self.assertTrue(playlink.is_authenticated)
        playlink.sign_out()
        self.assertIsNone(playlink.user)
        self.assertNotIn(BACKEND_COOKIES_KEY, store)


class LoginViewTests(BackendTestCase):
    def test_owner_lands_on_dashboard_and_cookies_are_kept(self):
        self.backend.on("POST", "/api/users/login", {"user": OWNER}, cookies={"sid": "abc"})
        response = self.client.post(reverse("accounts:login"), {"email": OWNER["email"], "password": "Secret#123"})
        self.assertRedirects(response, reverse("backoffice:dashboard"), fetch_redirect_response=False)
        self.assertEqual(self.client.session[BACKEND_COOKIES_KEY], {"sid": "abc"})
        self.assertEqual(
            self.backend.last_json("POST", "/api/users/login"),
            {"email": OWNER["email"], "password": "Secret#123"},
        )

    def test_player_lands_on_next_url(self):
        self.backend.on("POST", "/api/users/login", {"user": PLAYER}, cookies={"sid": "abc"})
        response = self.client.post(
            reverse("accounts:login") + "?next=/wallet/",
            {"email": PLAYER["email"], "password": "Secret#123"},
        )
        self.assertRedirects(response, "/wallet/", fetch_redirect_response=False)

    def test_backend_message_is_shown_verbatim(self):
        self.backend.on("POST", "/api/users/login", {"message": "Invalid email or password"}, status=401)
        response = self.client.post(reverse("accounts:login"), {"email": "x@y.test", "password": "nope"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("Invalid email or password", self.messages_of(response))

    def test_missing_fields_send_nothing(self):
        response = self.client.post(reverse("accounts:login"), {"email": "", "password": ""})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.calls("POST", "/api/users/login"), [])
        self.assertIn("Please enter email and password.", self.messages_of(response))


class LogoutViewTests(BackendTestCase):
    def test_post_logs_out_and_clears_cookies(self):
        self.sign_in("USER")
        self.backend.on("POST", "/api/users/logout", {})
        response = self.client.post(reverse("accounts:logout"))
        self.assertRedirects(response, reverse("home"), fetch_redirect_response=False)
        self.assertEqual(len(self.backend.calls("POST", "/api/users/logout")), 1)
        self.assertNotIn(BACKEND_COOKIES_KEY, self.client.session)


class SignupTests(BackendTestCase):
    valid = {
        "full_name": "  Sam Player ",
        "email": "Sam@Example.com",
        "city": "Colombo",
        "account_type": "USER",
        "password": "Secret#123",
        "confirm_password": "Secret#123",
        "agree_terms": "on",
    }

    def test_payload_shape(self):
        form = SignupForm(self.valid)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            "fullName": "Sam Player",
            "email": "sam@example.com",
            "password": "Secret#123",
            "accountType": "USER",
            "city": "Colombo",
        })

    def test_weak_password_rejected(self):
        form = SignupForm({**self.valid, "password": "password", "confirm_password": "password"})
        self.assertFalse(form.is_valid())
        self.assertIn("password", form.errors)

    def test_mismatched_confirmation_rejected(self):
        form = SignupForm({**self.valid, "confirm_password": "Secret#124"})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["confirm_password"], ["Passwords do not match. Please try again."])

    def test_terms_required(self):
        data = dict(self.valid)
        data.pop("agree_terms")
        self.assertFalse(SignupForm(data).is_valid())

    def test_invalid_signup_sends_nothing(self):
        self.client.post(reverse("accounts:signup"), {**self.valid, "confirm_password": "x"})
        self.assertEqual(self.backend.calls("POST", "/api/users/register"), [])

    def test_valid_signup_registers_once(self):
        self.backend.on("POST", "/api/users/register", {"message": "ok"}, status=201)
        response = self.client.post(reverse("accounts:signup"), self.valid)
        self.assertRedirects(response, reverse("accounts:login"), fetch_redirect_response=False)
        self.assertEqual(len(self.backend.calls("POST", "/api/users/register")), 1)


class RoleGateTests(BackendTestCase):
    def test_anonymous_goes_to_login_with_next(self):
        response = self.client.get(reverse("backoffice:dashboard"))
        self.assertRedirects(
            response, reverse("accounts:login") + "?next=%2Fdashboard%2F", fetch_redirect_response=False
        )

    def test_player_is_sent_home_from_owner_pages(self):
        self.sign_in("USER")
        response = self.client.get(reverse("backoffice:dashboard"))
        self.assertRedirects(response, reverse("home"), fetch_redirect_response=False)

    def test_owner_is_sent_to_dashboard_from_player_pages(self):
        self.sign_in("VENUE_OWNER")
        response = self.client.get(reverse("wallet:summary"))
        self.assertRedirects(response, reverse("backoffice:dashboard"), fetch_redirect_response=False)

    def test_unreachable_backend_says_so_before_login(self):
        self.sign_in("VENUE_OWNER")
        self.backend.fail("GET", "/api/users/authenticate")
        response = self.client.get(reverse("backoffice:dashboard"))
        self.assertRedirects(
            response, reverse("accounts:login") + "?next=%2Fdashboard%2F", fetch_redirect_response=False
        )
        self.assertIn(UNAVAILABLE_MESSAGE, self.messages_of(response))

    def test_plain_anonymous_visit_has_no_unavailable_message(self):
        response = self.client.get(reverse("backoffice:dashboard"))
        self.assertNotIn(UNAVAILABLE_MESSAGE, self.messages_of(response))

    def test_expired_backend_session_redirects_to_login(self):
        self.sign_in("USER")
        self.backend.on("GET", "/api/notifications", {"message": "Session expired"}, status=401)
        response = self.client.get(reverse("notifications:list"))
        self.assertRedirects(
            response, reverse("accounts:login") + "?next=%2Fnotifications%2F", fetch_redirect_response=False
        )
        self.assertNotIn(BACKEND_COOKIES_KEY, self.client.session)
