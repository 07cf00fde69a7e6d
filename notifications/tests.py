from django.urls import reverse

from accounts.testing import BackendTestCase


class NotificationTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.sign_in("USER")

    def test_list_counts_unread(self):
        self.backend.on("GET", "/api/notifications", [
            {"notification_id": "n1", "message": "Booking confirmed", "is_read": False},
            {"notification_id": "n2", "message": "Refund issued", "is_read": True},
        ])
        response = self.client.get(reverse("notifications:list"))
        self.assertEqual(response.context["unread_count"], 1)
        self.assertContains(response, "Booking confirmed")

    def test_anonymous_visitors_are_sent_to_login(self):
        self.client.cookies.clear()
        response = self.client.get(reverse("notifications:list"))
        self.assertTrue(response["Location"].startswith(reverse("accounts:login")))

    def test_mark_one_read(self):
        self.backend.on("PUT", "/api/notifications/n1/read", {})
        response = self.client.post(reverse("notifications:mark_read", args=["n1"]))
        self.assertRedirects(response, reverse("notifications:list"), fetch_redirect_response=False)
        self.assertEqual(len(self.backend.calls("PUT", "/api/notifications/n1/read")), 1)

    def test_mark_all_read(self):
        self.backend.on("PUT", "/api/notifications/all-read", {})
        self.client.post(reverse("notifications:mark_all_read"))
        self.assertEqual(len(self.backend.calls("PUT", "/api/notifications/all-read")), 1)

    def test_marking_requires_post(self):
        response = self.client.get(reverse("notifications:mark_all_read"))
        self.assertEqual(response.status_code, 405)
        self.assertEqual(self.backend.calls("PUT"), [])
