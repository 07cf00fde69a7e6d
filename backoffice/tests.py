from decimal import Decimal

from django.test import SimpleTestCase
from django.urls import reverse

from accounts.testing import BackendTestCase
from playlink_api.exceptions import BackendPayloadError
from playlink_api.resources import OwnerAnalytics, OwnerSummary

from .utils import peak_hours, report_columns, revenue_by_venue, summary_kpis


class AnalyticsShapingTests(SimpleTestCase):
    def test_kpis_read_missing_keys_as_zero(self):
        kpis = summary_kpis(OwnerSummary.from_api({"totalBookings": 42, "total_revenue": "125000.50"}))
        self.assertEqual(kpis, [
            ("Total bookings", 42),
            ("Total revenue", Decimal("125000.50")),
            ("Active venues", 0),
        ])
        self.assertEqual(summary_kpis(OwnerSummary())[0], ("Total bookings", 0))

    def test_junk_figures_are_rejected_not_zeroed(self):
        with self.assertRaises(BackendPayloadError):
            OwnerSummary.from_api({"total_revenue": "lots"})
        with self.assertRaises(BackendPayloadError):
            OwnerAnalytics.from_api({"revenueByVenue": ["junk"]})

    def test_revenue_by_venue_sorted_high_to_low(self):
        rows = revenue_by_venue(OwnerAnalytics.from_api({"revenueByVenue": [
            {"venue_name": "Court A", "revenue": 1000, "bookings": 2},
            {"venueName": "Court B", "totalRevenue": "5000", "totalBookings": 7},
        ]}))
        self.assertEqual([r.venue for r in rows], ["Court B", "Court A"])
        self.assertEqual(rows[0].bookings, 7)

    def test_peak_hours_keeps_the_busiest(self):
        analytics = OwnerAnalytics.from_api({"peakHours": [{"hour": h, "bookings": h} for h in range(7, 15)]})
        rows = peak_hours(analytics, limit=3)
        self.assertEqual([r.label for r in rows], ["14:00", "13:00", "12:00"])

    def test_report_columns_follow_first_row(self):
        self.assertEqual(report_columns([{"date": 1, "venue": 2}, {"venue": 3, "revenue": 4}]),
                         ["date", "venue", "revenue"])


class DashboardTests(BackendTestCase):
    url = reverse("backoffice:dashboard")

    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")
        self.backend.on("GET", "/api/analytics/owner/detailed", {"revenueByVenue": [{"venue_name": "Arena", "revenue": 900}]})
        self.backend.on("GET", "/api/venues/my-venues", [{"venue_id": "v1", "venue_name": "Arena"}])
        self.backend.on("GET", "/api/bookings/owner", {"bookings": [
            {"booking_id": "b1", "booking_start": "2099-01-01T10:00:00", "booking_end": "2099-01-01T11:00:00"},
            {"booking_id": "b2", "status": "CANCELLED",
             "booking_start": "2099-01-02T10:00:00", "booking_end": "2099-01-02T11:00:00"},
            {"booking_id": "b3", "booking_start": "2020-01-01T10:00:00", "booking_end": "2020-01-01T11:00:00"},
        ]})

    def test_a_failing_panel_leaves_the_rest(self):
        self.backend.fail("GET", "/api/analytics/owner/summary")
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["kpis"][0], ("Total bookings", 0))
        self.assertEqual(response.context["revenue_by_venue"][0].venue, "Arena")
        self.assertEqual([b.id for b in response.context["upcoming_bookings"]], ["b1"])

    def test_a_malformed_panel_is_dropped_like_a_failing_one(self):
        self.backend.on("GET", "/api/analytics/owner/summary", {"totalBookings": 3, "total_revenue": "N/A"})
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["kpis"][1], ("Total revenue", Decimal("0")))
        self.assertEqual(len(response.context["revenue_by_venue"]), 1)

    def test_players_cannot_open_it(self):
        self.backend.signed_in_as("USER")
        response = self.client.get(self.url)
        self.assertRedirects(response, reverse("home"), fetch_redirect_response=False)


class ReportTests(BackendTestCase):
    url = reverse("backoffice:report")

    def setUp(self):
        super().setUp()
        self.sign_in("VENUE_OWNER")
        self.backend.on("GET", "/api/venues/my-venues", [{"venue_id": "v1", "venue_name": "Arena"}])
        self.backend.on("GET", "/api/analytics/owner/report", {"rows": [{"date": "2026-02-16", "revenue": 2500}]})

    def test_filters_are_passed_through(self):
        response = self.client.get(self.url, {"start": "2026-02-01", "end": "2026-02-28", "venue": "v1"})
        request = self.backend.calls("GET", "/api/analytics/owner/report")[0]
        self.assertEqual(dict(request.url.params), {"start": "2026-02-01", "end": "2026-02-28", "venueId": "v1"})
        self.assertEqual(response.context["columns"], ["date", "revenue"])

    def test_reversed_range_sends_nothing(self):
        response = self.client.get(self.url, {"start": "2026-02-28", "end": "2026-02-01"})
        self.assertEqual(self.backend.calls("GET", "/api/analytics/owner/report"), [])
        self.assertIn("End date must be on or after the start date.", self.messages_of(response))
