"""Shaping helpers for the owner analytics panels."""
from decimal import Decimal
from typing import List, Tuple, Union

from playlink_api.resources import OwnerAnalytics, OwnerSummary, PeakHour, VenueRevenue


def summary_kpis(summary: OwnerSummary) -> List[Tuple[str, Union[int, Decimal]]]:
    return [
        ("Total bookings", summary.total_bookings),
        ("Total revenue", summary.total_revenue),
        ("Active venues", summary.active_venues),
    ]


def revenue_by_venue(analytics: OwnerAnalytics) -> List[VenueRevenue]:
    return sorted(analytics.revenue_by_venue, key=lambda r: r.revenue, reverse=True)


def peak_hours(analytics: OwnerAnalytics, limit: int = 5) -> List[PeakHour]:
    return sorted(analytics.peak_hours, key=lambda r: r.bookings, reverse=True)[:limit]


def report_columns(rows: List[dict]) -> List[str]:
    """Column order follows the first row; later rows may add columns."""
    columns: List[str] = []
    for row in rows:
        if isinstance(row, dict):
            columns.extend(k for k in row if k not in columns)
    return columns
