from datetime import date, datetime, time, timedelta

from django.test import SimpleTestCase

from playlink_api.resources import Booking

from .conflicts import find_conflict, intervals_overlap, matches_sport
from .grid import (
    HOURS,
    CellState,
    ViewMode,
    build_grid,
    parse_mode,
    step,
    visible_range,
    week_start,
)


def make_booking(start, end, *, status="CONFIRMED", sport_id="1", **extra):
    return Booking(id=extra.pop("id", "b1"), venue_id="v1", start=start, end=end,
                   status=status, sport_id=sport_id, **extra)


class IntervalOverlapTests(SimpleTestCase):
    def test_boundary_cases(self):
        base = datetime(2026, 1, 10, 10, 0)
        h = timedelta(hours=1)
        cases = [
            # (a_start, a_end, b_start, b_end, expected)
            (base, base + h, base + h, base + 2 * h, False),        # a ends where b starts
            (base + h, base + 2 * h, base, base + h, False),        # b ends where a starts
            (base, base + h, base, base + h, True),                 # identical
            (base, base + 2 * h, base + h / 2, base + h, True),     # b inside a
            (base + h / 2, base + h, base, base + 2 * h, True),     # a inside b
            (base, base + h, base + h / 2, base + 2 * h, True),     # partial, a first
            (base + h / 2, base + 2 * h, base, base + h, True),     # partial, b first
            (base, base + h, base + 2 * h, base + 3 * h, False),    # disjoint
            (base, base, base, base + h, False),                    # empty a
        ]
        for a0, a1, b0, b1, expected in cases:
            with self.subTest(a=(a0, a1), b=(b0, b1)):
                self.assertEqual(intervals_overlap(a0, a1, b0, b1), expected)
                self.assertEqual(intervals_overlap(a0, a1, b0, b1), a0 < b1 and b0 < a1)

    def test_symmetry(self):
        base = datetime(2026, 1, 10, 8, 0)
        offsets = [timedelta(minutes=30 * i) for i in range(6)]
        for a0 in offsets:
            for a1 in offsets:
                for b0 in offsets:
                    for b1 in offsets:
                        self.assertEqual(
                            intervals_overlap(base + a0, base + a1, base + b0, base + b1),
                            intervals_overlap(base + b0, base + b1, base + a0, base + a1),
                        )


class SlotConflictTests(SimpleTestCase):
    def setUp(self):
        self.day = date(2026, 1, 10)
        self.booking = make_booking(datetime(2026, 1, 10, 10), datetime(2026, 1, 10, 11), sport_id="1")

    def test_slot_conflict_scenario(self):
        bookings = [self.booking]
        self.assertIs(find_conflict(self.day, time(10, 0), bookings, "all"), self.booking)
        self.assertIsNone(find_conflict(self.day, time(11, 0), bookings, "all"))
        self.assertIsNone(find_conflict(self.day, time(10, 0), bookings, "2"))

    def test_slot_before_booking_is_free(self):
        self.assertIsNone(find_conflict(self.day, time(9, 0), [self.booking]))

    def test_specific_sport_matches_same_sport_and_venue_wide(self):
        venue_wide = make_booking(datetime(2026, 1, 10, 12), datetime(2026, 1, 10, 14), sport_id=None, id="b2")
        self.assertIs(find_conflict(self.day, time(10, 0), [self.booking], 1), self.booking)
        self.assertIs(find_conflict(self.day, time(13, 0), [venue_wide], "2"), venue_wide)
        self.assertTrue(matches_sport(self.booking, None))
        self.assertTrue(matches_sport(self.booking, ""))

    def test_first_overlapping_booking_wins(self):
        other = make_booking(datetime(2026, 1, 10, 10, 30), datetime(2026, 1, 10, 12), id="b2")
        self.assertIs(find_conflict(self.day, time(10, 0), [self.booking, other]), self.booking)
        self.assertIs(find_conflict(self.day, time(10, 0), [other, self.booking]), other)

    def test_cancelled_bookings_do_not_occupy(self):
        cancelled = make_booking(datetime(2026, 1, 10, 10), datetime(2026, 1, 10, 11), status="CANCELLED")
        self.assertIsNone(find_conflict(self.day, time(10, 0), [cancelled]))

    def test_longer_candidate_duration(self):
        self.assertIs(
            find_conflict(self.day, time(9, 0), [self.booking], duration=timedelta(hours=1, minutes=30)),
            self.booking,
        )

    def test_missing_list_is_empty(self):
        self.assertIsNone(find_conflict(self.day, time(10, 0), None))

    def test_deterministic(self):
        bookings = [self.booking]
        first = find_conflict(self.day, time(10, 0), bookings, "1")
        for _ in range(5):
            self.assertIs(find_conflict(self.day, time(10, 0), bookings, "1"), first)
        self.assertEqual(bookings, [self.booking])


class WeekMathTests(SimpleTestCase):
    def test_week_start_for_every_weekday(self):
        monday = date(2026, 1, 5)
        for offset in range(7):
            day = monday + timedelta(days=offset)
            with self.subTest(day=day):
                start = week_start(day)
                self.assertEqual(start.weekday(), 0)
                self.assertLessEqual(start, day)
                self.assertLess((day - start).days, 7)

    def test_sunday_rolls_back_six_days(self):
        sunday = date(2026, 1, 11)
        self.assertEqual(week_start(sunday), date(2026, 1, 5))

    def test_step_sizes(self):
        ref = date(2026, 1, 10)
        self.assertEqual(step(ref, ViewMode.DAY, 1), date(2026, 1, 11))
        self.assertEqual(step(ref, ViewMode.DAY, -1), date(2026, 1, 9))
        self.assertEqual(step(ref, ViewMode.WEEK, 1), date(2026, 1, 17))
        self.assertEqual(step(ref, ViewMode.WEEK, -1), date(2026, 1, 3))

    def test_visible_range(self):
        ref = date(2026, 1, 10)
        self.assertEqual(visible_range(ref, ViewMode.DAY), (ref, ref))
        self.assertEqual(visible_range(ref, ViewMode.WEEK), (date(2026, 1, 5), date(2026, 1, 11)))

    def test_parse_mode(self):
        self.assertEqual(parse_mode("day"), ViewMode.DAY)
        self.assertEqual(parse_mode("WEEK"), ViewMode.WEEK)
        self.assertEqual(parse_mode(None), ViewMode.WEEK)
        with self.assertRaises(ValueError):
            parse_mode("month")


class GridTests(SimpleTestCase):
    def test_week_grid_shape(self):
        grid = build_grid(date(2026, 1, 10), ViewMode.WEEK, [])
        self.assertEqual([r.hour for r in grid.rows], list(HOURS))
        self.assertEqual(len(grid.rows), 15)
        self.assertTrue(all(len(r.cells) == 7 for r in grid.rows))
        self.assertTrue(all(c.is_available for c in grid.cells()))
        self.assertEqual(grid.title, "Week of 5 Jan")

    def test_day_grid_states(self):
        day = date(2026, 1, 10)
        bookings = [
            make_booking(datetime(2026, 1, 10, 8), datetime(2026, 1, 10, 9), status="BLOCKED", id="blk"),
            make_booking(datetime(2026, 1, 10, 10), datetime(2026, 1, 10, 12), source="WALK_IN", id="walk"),
            make_booking(datetime(2026, 1, 10, 15), datetime(2026, 1, 10, 16), created_by="u9", id="web"),
        ]
        grid = build_grid(day, ViewMode.DAY, bookings)
        states = {row.hour: row.cells[0].state for row in grid.rows}
        self.assertEqual(states[7], CellState.AVAILABLE)
        self.assertEqual(states[8], CellState.BLOCKED)
        self.assertEqual(states[10], CellState.WALK_IN)
        self.assertEqual(states[11], CellState.WALK_IN)
        self.assertEqual(states[12], CellState.AVAILABLE)
        self.assertEqual(states[15], CellState.ONLINE)

    def test_navigation_keeps_mode(self):
        grid = build_grid(date(2026, 1, 10), ViewMode.DAY)
        self.assertEqual(grid.previous, date(2026, 1, 9))
        self.assertEqual(grid.next, date(2026, 1, 11))
        self.assertEqual(grid.title, "Saturday, 10 January")
