from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone

from grid import day_grid, in_current_month, utc_today


class GridTests(unittest.TestCase):
    def test_day_grid_inclusive_and_ordered(self) -> None:
        days = list(day_grid(date(2020, 12, 30), date(2021, 1, 2)))
        self.assertEqual(
            [date(2020, 12, 30), date(2020, 12, 31), date(2021, 1, 1), date(2021, 1, 2)],
            days,
        )

    def test_day_grid_single_day(self) -> None:
        self.assertEqual([date(2020, 12, 1)], list(day_grid(date(2020, 12, 1), date(2020, 12, 1))))

    def test_day_grid_empty_when_end_before_start(self) -> None:
        self.assertEqual([], list(day_grid(date(2021, 1, 2), date(2021, 1, 1))))

    def test_day_grid_no_gaps_across_leap_day(self) -> None:
        days = list(day_grid(date(2024, 2, 27), date(2024, 3, 2)))
        self.assertEqual(5, len(days))
        self.assertIn(date(2024, 2, 29), days)
        self.assertEqual(len(days), len(set(days)))

    def test_day_grid_is_deterministic(self) -> None:
        start, end = date(2020, 12, 1), date(2021, 3, 1)
        self.assertEqual(list(day_grid(start, end)), list(day_grid(start, end)))

    def test_day_grid_is_consumed_once(self) -> None:
        grid = day_grid(date(2021, 1, 1), date(2021, 1, 3))
        self.assertEqual(3, len(list(grid)))
        self.assertEqual([], list(grid))

    def test_day_grid_rejects_partial_day_step(self) -> None:
        with self.assertRaises(ValueError):
            list(day_grid(date(2021, 1, 1), date(2021, 1, 3), step=timedelta(hours=12)))
        with self.assertRaises(ValueError):
            list(day_grid(date(2021, 1, 1), date(2021, 1, 3), step=timedelta(0)))

    def test_utc_today_converts_offsets(self) -> None:
        late_evening_west = datetime(2021, 3, 31, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        self.assertEqual(date(2021, 4, 1), utc_today(late_evening_west))

    def test_in_current_month(self) -> None:
        now = datetime(2021, 4, 15, 12, 0, tzinfo=timezone.utc)
        self.assertTrue(in_current_month(date(2021, 4, 1), now))
        self.assertFalse(in_current_month(date(2021, 3, 31), now))
        self.assertFalse(in_current_month(date(2020, 4, 15), now))


if __name__ == "__main__":
    unittest.main()
