import unittest
from datetime import date, datetime

from facility_booking import TimeRange, ValidationError, format_clock, has_time_overlap, parse_clock
from facility_booking.time_model import free_ranges, parse_date, weekday_name


class TestTimeOverlap(unittest.TestCase):
    def setUp(self) -> None:
        self.exist_start = 10 * 60
        self.exist_end = 12 * 60

    def test_non_overlapping_before_passes(self) -> None:
        self.assertFalse(has_time_overlap(9 * 60, 9 * 60 + 59, self.exist_start, self.exist_end))

    def test_non_overlapping_after_passes(self) -> None:
        self.assertFalse(has_time_overlap(12 * 60 + 1, 13 * 60, self.exist_start, self.exist_end))

    def test_exactly_touching_boundary_passes(self) -> None:
        self.assertFalse(has_time_overlap(12 * 60, 14 * 60, self.exist_start, self.exist_end))
        self.assertFalse(has_time_overlap(8 * 60, 10 * 60, self.exist_start, self.exist_end))

    def test_partially_overlapping_fails(self) -> None:
        self.assertTrue(has_time_overlap(11 * 60, 13 * 60, self.exist_start, self.exist_end))

    def test_fully_contained_fails(self) -> None:
        self.assertTrue(has_time_overlap(10 * 60 + 15, 10 * 60 + 45, self.exist_start, self.exist_end))

    def test_fully_covering_fails(self) -> None:
        self.assertTrue(has_time_overlap(9 * 60, 13 * 60, self.exist_start, self.exist_end))

    def test_inverted_interval_raises(self) -> None:
        with self.assertRaises(ValueError):
            has_time_overlap(12 * 60, 11 * 60, self.exist_start, self.exist_end)


class TestClockParsing(unittest.TestCase):
    def test_parse_clock_converts_to_minute_of_day(self) -> None:
        self.assertEqual(parse_clock("00:00"), 0)
        self.assertEqual(parse_clock("10:30"), 630)
        self.assertEqual(parse_clock("9:05"), 545)
        self.assertEqual(parse_clock("23:59"), 1439)

    def test_parse_clock_accepts_minute_integers(self) -> None:
        self.assertEqual(parse_clock(600), 600)

    def test_parse_clock_rejects_malformed_text(self) -> None:
        for value in ("10", "10:5", "24:00", "12:60", "ten", "", "10:00:00", -1, 1440, True):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    parse_clock(value)

    def test_format_clock(self) -> None:
        self.assertEqual(format_clock(0), "00:00")
        self.assertEqual(format_clock(725), "12:05")

    def test_parse_date_accepts_several_forms(self) -> None:
        self.assertEqual(parse_date("2026-03-14"), date(2026, 3, 14))
        self.assertEqual(parse_date("2026/03/14"), date(2026, 3, 14))
        self.assertEqual(parse_date("2026-3-4"), date(2026, 3, 4))
        self.assertEqual(parse_date(datetime(2026, 3, 14, 18, 0)), date(2026, 3, 14))
        with self.assertRaises(ValidationError):
            parse_date("14.03.2026")

    def test_weekday_name(self) -> None:
        self.assertEqual(weekday_name(date(2026, 3, 14)), "saturday")
        self.assertEqual(weekday_name(date(2026, 3, 16)), "monday")


class TestTimeRange(unittest.TestCase):
    def test_end_must_be_after_start(self) -> None:
        with self.assertRaises(ValidationError):
            TimeRange(12 * 60, 11 * 60)
        with self.assertRaises(ValidationError):
            TimeRange(600, 600)

    def test_range_limits(self) -> None:
        with self.assertRaises(ValidationError):
            TimeRange(0, 1440)
        self.assertEqual(TimeRange(0, 1439).duration_minutes, 1439)

    def test_free_ranges_fill_gaps_inside_window(self) -> None:
        window = TimeRange(8 * 60, 22 * 60)
        booked = [TimeRange(12 * 60, 14 * 60), TimeRange(10 * 60, 12 * 60), TimeRange(21 * 60, 23 * 60)]

        gaps = free_ranges(window, booked)

        self.assertEqual(gaps, [TimeRange(8 * 60, 10 * 60), TimeRange(14 * 60, 21 * 60)])

    def test_free_ranges_of_empty_day_is_whole_window(self) -> None:
        window = TimeRange(8 * 60, 22 * 60)
        self.assertEqual(free_ranges(window, []), [window])


if __name__ == "__main__":
    unittest.main()
