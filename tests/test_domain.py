"""
Unit tests for the week model and its defaults
"""
import unittest
from datetime import date

from domain import DAYS, Day, Job, WeatherDelay, Week, WeekMeta, next_sunday


class TestWeekDefaults(unittest.TestCase):

    def test_next_sunday_from_weekday(self):
        self.assertEqual(next_sunday(date(2025, 2, 10)), date(2025, 2, 16))
        self.assertEqual(next_sunday(date(2025, 2, 15)), date(2025, 2, 16))

    def test_next_sunday_on_a_sunday_is_today(self):
        self.assertEqual(next_sunday(date(2025, 2, 16)), date(2025, 2, 16))

    def test_empty_week_shape(self):
        wk = Week()
        self.assertEqual(len(wk.days), 7)
        self.assertEqual(len(wk.spray_allowance), 7)
        self.assertEqual(len(wk.wet_hours), 7)
        self.assertTrue(all(len(d.jobs) == 1 and d.jobs[0].is_blank() for d in wk.days))
        self.assertEqual(wk.meta.employee_name, "")
        self.assertIsNone(wk.signature_image)
        self.assertEqual(date.fromisoformat(wk.meta.week_ending).weekday(), 6)

    def test_days_do_not_share_state(self):
        wk = Week()
        wk.days[0].jobs.append(Job("Fencing"))
        self.assertEqual(len(wk.days[1].jobs), 1)


class TestDayDates(unittest.TestCase):

    def test_day_dates_count_back_from_week_ending(self):
        wk = Week(meta=WeekMeta(week_ending="2025-02-16"))
        self.assertEqual(wk.day_date(0), date(2025, 2, 10))
        self.assertEqual(wk.day_date(6), date(2025, 2, 16))
        self.assertEqual(wk.day_label(2), "Wednesday - Feb 12, 2025")

    def test_blank_or_bad_week_ending(self):
        for ending in ("", "not a date"):
            wk = Week(meta=WeekMeta(week_ending=ending))
            self.assertIsNone(wk.day_date(0))
            self.assertEqual(wk.day_label(0), "Monday")


class TestDayActivity(unittest.TestCase):

    def test_blank_day_has_no_activity(self):
        self.assertFalse(Day().has_activity())
        self.assertFalse(Day(remarks="   ").has_activity())

    def test_any_entry_counts(self):
        self.assertTrue(Day(jobs=[Job(on_site="07:00")]).has_activity())
        self.assertTrue(Day(depot_finish="15:00").has_activity())
        self.assertTrue(Day(weather=[WeatherDelay("Rain")]).has_activity())
        self.assertTrue(Day(remarks="Crane down").has_activity())


class TestSerialization(unittest.TestCase):

    def test_round_trip(self):
        wk = Week(meta=WeekMeta("Sam", "Leading hand", "2025-02-16"))
        wk.days[3].jobs = [Job("Fencing", "07:00", "12:00"), Job("Roads", "12:30", "15:30")]
        wk.days[3].weather.append(WeatherDelay("Rain", "09:00", "10:00", "Jo"))
        wk.days[3].lunch_taken = True
        wk.payout_request.total_hours = "4"
        wk.signature_image = "data:image/png;base64,AAAA"
        self.assertEqual(Week.from_dict(wk.to_dict()), wk)

    def test_from_partial_dict_fills_defaults(self):
        wk = Week.from_dict({"meta": {"employee_name": "Sam"}, "days": [{"jobs": []}, {"remarks": None}]})
        self.assertEqual(wk.meta.employee_name, "Sam")
        self.assertEqual(wk.meta.week_ending, "")
        self.assertEqual(len(wk.days), len(DAYS))
        self.assertEqual(len(wk.days[0].jobs), 1)
        self.assertEqual(wk.days[1].remarks, "")
        self.assertEqual(len(wk.wet_hours), 7)

    def test_from_dict_trims_extra_days(self):
        wk = Week.from_dict({"days": [{} for _ in range(9)]})
        self.assertEqual(len(wk.days), 7)

    def test_copy_is_deep(self):
        wk = Week()
        clone = wk.copy()
        clone.days[0].jobs[0].project_name = "Changed"
        self.assertEqual(wk.days[0].jobs[0].project_name, "")


if __name__ == "__main__":
    unittest.main()
