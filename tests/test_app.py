"""
Tests for view navigation in the Streamlit front-end
"""
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from streamlit.testing.v1 import AppTest

from domain import Job, Week
from repository import TimesheetRepository

APP = Path(__file__).resolve().parent.parent / "app.py"


class TestNavigation(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.url = "sqlite:///" + (Path(self.tmp.name) / "timesheet.db").as_posix()
        env = mock.patch.dict(os.environ, {"DATA_DIR": self.tmp.name, "DATABASE_URL": self.url})
        env.start()
        self.addCleanup(env.stop)
        self.addCleanup(self.tmp.cleanup)
        # config reads the environment on import
        sys.modules.pop("config", None)
        self.addCleanup(sys.modules.pop, "config", None)
        self.at = AppTest.from_file(str(APP), default_timeout=30).run()

    def click(self, label: str):
        next(b for b in self.at.button if b.label == label).click().run()

    def test_sheet_renders(self):
        self.assertFalse(self.at.exception)
        self.assertEqual(self.at.session_state["view"], "sheet")
        self.assertEqual(self.at.session_state["gen"], 0)

    def test_round_trip_through_dashboard_rebuilds_editors(self):
        """Editors shown after coming back start from the stored week, not the first frame they saw"""
        self.assertIn("jobs_0_0_base", self.at.session_state)

        self.click("Dashboard →")
        self.assertEqual(self.at.session_state["view"], "dashboard")

        # Stored while away from the sheet, as opening a saved week does
        repo = TimesheetRepository(self.url)
        week = repo.read() or Week()
        week.days[0].jobs = [Job("Fencing", "07:00", "15:30")]
        repo.write(week)

        self.click("← Back to Timesheet")
        self.assertFalse(self.at.exception)
        self.assertEqual(self.at.session_state["view"], "sheet")
        self.assertEqual(self.at.session_state["gen"], 2)

        self.assertNotIn("jobs_0_0_base", self.at.session_state)
        base = self.at.session_state["jobs_0_2_base"]
        self.assertEqual(base.iloc[0]["Project"], "Fencing")
        self.assertEqual(base.iloc[0]["Off Site"], "15:30")

    def test_staying_on_a_view_keeps_widgets(self):
        self.click("Dashboard →")
        gen = self.at.session_state["gen"]
        self.at.run()
        self.assertEqual(self.at.session_state["gen"], gen)


if __name__ == "__main__":
    unittest.main()
