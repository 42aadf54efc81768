# services.py
from __future__ import annotations
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from domain import DAYS, AllowanceRow, Day, Job, Project, Week
from repository import History, WeekStore

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
UNNAMED = "(Unnamed)"
NO_DATE = "(No date)"
NO_PROJECT = "(No project)"


# =========================
# Clock arithmetic
# =========================
def parse_clock(s: str | None) -> int | None:
    """'HH:MM' -> minutes since midnight. None for empty or unparseable input (no range check)."""
    if not s:
        return None
    parts = s.split(":")
    if len(parts) < 2:
        return None
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        return None


def interval_minutes(start: str | None, end: str | None) -> int:
    """Minutes from start to end. An end before the start is taken as crossing midnight once."""
    s = parse_clock(start)
    e = parse_clock(end)
    if s is None or e is None:
        return 0
    if e < s:
        e += MINUTES_PER_DAY
    return max(0, e - s)


def format_hours(minutes: float) -> str:
    """510 -> '8.50'. The decimals are the fraction of an hour, not clock minutes."""
    safe = max(0, math.floor(minutes))
    h, m = divmod(safe, 60)
    return f"{h}.{round(m / 60 * 100):02d}"


def time_options(step_min: int = 15) -> list[str]:
    return [f"{h:02d}:{m:02d}" for h in range(24) for m in range(0, 60, step_min)]


# =========================
# Day / week totals
# =========================
class TimesheetCalculator:
    """Business rules for turning a day's clock entries into worked minutes."""
    def __init__(self, lunch_minutes: int = 30):
        self.lunch_minutes = lunch_minutes

    def sum_job_minutes(self, jobs: Iterable[Job]) -> int:
        return sum(interval_minutes(j.on_site, j.off_site) for j in jobs)

    def depot_minutes(self, day: Day) -> int:
        return interval_minutes(day.depot_start, day.depot_finish)

    def day_total_minutes(self, day: Day) -> int:
        """
        Job intervals and the depot-to-depot span are two ways of measuring the same day;
        the larger one counts. Lunch is deducted whenever it was taken.
        """
        base = max(self.sum_job_minutes(day.jobs), self.depot_minutes(day))
        deduct = self.lunch_minutes if day.lunch_taken else 0
        return max(0, base - deduct)

    def week_total_minutes(self, week: Week) -> int:
        return sum(self.day_total_minutes(d) for d in week.days)

    def allowance_total_minutes(self, rows: Iterable[AllowanceRow]) -> int:
        """Spray / wet hours table total. Informational, never part of the work total."""
        return sum(interval_minutes(r.start, r.finish) for r in rows)

    def weekly_total_str(self, week: Week) -> str:
        return format_hours(self.week_total_minutes(week))


# =========================
# History aggregation
# =========================
@dataclass
class SummaryRow:
    key: str
    minutes: int
    hours: str


@dataclass
class HistorySummary:
    by_employee: list[SummaryRow] = field(default_factory=list)
    by_project: list[SummaryRow] = field(default_factory=list)
    by_date: list[SummaryRow] = field(default_factory=list)


@dataclass
class JobDetail:
    project_name: str
    on_site: str
    off_site: str
    minutes: int
    hours: str


@dataclass
class DayDetail:
    index: int
    label: str
    minutes: int
    hours: str
    jobs: list[JobDetail]
    weather: list
    remarks: str


@dataclass
class EmployeeWeek:
    week: Week
    minutes: int
    hours: str
    days: list[DayDetail]


@dataclass
class ProjectEntry:
    work_date: date | None
    day_name: str
    employee: str
    range: str
    minutes: int
    hours: str


def _ranked(totals: dict[str, int]) -> list[SummaryRow]:
    # sorted() is stable, so equal totals keep first-seen order
    items = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [SummaryRow(k, v, format_hours(v)) for k, v in items]


class HistoryAggregator:
    """
    Folds saved weeks into reporting summaries.

    Employee and date totals use the day rules (job/depot max, lunch deduction).
    Project totals are the raw sum of each job's own interval.
    """
    def __init__(self, calculator: TimesheetCalculator | None = None):
        self.calculator = calculator or TimesheetCalculator()

    def by_employee(self, history: Iterable[Week]) -> list[SummaryRow]:
        totals: dict[str, int] = {}
        for wk in history:
            key = wk.meta.employee_name or UNNAMED
            totals[key] = totals.get(key, 0) + self.calculator.week_total_minutes(wk)
        return _ranked(totals)

    def by_date(self, history: Iterable[Week]) -> list[SummaryRow]:
        totals: dict[str, int] = {}
        for wk in history:
            key = wk.meta.week_ending or NO_DATE
            totals[key] = totals.get(key, 0) + self.calculator.week_total_minutes(wk)
        return _ranked(totals)

    def by_project(self, history: Iterable[Week]) -> list[SummaryRow]:
        totals: dict[str, int] = {}
        for wk in history:
            for d in wk.days:
                for j in d.jobs:
                    key = j.project_name.strip() or NO_PROJECT
                    totals[key] = totals.get(key, 0) + interval_minutes(j.on_site, j.off_site)
        return _ranked(totals)

    def summarize(self, history: Sequence[Week]) -> HistorySummary:
        return HistorySummary(
            by_employee=self.by_employee(history),
            by_project=self.by_project(history),
            by_date=self.by_date(history),
        )

    def employee_weeks(self, history: Iterable[Week], name: str) -> list[EmployeeWeek]:
        """Saved weeks for one employee; each lists its active days from Sunday back to Monday."""
        out = []
        for wk in history:
            if wk.meta.employee_name != name:
                continue
            days = []
            for i in reversed(range(len(wk.days))):
                d = wk.days[i]
                if not d.has_activity():
                    continue
                mins = self.calculator.day_total_minutes(d)
                jobs = []
                for j in d.jobs:
                    jm = interval_minutes(j.on_site, j.off_site)
                    jobs.append(JobDetail(j.project_name, j.on_site, j.off_site, jm, format_hours(jm)))
                days.append(DayDetail(i, wk.day_label(i), mins, format_hours(mins), jobs, list(d.weather), d.remarks))
            total = self.calculator.week_total_minutes(wk)
            out.append(EmployeeWeek(wk, total, format_hours(total), days))
        return out

    def project_entries(self, history: Iterable[Week], project: str) -> list[ProjectEntry]:
        """Every job booked against ``project``, newest first; undated weeks sort last."""
        target = (project or "").strip()
        rows = []
        for wk in history:
            for i, d in enumerate(wk.days):
                for j in d.jobs:
                    if j.project_name.strip() != target:
                        continue
                    mins = interval_minutes(j.on_site, j.off_site)
                    rows.append(ProjectEntry(
                        work_date=wk.day_date(i),
                        day_name=DAYS[i],
                        employee=wk.meta.employee_name or UNNAMED,
                        range=f"{j.on_site or '-'} → {j.off_site or '-'}",
                        minutes=mins,
                        hours=format_hours(mins),
                    ))
        rows.sort(key=lambda r: r.work_date or date.min, reverse=True)
        return rows

    @staticmethod
    def project_total_hours(entries: Iterable[ProjectEntry]) -> str:
        return f"{sum(float(e.hours) for e in entries):.2f}"


# =========================
# Working week lifecycle
# =========================
class TimesheetService:
    """Ties the working week and its history to a store."""
    def __init__(self, repo: WeekStore, calculator: TimesheetCalculator | None = None):
        self.repo = repo
        self.log = History(repo)
        self.calculator = calculator or TimesheetCalculator()
        self.aggregator = HistoryAggregator(self.calculator)

    def current_week(self) -> Week:
        wk = self.repo.read()
        return wk if wk is not None else Week()

    def update_week(self, week: Week) -> None:
        self.repo.write(week)

    def reset_week(self) -> Week:
        fresh = Week()
        self.repo.write(fresh)
        return fresh

    def save_week(self, week: Week | None = None) -> Week:
        """Appends the week to history and starts a fresh working week, which is returned."""
        wk = week if week is not None else self.current_week()
        self.log.append(wk)
        logger.info(
            "Saved week ending %s for %s (%s h)",
            wk.meta.week_ending or NO_DATE,
            wk.meta.employee_name or UNNAMED,
            self.calculator.weekly_total_str(wk),
        )
        return self.reset_week()

    def open_week(self, week: Week) -> Week:
        """Loads a saved week into the working slot. History keeps its own copy."""
        wk = week.copy()
        self.repo.write(wk)
        return wk

    def history(self) -> list[Week]:
        return self.log.snapshot()

    def summary(self) -> HistorySummary:
        return self.aggregator.summarize(self.history())

    def projects(self) -> list[Project]:
        return self.repo.list_projects()

    def register_project(self, name: str, client: str = "") -> None:
        """Adds a project, or updates the client of one with the same name (any case)."""
        self.repo.upsert_project(name, client)

    def client_for(self, project: str) -> str:
        target = (project or "").strip()
        for p in self.projects():
            if p.name.strip() == target:
                return p.client
        return ""
