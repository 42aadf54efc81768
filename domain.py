# domain.py
from __future__ import annotations
import copy
from dataclasses import dataclass, field, asdict, fields
from datetime import date, timedelta
from typing import Any

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def next_sunday(today: date | None = None) -> date:
    """Today when it is a Sunday, otherwise the upcoming Sunday."""
    d = today or date.today()
    return d + timedelta(days=(6 - d.weekday()) % 7)


def _text(data: dict, key: str) -> str:
    v = data.get(key)
    return "" if v is None else str(v)


@dataclass
class Job:
    project_name: str = ""
    on_site: str = ""
    off_site: str = ""

    def is_blank(self) -> bool:
        return not (self.project_name or self.on_site or self.off_site)

    @classmethod
    def from_dict(cls, data: dict) -> Job:
        return cls(_text(data, "project_name"), _text(data, "on_site"), _text(data, "off_site"))


@dataclass
class WeatherDelay:
    """Weather stand-down. Recorded for the sheet only, never counted in hours."""
    type: str = ""
    start: str = ""
    finish: str = ""
    approved_by: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> WeatherDelay:
        return cls(*(_text(data, f.name) for f in fields(cls)))


@dataclass
class AllowanceRow:
    start: str = ""
    finish: str = ""
    unit_no: str = ""
    approved_by: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> AllowanceRow:
        return cls(*(_text(data, f.name) for f in fields(cls)))


@dataclass
class HoursRequest:
    """Payout / hold request block. Values are free text as typed on the sheet."""
    type: str = ""
    total_hours: str = ""
    rdo_hours: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> HoursRequest:
        return cls(*(_text(data, f.name) for f in fields(cls)))


@dataclass
class Day:
    depot_start: str = ""
    depot_finish: str = ""
    lunch_taken: bool = False
    lunch_penalty_claimed: bool = False
    lunch_time: str = ""
    jobs: list[Job] = field(default_factory=lambda: [Job()])
    weather: list[WeatherDelay] = field(default_factory=list)
    remarks: str = ""
    approved_by: str = ""

    def has_activity(self) -> bool:
        """True when anything worth showing was entered for the day."""
        has_jobs = any(not j.is_blank() for j in self.jobs)
        has_depot = bool(self.depot_start or self.depot_finish)
        return has_jobs or has_depot or bool(self.weather) or bool(self.remarks.strip())

    @classmethod
    def from_dict(cls, data: dict) -> Day:
        jobs = [Job.from_dict(j) for j in data.get("jobs") or [] if isinstance(j, dict)]
        return cls(
            depot_start=_text(data, "depot_start"),
            depot_finish=_text(data, "depot_finish"),
            lunch_taken=bool(data.get("lunch_taken", False)),
            lunch_penalty_claimed=bool(data.get("lunch_penalty_claimed", False)),
            lunch_time=_text(data, "lunch_time"),
            jobs=jobs or [Job()],
            weather=[WeatherDelay.from_dict(w) for w in data.get("weather") or [] if isinstance(w, dict)],
            remarks=_text(data, "remarks"),
            approved_by=_text(data, "approved_by"),
        )


@dataclass
class WeekMeta:
    employee_name: str = ""
    class_name: str = ""
    week_ending: str = field(default_factory=lambda: next_sunday().isoformat())


def _seven(items: list, factory) -> list:
    # Pads or trims to one entry per weekday
    out = list(items[: len(DAYS)])
    while len(out) < len(DAYS):
        out.append(factory())
    return out


@dataclass
class Week:
    """
    One worker's timesheet for the week closing on ``meta.week_ending`` (a Sunday).
    ``days``, ``spray_allowance`` and ``wet_hours`` are index-aligned to DAYS.
    """
    meta: WeekMeta = field(default_factory=WeekMeta)
    days: list[Day] = field(default_factory=lambda: [Day() for _ in DAYS])
    spray_allowance: list[AllowanceRow] = field(default_factory=lambda: [AllowanceRow() for _ in DAYS])
    wet_hours: list[AllowanceRow] = field(default_factory=lambda: [AllowanceRow() for _ in DAYS])
    payout_request: HoursRequest = field(default_factory=HoursRequest)
    hold_request: HoursRequest = field(default_factory=HoursRequest)
    signature_image: str | None = None

    @property
    def week_ending_date(self) -> date | None:
        try:
            return date.fromisoformat(self.meta.week_ending.strip())
        except ValueError:
            return None

    def day_date(self, index: int) -> date | None:
        """Calendar date of weekday ``index`` (0 = Monday), counted back from week ending."""
        sunday = self.week_ending_date
        if sunday is None:
            return None
        return sunday - timedelta(days=6 - index)

    def day_label(self, index: int) -> str:
        d = self.day_date(index)
        if d is None:
            return DAYS[index]
        return f"{DAYS[index]} - {d:%b} {d.day}, {d.year}"

    def copy(self) -> Week:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Week:
        """Builds a Week from a stored payload, filling any missing parts with blanks."""
        meta = data.get("meta") or {}
        return cls(
            meta=WeekMeta(
                employee_name=_text(meta, "employee_name"),
                class_name=_text(meta, "class_name"),
                week_ending=_text(meta, "week_ending"),
            ),
            days=_seven([Day.from_dict(d) for d in data.get("days") or [] if isinstance(d, dict)], Day),
            spray_allowance=_seven(
                [AllowanceRow.from_dict(r) for r in data.get("spray_allowance") or [] if isinstance(r, dict)],
                AllowanceRow,
            ),
            wet_hours=_seven(
                [AllowanceRow.from_dict(r) for r in data.get("wet_hours") or [] if isinstance(r, dict)],
                AllowanceRow,
            ),
            payout_request=HoursRequest.from_dict(data.get("payout_request") or {}),
            hold_request=HoursRequest.from_dict(data.get("hold_request") or {}),
            signature_image=data.get("signature_image") or None,
        )


@dataclass
class Project:
    name: str
    client: str = ""
