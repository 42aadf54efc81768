# utils.py
import pandas as pd
from typing import Iterable
from services import ProjectEntry, SummaryRow, EmployeeWeek


def summary_to_dataframe(rows: Iterable[SummaryRow], label: str) -> pd.DataFrame:
    """Dashboard table: one row per key, already ranked by minutes."""
    df = pd.DataFrame(
        [{label: r.key, "Hours": r.hours, "Minutes": r.minutes} for r in rows],
        columns=[label, "Hours", "Minutes"],
    )
    return df


def project_entries_to_dataframe(entries: Iterable[ProjectEntry], project: str) -> pd.DataFrame:
    rows = []
    for e in entries:
        rows.append({
            "Date": e.work_date.isoformat() if e.work_date else "",
            "Day": e.day_name,
            "Employee": e.employee,
            "Project": project,
            "Hours": e.hours,
            "Range": e.range,
        })
    return pd.DataFrame(rows, columns=["Date", "Day", "Employee", "Project", "Hours", "Range"])


def employee_week_to_dataframe(ew: EmployeeWeek) -> pd.DataFrame:
    """Flattens one week of the employee drill-down into a job-per-row table."""
    rows = []
    for d in ew.days:
        for j in d.jobs:
            rows.append({
                "Day": d.label,
                "Job": j.project_name or "(No name)",
                "On": j.on_site or "-",
                "Off": j.off_site or "-",
                "Job Hours": j.hours,
                "Day Hours": d.hours,
            })
    return pd.DataFrame(rows, columns=["Day", "Job", "On", "Off", "Job Hours", "Day Hours"])
