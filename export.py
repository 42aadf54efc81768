# export.py
from __future__ import annotations

import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from domain import DAYS, AllowanceRow, Week
from services import TimesheetCalculator, format_hours, interval_minutes

ALLOWANCE_HEADER = ["Day", "Start", "Finish", "Hours", "Unit No", "Appr By"]


def _yn(flag: bool) -> str:
    return "Y" if flag else "N"


def day_header(max_jobs: int) -> list[str]:
    header = ["Day", "Depot Start", "Depot Finish", "Lunch", "Lunch Penalty", "Lunch Time"]
    for n in range(1, max_jobs + 1):
        header += [f"Job{n} Name", f"Job{n} On", f"Job{n} Off"]
    return header + ["Remarks", "Approved By", "Total Hours"]


def day_rows(week: Week, calc: TimesheetCalculator) -> list[list[str]]:
    max_jobs = max(len(d.jobs) for d in week.days)
    rows = []
    for name, d in zip(DAYS, week.days):
        row = [name, d.depot_start, d.depot_finish, _yn(d.lunch_taken), _yn(d.lunch_penalty_claimed), d.lunch_time]
        for j in range(max_jobs):
            if j < len(d.jobs):
                job = d.jobs[j]
                row += [job.project_name, job.on_site, job.off_site]
            else:
                row += ["", "", ""]
        row += [d.remarks, d.approved_by, format_hours(calc.day_total_minutes(d))]
        rows.append(row)
    return rows


def allowance_rows(rows: list[AllowanceRow]) -> list[list[str]]:
    """Hours come from each row's own start/finish; no lunch or depot rule applies."""
    return [
        [name, r.start, r.finish, format_hours(interval_minutes(r.start, r.finish)), r.unit_no, r.approved_by]
        for name, r in zip(DAYS, rows)
    ]


def week_to_rows(week: Week, weekly_total: str | None = None,
                 calc: TimesheetCalculator | None = None) -> list[list[str]]:
    calc = calc or TimesheetCalculator()
    if weekly_total is None:
        weekly_total = calc.weekly_total_str(week)
    max_jobs = max(len(d.jobs) for d in week.days)

    rows: list[list[str]] = [
        ["Name", week.meta.employee_name],
        ["Class", week.meta.class_name],
        ["Week Ending", week.meta.week_ending],
        [],
        day_header(max_jobs),
    ]
    rows += day_rows(week, calc)
    rows += [[], ["Spray Allowance"], list(ALLOWANCE_HEADER)]
    rows += allowance_rows(week.spray_allowance)
    rows += [[], ["Wet Hours"], list(ALLOWANCE_HEADER)]
    rows += allowance_rows(week.wet_hours)
    rows += [[], ["Weekly Total", weekly_total]]
    return rows


def _cell(value) -> str:
    text = "" if value is None else str(value)
    if any(c in text for c in ',"\n'):
        return '"' + text.replace('"', '""') + '"'
    return text


def week_to_csv(week: Week, weekly_total: str | None = None,
                calc: TimesheetCalculator | None = None) -> str:
    """
    Comma-separated sheet for one week. Fields holding a comma, quote or newline are
    quoted with inner quotes doubled; rows are joined by '\\n' with no trailing newline.
    """
    return "\n".join(",".join(_cell(v) for v in row) for row in week_to_rows(week, weekly_total, calc))


def export_filename(week: Week, ext: str = "csv") -> str:
    return f"timesheet_{week.meta.week_ending or 'week'}.{ext}"


# =========================
# PDF (printable sheet)
# =========================
_GRID = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F5F5F7")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 7),
    ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#E0E0E0")),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
])


def week_to_pdf(week: Week, calc: TimesheetCalculator | None = None) -> bytes:
    calc = calc or TimesheetCalculator()
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(A4), topMargin=24, bottomMargin=24, leftMargin=24, rightMargin=24)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="TitleCentered", parent=styles["Title"], alignment=TA_CENTER)
    total_style = ParagraphStyle(name="Total", parent=styles["Normal"], alignment=TA_CENTER, fontSize=11, leading=13)

    meta = week.meta
    story = [
        Paragraph(f"Timesheet · {escape(meta.employee_name or '(Unnamed)')}", title_style),
        Paragraph(f"Class: {escape(meta.class_name or '-')} · Week ending: {escape(meta.week_ending or '-')}", styles["Normal"]),
        Spacer(1, 8),
    ]
    max_jobs = max(len(d.jobs) for d in week.days)
    story.append(Table([day_header(max_jobs)] + day_rows(week, calc), repeatRows=1, hAlign="CENTER", style=_GRID))

    for title, rows in (("Spray Allowance", week.spray_allowance), ("Wet Hours", week.wet_hours)):
        total = format_hours(calc.allowance_total_minutes(rows))
        story += [Spacer(1, 10), Paragraph(f"{title} · Total {total} h", styles["Heading4"])]
        story.append(Table([ALLOWANCE_HEADER] + allowance_rows(rows), hAlign="LEFT", style=_GRID))

    story += [Spacer(1, 12), Paragraph(f"Weekly total: {calc.weekly_total_str(week)} h", total_style)]

    def draw_page_border(canvas, doc_obj):
        canvas.saveState()
        w, h = doc_obj.pagesize
        canvas.setStrokeColor(colors.HexColor("#C7CCD6"))
        canvas.setLineWidth(0.8)
        margin = 12
        canvas.rect(margin, margin, w - 2*margin, h - 2*margin)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page_border, onLaterPages=draw_page_border)
    return buf.getvalue()
