# app.py
# -----------------------------------------------
# Weekly site timesheet (Streamlit)
# -----------------------------------------------
# Requires: streamlit, sqlmodel, pandas, reportlab, psycopg2-binary (for Postgres)
# Saving a week appends it to history and starts a blank sheet.

import base64
import logging

import pandas as pd
import streamlit as st

import config
from domain import DAYS, AllowanceRow, Job, WeatherDelay, Week
from export import export_filename, week_to_csv, week_to_pdf
from repository import TimesheetRepository
from services import TimesheetCalculator, TimesheetService, format_hours, interval_minutes, time_options
from utils import employee_week_to_dataframe, project_entries_to_dataframe, summary_to_dataframe

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

APP_TITLE = "Site Timesheet"
TIME_OPTIONS = [""] + time_options(config.TIME_STEP_MIN)

st.set_page_config(page_title=APP_TITLE, page_icon="⏱️", layout="wide")

if config.HOSTED and config.DB_URL.startswith("sqlite"):
    st.error("DATABASE_URL (Postgres) is not set. Configure it in the hosting environment.")


@st.cache_resource
def get_service(url: str) -> TimesheetService:
    return TimesheetService(TimesheetRepository(url), TimesheetCalculator(config.LUNCH_MINUTES))


service = get_service(config.DB_URL)
calc = service.calculator

st.session_state.setdefault("view", "sheet")
st.session_state.setdefault("gen", 0)


def go(view: str, **kw):
    if view != st.session_state["view"]:
        # Editors of the view being left lose their state; rebuild them from the stored week
        _fresh_widgets()
    st.session_state["view"] = view
    st.session_state.update(kw)
    st.rerun()


def _fresh_widgets():
    # Widget keys carry a generation number so a new sheet starts from clean inputs
    for key in [key for key in st.session_state if str(key).endswith("_base")]:
        del st.session_state[key]
    st.session_state["gen"] += 1


def k(name: str) -> str:
    return f"{name}_{st.session_state['gen']}"


def editor_base(key: str, df: pd.DataFrame) -> pd.DataFrame:
    # data_editor replays its edits on top of the frame it was first given
    return st.session_state.setdefault(k(key) + "_base", df)


def time_select(label: str, value: str, key: str) -> str:
    opts = TIME_OPTIONS if value in TIME_OPTIONS else TIME_OPTIONS + [value]
    return st.selectbox(label, opts, index=opts.index(value), key=k(key))


# =========================
# Timesheet editor
# =========================
def jobs_editor(week: Week, i: int):
    day = week.days[i]
    df = pd.DataFrame(
        [{"Project": j.project_name, "On Site": j.on_site, "Off Site": j.off_site} for j in day.jobs],
        columns=["Project", "On Site", "Off Site"],
    )
    names = [p.name for p in service.projects()]
    edited = st.data_editor(
        editor_base(f"jobs_{i}", df),
        num_rows="dynamic",
        use_container_width=True,
        key=k(f"jobs_{i}"),
        column_config={
            "Project": st.column_config.SelectboxColumn(options=names) if names else st.column_config.TextColumn(),
            "On Site": st.column_config.SelectboxColumn(options=TIME_OPTIONS),
            "Off Site": st.column_config.SelectboxColumn(options=TIME_OPTIONS),
        },
    )
    jobs = [Job(str(r["Project"] or ""), str(r["On Site"] or ""), str(r["Off Site"] or ""))
            for _, r in edited.fillna("").iterrows()]
    day.jobs = jobs or [Job()]


def weather_editor(week: Week, i: int):
    day = week.days[i]
    df = pd.DataFrame(
        [{"Type": w.type, "Start": w.start, "Finish": w.finish, "Approved By": w.approved_by} for w in day.weather],
        columns=["Type", "Start", "Finish", "Approved By"],
    )
    edited = st.data_editor(
        editor_base(f"weather_{i}", df),
        num_rows="dynamic",
        use_container_width=True,
        key=k(f"weather_{i}"),
        column_config={
            "Start": st.column_config.SelectboxColumn(options=TIME_OPTIONS),
            "Finish": st.column_config.SelectboxColumn(options=TIME_OPTIONS),
        },
    )
    day.weather = [WeatherDelay(str(r["Type"]), str(r["Start"]), str(r["Finish"]), str(r["Approved By"]))
                   for _, r in edited.fillna("").iterrows()]


def day_card(week: Week, i: int):
    day = week.days[i]
    total = format_hours(calc.day_total_minutes(day))
    with st.expander(f"{week.day_label(i)} · {total} h"):
        c1, c2, c3, c4, c5 = st.columns(5)
        with c1:
            day.depot_start = time_select("Depot Start", day.depot_start, f"ds_{i}")
        with c2:
            day.depot_finish = time_select("Depot Finish", day.depot_finish, f"df_{i}")
        with c3:
            day.lunch_taken = st.checkbox("Lunch", value=day.lunch_taken, key=k(f"lunch_{i}"))
        with c4:
            day.lunch_penalty_claimed = st.checkbox("Lunch Penalty", value=day.lunch_penalty_claimed, key=k(f"lp_{i}"))
        with c5:
            day.lunch_time = time_select("Lunch Time", day.lunch_time, f"lt_{i}")
        st.caption("Jobs")
        jobs_editor(week, i)
        st.caption("Weather")
        weather_editor(week, i)
        c1, c2 = st.columns(2)
        day.remarks = c1.text_input("Remarks", value=day.remarks, key=k(f"rem_{i}"))
        day.approved_by = c2.text_input("Approved By", value=day.approved_by, key=k(f"appr_{i}"))
        st.caption(
            f"Jobs {format_hours(calc.sum_job_minutes(day.jobs))} h · "
            f"Depot {format_hours(calc.depot_minutes(day))} h"
        )


def allowance_editor(title: str, rows: list[AllowanceRow], key: str) -> list[AllowanceRow]:
    total = format_hours(calc.allowance_total_minutes(rows))
    with st.expander(f"{title} · Total {total} h"):
        df = pd.DataFrame([{
            "Day": name, "Start": r.start, "Finish": r.finish, "Unit No": r.unit_no, "Appr By": r.approved_by,
        } for name, r in zip(DAYS, rows)])
        edited = st.data_editor(
            editor_base(key, df), num_rows="fixed", use_container_width=True, key=k(key),
            column_config={
                "Day": st.column_config.TextColumn(disabled=True),
                "Start": st.column_config.SelectboxColumn(options=TIME_OPTIONS),
                "Finish": st.column_config.SelectboxColumn(options=TIME_OPTIONS),
            },
        )
        out = [AllowanceRow(str(r["Start"]), str(r["Finish"]), str(r["Unit No"]), str(r["Appr By"]))
               for _, r in edited.fillna("").iterrows()]
        st.caption(" · ".join(
            f"{name[:3]} {format_hours(interval_minutes(r.start, r.finish))}" for name, r in zip(DAYS, out)
        ))
        return out


def request_block(title: str, req, key: str):
    st.markdown(f"**{title}**")
    c1, c2, c3 = st.columns(3)
    req.type = c1.text_input("Type", value=req.type, key=k(f"{key}_type"))
    req.total_hours = c2.text_input("Total Hours", value=req.total_hours, key=k(f"{key}_total"))
    req.rdo_hours = c3.text_input("RDO Hours", value=req.rdo_hours, key=k(f"{key}_rdo"))


def sheet_view():
    week = service.current_week()
    before = week.to_dict()

    st.title(f"⏱️ {APP_TITLE}")
    c1, c2, c3 = st.columns(3)
    week.meta.employee_name = c1.text_input("Employee Name", value=week.meta.employee_name, key=k("name"))
    week.meta.class_name = c2.text_input("Class", value=week.meta.class_name, key=k("class"))
    ending = week.week_ending_date
    picked = c3.date_input("Week Ending (Sunday)", value=ending, key=k("ending"))
    week.meta.week_ending = picked.isoformat() if picked else ""

    for i in range(len(DAYS)):
        day_card(week, i)

    week.spray_allowance = allowance_editor("Spray Allowance", week.spray_allowance, "spray")
    week.wet_hours = allowance_editor("Wet Hours", week.wet_hours, "wet")

    c1, c2 = st.columns(2)
    with c1:
        request_block("Payout Request", week.payout_request, "payout")
    with c2:
        request_block("Hold Request", week.hold_request, "hold")

    st.markdown("**Signature**")
    upload = st.file_uploader("Signature image", type=["png", "jpg", "jpeg"], key=k("sig"))
    if upload is not None:
        week.signature_image = f"data:{upload.type};base64," + base64.b64encode(upload.getvalue()).decode()
    if week.signature_image:
        st.image(week.signature_image, width=240)

    if week.to_dict() != before:
        service.update_week(week)

    weekly = calc.weekly_total_str(week)
    st.metric("Weekly Total", f"{weekly} h")

    c1, c2, c3, c4, c5 = st.columns(5)
    if c1.button("Dashboard →", use_container_width=True):
        go("dashboard")
    if c2.button("Save Week", use_container_width=True):
        service.save_week(week)
        _fresh_widgets()
        st.toast("Week saved to history.", icon="✅")
        st.rerun()
    c3.download_button("Export CSV", data=week_to_csv(week, weekly, calc), file_name=export_filename(week),
                       mime="text/csv", use_container_width=True)
    c4.download_button("PDF", data=week_to_pdf(week, calc), file_name=export_filename(week, "pdf"),
                       mime="application/pdf", use_container_width=True)
    if c5.button("Clear", use_container_width=True):
        service.reset_week()
        _fresh_widgets()
        st.rerun()


# =========================
# Dashboard and drill-downs
# =========================
def dashboard_view():
    if st.button("← Back to Timesheet"):
        go("sheet")
    st.header("Dashboard")
    summary = service.summary()
    mode = st.radio("Group", ["By Employee", "By Project", "By Date"], horizontal=True, label_visibility="collapsed")

    if mode == "By Project":
        with st.expander("+ Add Project"):
            name = st.text_input("Project name", key="new_project")
            client = st.text_input("Client name", key="new_client")
            if st.button("Save project"):
                service.register_project(name, client)
                st.rerun()

    rows = {"By Employee": summary.by_employee, "By Project": summary.by_project, "By Date": summary.by_date}[mode]
    if not rows:
        st.info('No history saved yet. Click "Save Week" on the timesheet.')
        return
    st.dataframe(summary_to_dataframe(rows, mode[3:]), use_container_width=True, hide_index=True)

    if mode == "By Employee":
        pick = st.selectbox("Open employee", [r.key for r in rows])
        if st.button("Open"):
            go("employee", selected_employee=pick)
    elif mode == "By Project":
        clients = {p.name.strip(): p.client for p in service.projects()}
        labels = {r.key: r.key + (f" · {clients[r.key]}" if clients.get(r.key) else "") for r in rows}
        pick = st.selectbox("Open project", list(labels), format_func=labels.get)
        if st.button("Open"):
            go("project", selected_project=pick)


def employee_view():
    name = st.session_state.get("selected_employee") or "(Unnamed)"
    if st.button("← Back"):
        go("dashboard")
    st.header(name)
    weeks = service.aggregator.employee_weeks(service.history(), name)
    if not weeks:
        st.caption("No saved records.")
        return
    for n, ew in enumerate(weeks):
        st.subheader(f"Week Ending: {ew.week.meta.week_ending or '(unknown)'} · {ew.hours} h")
        st.dataframe(employee_week_to_dataframe(ew), use_container_width=True, hide_index=True)
        for d in ew.days:
            if d.weather or d.remarks:
                notes = [f"{w.type or '(type)'} ({w.start or '-'}–{w.finish or '-'})" for w in d.weather]
                st.caption(f"{d.label}: " + "; ".join(notes + ([d.remarks] if d.remarks else [])))
        if st.button("Open →", key=f"open_week_{n}"):
            service.open_week(ew.week)
            go("sheet")


def project_view():
    project = st.session_state.get("selected_project") or ""
    if st.button("← Back"):
        go("dashboard")
    entries = service.aggregator.project_entries(service.history(), project)
    st.header(f"{project} · {service.aggregator.project_total_hours(entries)}h")
    client = service.client_for(project)
    if client:
        st.caption(f"Client: {client}")
    if not entries:
        st.caption("No entries yet.")
        return
    st.dataframe(project_entries_to_dataframe(entries, project), use_container_width=True, hide_index=True)


VIEWS = {"sheet": sheet_view, "dashboard": dashboard_view, "employee": employee_view, "project": project_view}
VIEWS.get(st.session_state["view"], sheet_view)()
