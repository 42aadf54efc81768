# repository.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import List, Protocol

from sqlalchemy import func, text
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, Field, Session, create_engine, select

from domain import Project, Week

logger = logging.getLogger(__name__)

WORKING_WEEK_KEY = "working-week"


class WeekStore(Protocol):
    """What the engine needs from storage. Missing or unreadable records come back empty."""
    def read(self) -> Week | None: ...
    def write(self, week: Week) -> None: ...
    def read_history(self) -> List[Week]: ...
    def append_history(self, week: Week) -> None: ...
    def list_projects(self) -> List[Project]: ...
    def upsert_project(self, name: str, client: str = "") -> None: ...


def _dump(week: Week) -> str:
    return json.dumps(week.to_dict(), ensure_ascii=False)


def _load(payload: str | None) -> Week | None:
    if not payload:
        return None
    try:
        data = json.loads(payload)
    except ValueError:
        logger.warning("Discarding unreadable week payload")
        return None
    if not isinstance(data, dict):
        logger.warning("Discarding week payload of type %s", type(data).__name__)
        return None
    try:
        return Week.from_dict(data)
    except (AttributeError, TypeError) as e:
        logger.warning("Discarding malformed week payload: %s", e)
        return None


def _upsert(projects: List[Project], name: str, client: str) -> List[Project]:
    name, client = name.strip(), client.strip()
    if not name:
        return projects
    for p in projects:
        if p.name.lower() == name.lower():
            p.client = client
            return projects
    projects.append(Project(name, client))
    return projects


class InMemoryWeekStore:
    """Keeps serialized payloads so stored weeks never share state with callers."""
    def __init__(self):
        self._working: str | None = None
        self._history: List[str] = []
        self._projects: List[Project] = []

    def read(self) -> Week | None:
        return _load(self._working)

    def write(self, week: Week) -> None:
        self._working = _dump(week)

    def read_history(self) -> List[Week]:
        return [w for w in (_load(p) for p in self._history) if w is not None]

    def append_history(self, week: Week) -> None:
        self._history.append(_dump(week))

    def list_projects(self) -> List[Project]:
        return [Project(p.name, p.client) for p in self._projects]

    def upsert_project(self, name: str, client: str = "") -> None:
        _upsert(self._projects, name, client)


class WorkingWeekDB(SQLModel, table=True):
    key: str = Field(primary_key=True)
    payload: str
    updated_at: datetime = Field(default_factory=datetime.now)


class HistoryWeekDB(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    employee_name: str = Field(default="", index=True)
    week_ending: str = Field(default="", index=True)
    payload: str
    saved_at: datetime = Field(default_factory=datetime.now)


class ProjectDB(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    client: str = ""


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "connect_args": {},
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Hosted Postgres: no local pool, bounded connect time
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


class TimesheetRepository:
    """Working week, append-only history and project list in SQL. Postgres must be reachable."""
    def __init__(self, url: str = "sqlite:///timesheet.db", echo: bool = False):
        self.primary_url = url
        self.engine = build_engine(url, echo=echo)

        if not url.startswith("sqlite"):
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("select 1"))
            except Exception as e:
                raise RuntimeError(f"Could not connect to Postgres: {e}") from e

        SQLModel.metadata.create_all(self.engine)

    def read(self) -> Week | None:
        with Session(self.engine) as session:
            row = session.get(WorkingWeekDB, WORKING_WEEK_KEY)
            return _load(row.payload) if row else None

    def write(self, week: Week) -> None:
        with Session(self.engine) as session:
            row = session.get(WorkingWeekDB, WORKING_WEEK_KEY)
            if row is None:
                row = WorkingWeekDB(key=WORKING_WEEK_KEY, payload=_dump(week))
            else:
                row.payload = _dump(week)
                row.updated_at = datetime.now()
            session.add(row)
            session.commit()

    def read_history(self) -> List[Week]:
        with Session(self.engine) as session:
            rows = session.exec(select(HistoryWeekDB).order_by(HistoryWeekDB.id)).all()
            weeks = []
            for r in rows:
                wk = _load(r.payload)
                if wk is None:
                    logger.warning("Skipping history entry %s", r.id)
                    continue
                weeks.append(wk)
            return weeks

    def append_history(self, week: Week) -> None:
        with Session(self.engine) as session:
            session.add(HistoryWeekDB(
                employee_name=week.meta.employee_name,
                week_ending=week.meta.week_ending,
                payload=_dump(week),
            ))
            session.commit()

    def list_projects(self) -> List[Project]:
        with Session(self.engine) as session:
            rows = session.exec(select(ProjectDB).order_by(ProjectDB.id)).all()
            return [Project(r.name, r.client) for r in rows]

    def upsert_project(self, name: str, client: str = "") -> None:
        name, client = name.strip(), client.strip()
        if not name:
            return
        with Session(self.engine) as session:
            row = session.exec(
                select(ProjectDB).where(func.lower(ProjectDB.name) == name.lower())
            ).first()
            if row is None:
                row = ProjectDB(name=name, client=client)
            else:
                row.client = client
            session.add(row)
            session.commit()


class History:
    """Append-only view of saved weeks. Entries are copied in and copied out."""
    def __init__(self, store: WeekStore):
        self.store = store

    def append(self, week: Week) -> None:
        self.store.append_history(week.copy())

    def snapshot(self) -> List[Week]:
        return list(self.store.read_history())

    def __len__(self) -> int:
        return len(self.snapshot())


__all__ = [
    "WeekStore", "InMemoryWeekStore", "TimesheetRepository", "History",
    "WorkingWeekDB", "HistoryWeekDB", "ProjectDB", "build_engine",
]
