# config.py
import os
from pathlib import Path


def _pick_data_dir() -> Path:
    """First writable of $DATA_DIR, /data and ./data; falls back to the working directory."""
    candidates = []
    env = os.getenv("DATA_DIR")
    if env:
        candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            continue
    return Path.cwd()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


DATA_DIR = _pick_data_dir()
DEFAULT_SQLITE = f"sqlite:///{(DATA_DIR / 'timesheet.db').as_posix()}"
DB_URL = os.getenv("DATABASE_URL", DEFAULT_SQLITE)

LUNCH_MINUTES = _int_env("TIMESHEET_LUNCH_MINUTES", 30)
TIME_STEP_MIN = _int_env("TIMESHEET_TIME_STEP", 15)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Hosted deployments must point at Postgres
HOSTED = "RENDER" in os.environ or "SPACE_ID" in os.environ or os.getenv("STREAMLIT_RUNTIME") == "cloud"
