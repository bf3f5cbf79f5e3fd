# budgetbook/config.py
# Environment-driven settings. A .env file next to the process is honoured.
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

VERSION = "1.0.0"

_TRUTHY = {"1", "true", "yes", "on"}


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name) or default)
    except ValueError:
        return default


def data_dir() -> Path:
    return Path(os.environ.get("DATA_DIR") or "data")


def logs_dir() -> Path:
    p = Path(os.environ.get("LOGS_DIR") or "logs")
    p.mkdir(parents=True, exist_ok=True)
    return p


def load_settings() -> Dict[str, Any]:
    """
    Snapshot of every knob the app reads, keyed the way Flask's app.config
    expects. Read at call time so tests can patch os.environ.
    """
    return {
        "SECRET_KEY": os.environ.get("SECRET_KEY", "dev"),
        "DATA_DIR": str(data_dir()),
        "STORE_BACKEND": (os.environ.get("STORE_BACKEND") or "json").strip().lower(),
        "LOG_LEVEL": (os.environ.get("LOG_LEVEL") or "INFO").upper(),
        "RECURRING_CATCH_UP": env_bool("RECURRING_CATCH_UP"),
        "SWEEP_ON_STARTUP": env_bool("SWEEP_ON_STARTUP"),
        "SCHEDULER_ENABLED": env_bool("SCHEDULER_ENABLED"),
        "SWEEP_INTERVAL_MINUTES": env_int("SWEEP_INTERVAL_MINUTES", 60),
    }
