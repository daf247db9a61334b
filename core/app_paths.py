# -*- coding: utf-8 -*-
"""
Runtime paths for the exam backend and support scripts.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

APP_NAME = "Cert Simulados"


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _candidate_bases():
    custom = (os.getenv("CERTSIM_DATA_DIR") or "").strip()
    if custom:
        yield Path(custom)

    home = Path.home()
    yield home / ".local" / "share" / APP_NAME
    yield _project_root()
    yield Path.cwd()
    yield Path(tempfile.gettempdir()) / APP_NAME


def _pick_base(kind: str) -> Path:
    for base in _candidate_bases():
        try:
            target = base / kind
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    fallback = Path(tempfile.gettempdir()) / APP_NAME / kind
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def get_data_dir() -> Path:
    return _pick_base("data")


def get_logs_dir() -> Path:
    return _pick_base("logs")


def ensure_runtime_dirs() -> None:
    for path in [get_data_dir(), get_logs_dir()]:
        path.mkdir(parents=True, exist_ok=True)


def get_db_path() -> Path:
    return get_data_dir() / "simulados.db"


def get_database_url() -> str:
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    return f"sqlite:///{get_db_path()}"


def get_log_file_path() -> Path:
    return get_logs_dir() / "app_errors.log"
