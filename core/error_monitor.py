# -*- coding: utf-8 -*-
"""
Monitoramento centralizado de erros e eventos do backend de simulados.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import sys
import threading
import traceback
import uuid

from core.app_paths import get_log_file_path


SESSION_ID = str(uuid.uuid4())
_WRITE_LOCK = threading.Lock()


def _append_log(level: str, title: str, details: str) -> None:
    timestamp = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    block = (
        f"\n[{timestamp}] [{level}] [session={SESSION_ID}] {title}\n"
        f"{details.rstrip()}\n"
        f"{'-' * 80}\n"
    )
    log_file = get_log_file_path()
    with _WRITE_LOCK:
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(block)


def format_fields(**fields) -> str:
    """Serializa pares chave=valor numa linha, na ordem recebida."""
    return " ".join(f"{key}={value}" for key, value in fields.items())


def log_message(title: str, details: str = "") -> None:
    _append_log("INFO", title, details or "-")


def log_warning(title: str, details: str = "") -> None:
    _append_log("WARN", title, details or "-")


def log_exception(exc: BaseException, where: str = "") -> None:
    location = where or "unhandled"
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    _append_log("ERROR", f"{location}: {exc}", tb)


def log_event(name: str, data: str = "") -> None:
    _append_log("EVENT", name, data or "-")


def setup_global_error_hooks() -> None:
    def _sys_hook(exc_type, exc_value, exc_tb):
        tb = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        _append_log("FATAL", f"sys.excepthook: {exc_value}", tb)
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    def _thread_hook(args: threading.ExceptHookArgs):
        tb = "".join(
            traceback.format_exception(args.exc_type, args.exc_value, args.exc_traceback)
        )
        _append_log("ERROR", f"threading.excepthook: {args.exc_value}", tb)

    sys.excepthook = _sys_hook
    threading.excepthook = _thread_hook

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # Sem event loop ativo neste momento.
        loop = None

    if loop is not None:
        def _async_hook(loop_obj, context):
            exc = context.get("exception")
            if exc:
                log_exception(exc, "asyncio")
            else:
                _append_log("ERROR", "asyncio", str(context))

        loop.set_exception_handler(_async_hook)
