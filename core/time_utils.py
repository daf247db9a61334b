# -*- coding: utf-8 -*-
"""Utilitarios de tempo e arredondamento compartilhados pelo core.

Todos os timestamps do core sao `datetime` ingenuos em UTC, o mesmo formato
que o SQLAlchemy devolve para colunas `DateTime` sem fuso.
"""

from __future__ import annotations

import datetime
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime.datetime) -> datetime.datetime:
    """Converte datetimes com fuso para UTC ingenuo; ingenuos passam intactos."""
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def resolve_now(now: Optional[datetime.datetime] = None) -> datetime.datetime:
    return to_naive_utc(now) if now is not None else utcnow()


def round_half_up(value: Union[int, float]) -> int:
    """Arredonda .5 para cima (`round` do Python arredonda para o par)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def elapsed_seconds(start: datetime.datetime, now: datetime.datetime) -> float:
    return (to_naive_utc(now) - to_naive_utc(start)).total_seconds()


def ceil_seconds(value: float) -> int:
    return int(math.ceil(value))


def add_days(moment: datetime.datetime, days: int) -> datetime.datetime:
    return to_naive_utc(moment) + datetime.timedelta(days=int(days))


def window_start(now: datetime.datetime, window_days: int) -> datetime.datetime:
    return to_naive_utc(now) - datetime.timedelta(days=int(window_days))


def parse_datetime(value) -> Optional[datetime.datetime]:
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return to_naive_utc(value)
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return to_naive_utc(datetime.datetime.fromisoformat(raw))
    except ValueError:
        return None


def format_datetime_label(value) -> str:
    parsed = parse_datetime(value)
    if parsed is None:
        return str(value or "").strip()
    return parsed.strftime("%d/%m/%Y %H:%M")
