# -*- coding: utf-8 -*-
"""Cota semanal de tentativas de simulado (janela movel de 7 dias)."""

from __future__ import annotations

import datetime
from dataclasses import replace
from typing import Iterable, Optional

from config import EXAM, get_plan_info
from core.models import AttemptQuota
from core.time_utils import add_days, format_datetime_label, resolve_now, to_naive_utc, window_start


class AttemptQuotaService:
    WINDOW_DAYS = int(EXAM["janela_tentativas_dias"])

    @classmethod
    def weekly_limit_for_plan(cls, plan_code: str) -> int:
        return int(max(0, get_plan_info(plan_code)["tentativas_semana"]))

    @classmethod
    def build_quota(
        cls,
        user_id: int,
        attempt_times: Iterable[datetime.datetime],
        attempts_allowed: int,
        now: Optional[datetime.datetime] = None,
        window_days: Optional[int] = None,
    ) -> AttemptQuota:
        """
        Conta as tentativas dentro da janela movel `(now - window, now]`.
        Nao ha reset de calendario: cada tentativa libera a sua vaga exatamente
        `window_days` depois de iniciada.
        """
        now = resolve_now(now)
        days = int(window_days or cls.WINDOW_DAYS)
        start = window_start(now, days)
        in_window = sorted(
            t for t in (to_naive_utc(x) for x in attempt_times or [] if x is not None)
            if start < t <= now
        )
        next_slot = add_days(in_window[0], days) if in_window else None
        return AttemptQuota(
            user_id=int(user_id),
            attempts_used=len(in_window),
            attempts_allowed=int(max(0, attempts_allowed)),
            window_start=start,
            window_days=days,
            next_slot_at=next_slot,
        )

    @staticmethod
    def can_start(quota: AttemptQuota) -> bool:
        return quota.attempts_used < quota.attempts_allowed

    @staticmethod
    def remaining_attempts(quota: AttemptQuota) -> int:
        return int(max(0, quota.attempts_allowed - quota.attempts_used))

    @staticmethod
    def consume(quota: AttemptQuota) -> AttemptQuota:
        return replace(quota, attempts_used=quota.attempts_used + 1)

    @classmethod
    def plan_hint(cls, quota: AttemptQuota) -> str:
        if cls.can_start(quota):
            return (
                f"{quota.attempts_used}/{quota.attempts_allowed} tentativas utilizadas nesta semana."
            )
        if quota.next_slot_at is not None:
            return (
                "Limite semanal atingido. Nova tentativa liberada em "
                f"{format_datetime_label(quota.next_slot_at)}."
            )
        return "Limite semanal atingido."
