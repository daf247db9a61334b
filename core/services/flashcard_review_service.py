# -*- coding: utf-8 -*-
"""
Agendador de revisao espacada de flashcards, inspirado no SM-2.

Ciclo de vida por cartao:
  - new -> learning: sempre na primeira revisao, qualquer que seja a nota.
  - learning -> review: duas revisoes seguidas com nota >= 4.
  - review -> graduated: cartao ja em review, intervalo >= 21 dias e revisao
    sem falha. Nenhum cartao pula o status review.
  - nota < 3 em qualquer status: volta para learning com intervalo de 1 dia.

Intervalo em caso de acerto:
  - cartao sem intervalo: 1 dia
  - demais: max(intervalo + 1, round(intervalo * fator)), limitado a 365 dias
Fator de facilidade: formula do SM-2, nunca abaixo de 1.3.
"""

from __future__ import annotations

import datetime
from dataclasses import replace
from typing import Dict, Iterable, Iterator, Optional

from config import SRS
from core.errors import InvalidQuality
from core.models import CardStatus, FlashcardReviewState, FlashcardStats
from core.time_utils import add_days, resolve_now, round_half_up


_QUALIDADE_MIN = int(SRS["qualidade_min"])
_QUALIDADE_MAX = int(SRS["qualidade_max"])
_LIMIAR_FALHA = int(SRS["limiar_falha"])
_LIMIAR_BOA = int(SRS["limiar_boa_lembranca"])
_SEGUIDAS_PARA_REVISAO = int(SRS["acertos_seguidos_para_revisao"])
_FATOR_MIN = float(SRS["fator_minimo"])
_PENALIDADE_FALHA = float(SRS["penalidade_falha"])
_INTERVALO_MIN = int(SRS["intervalo_minimo_dias"])
_INTERVALO_GRADUACAO = int(SRS["intervalo_graduacao_dias"])
_INTERVALO_MAX = int(SRS["intervalo_maximo_dias"])


def validate_quality(value) -> int:
    """Validacao de fronteira: o agendador so recebe notas inteiras de 0 a 5."""
    if isinstance(value, bool):
        raise InvalidQuality(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidQuality(value)
        value = int(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw.lstrip("-").isdigit():
            raise InvalidQuality(value)
        value = int(raw)
    if not isinstance(value, int):
        raise InvalidQuality(value)
    if value < _QUALIDADE_MIN or value > _QUALIDADE_MAX:
        raise InvalidQuality(value)
    return value


def _nudge_ease(ease: float, quality: int) -> float:
    gap = _QUALIDADE_MAX - quality
    novo = ease + (0.1 - gap * (0.08 + gap * 0.02))
    return round(max(_FATOR_MIN, novo), 4)


def _grow_interval(current: int, ease: float) -> int:
    if current <= 0:
        return _INTERVALO_MIN
    grown = max(current + 1, round_half_up(current * ease))
    return int(min(_INTERVALO_MAX, max(_INTERVALO_MIN, grown)))


class FlashcardReviewScheduler:
    @staticmethod
    def is_failure(quality: int) -> bool:
        return quality < _LIMIAR_FALHA

    @classmethod
    def review(
        cls,
        state: FlashcardReviewState,
        quality: int,
        now: Optional[datetime.datetime] = None,
    ) -> FlashcardReviewState:
        """Aplica uma revisao e devolve o novo agendamento do cartao."""
        now = resolve_now(now)

        if cls.is_failure(quality):
            status = CardStatus.LEARNING
            interval = _INTERVALO_MIN
            ease = round(max(_FATOR_MIN, state.ease_factor - _PENALIDADE_FALHA), 4)
            consecutive = 0
        else:
            ease = _nudge_ease(state.ease_factor, quality)
            interval = _grow_interval(state.interval_days, ease)
            consecutive = state.consecutive_good + 1 if quality >= _LIMIAR_BOA else 0

            if state.status == CardStatus.NEW:
                status = CardStatus.LEARNING
            else:
                status = state.status
            if status == CardStatus.LEARNING and state.status != CardStatus.NEW:
                if consecutive >= _SEGUIDAS_PARA_REVISAO:
                    status = CardStatus.REVIEW
            # so gradua quem ja estava em review antes desta revisao
            if state.status == CardStatus.REVIEW and interval >= _INTERVALO_GRADUACAO:
                status = CardStatus.GRADUATED

        return replace(
            state,
            status=status,
            interval_days=interval,
            ease_factor=ease,
            consecutive_good=consecutive,
            quality_sum=state.quality_sum + quality,
            last_quality=quality,
            last_reviewed_at=now,
            next_due_at=add_days(now, interval),
            total_reviews=state.total_reviews + 1,
            perfect_reviews=state.perfect_reviews + (1 if quality == _QUALIDADE_MAX else 0),
        )

    @staticmethod
    def due_cards(
        states: Iterable[FlashcardReviewState],
        now: Optional[datetime.datetime] = None,
    ) -> Iterator[FlashcardReviewState]:
        """Cartoes vencidos, do mais atrasado para o mais recente."""
        now = resolve_now(now)
        due = [s for s in states or [] if s.next_due_at is not None and s.next_due_at <= now]
        due.sort(key=lambda s: (s.next_due_at, s.card_id))
        for state in due:
            yield state

    @staticmethod
    def stats(states: Iterable[FlashcardReviewState]) -> FlashcardStats:
        by_status: Dict[str, int] = {status.value: 0 for status in CardStatus}
        total_cards = 0
        total_reviews = 0
        perfect = 0
        quality_sum = 0
        interval_sum = 0
        for state in states or []:
            total_cards += 1
            by_status[CardStatus(state.status).value] += 1
            total_reviews += int(state.total_reviews)
            perfect += int(state.perfect_reviews)
            quality_sum += int(state.quality_sum)
            interval_sum += int(state.interval_days)
        return FlashcardStats(
            total_cards=total_cards,
            by_status=by_status,
            total_reviews=total_reviews,
            perfect_reviews=perfect,
            average_quality=round(quality_sum / total_reviews, 2) if total_reviews else 0.0,
            average_interval=round(interval_sum / total_cards, 2) if total_cards else 0.0,
        )
