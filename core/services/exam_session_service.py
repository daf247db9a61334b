# -*- coding: utf-8 -*-
"""
Regra de dominio do modo prova/simulado.

Maquina de estados de uma tentativa:

    NOT_STARTED -> IN_PROGRESS -> SUBMITTED
                   IN_PROGRESS -> EXPIRED

Todas as operacoes sao funcoes puras sobre `ExamSession`: recebem a sessao e
devolvem uma nova. Persistencia, relogio e cota atomica ficam com o chamador.
"""

from __future__ import annotations

import datetime
from dataclasses import replace
from typing import Optional, Tuple

from core.errors import InvalidSimulado, InvalidState, QuotaExceeded, UnknownQuestion
from core.models import AttemptQuota, ExamSession, ExamState, Simulado, SimuladoResult
from core.services.attempt_quota_service import AttemptQuotaService
from core.time_utils import ceil_seconds, elapsed_seconds, resolve_now, round_half_up


class ExamSessionEngine:
    @staticmethod
    def validate_simulado(simulado: Simulado) -> None:
        if not simulado.questoes:
            raise InvalidSimulado(f"Simulado {simulado.id} nao possui questoes.")
        if not simulado.ativo:
            raise InvalidSimulado(f"Simulado {simulado.id} esta inativo.")
        if int(simulado.duracao_minutos or 0) <= 0:
            raise InvalidSimulado(f"Simulado {simulado.id} sem duracao valida.")
        seen = set()
        for questao in simulado.questoes:
            if questao.id in seen:
                raise InvalidSimulado(f"Questao {questao.id} repetida no simulado {simulado.id}.")
            seen.add(questao.id)
            if questao.correct_alternative_id() is None:
                raise InvalidSimulado(
                    f"Questao {questao.id} precisa de exatamente uma alternativa correta."
                )

    @classmethod
    def start(
        cls,
        simulado: Simulado,
        quota: AttemptQuota,
        user_id: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> Tuple[ExamSession, AttemptQuota]:
        """Inicia a tentativa consumindo uma vaga da cota semanal."""
        cls.validate_simulado(simulado)
        if not AttemptQuotaService.can_start(quota):
            raise QuotaExceeded(
                AttemptQuotaService.plan_hint(quota),
                quota=quota,
                retry_at=quota.next_slot_at,
            )
        session = ExamSession(
            simulado_id=simulado.id,
            user_id=quota.user_id if user_id is None else user_id,
            started_at=resolve_now(now),
            duracao_minutos=int(simulado.duracao_minutos),
            question_ids=simulado.question_ids(),
            answers={},
            state=ExamState.IN_PROGRESS,
        )
        return session, AttemptQuotaService.consume(quota)

    @staticmethod
    def record_answer(session: ExamSession, question_id, alternative_id) -> ExamSession:
        if session.state != ExamState.IN_PROGRESS:
            raise InvalidState(
                f"Nao e possivel responder uma sessao em estado {session.state.value}.",
                state=session.state.value,
            )
        if question_id not in session.question_ids:
            raise UnknownQuestion(question_id)
        answers = dict(session.answers)
        answers[question_id] = alternative_id
        return replace(session, answers=answers)

    @staticmethod
    def remaining_seconds(session: ExamSession, now: Optional[datetime.datetime] = None) -> int:
        if session.started_at is None:
            return session.duration_seconds
        elapsed = max(0.0, elapsed_seconds(session.started_at, resolve_now(now)))
        return int(max(0, ceil_seconds(session.duration_seconds - elapsed)))

    @classmethod
    def is_time_up(cls, session: ExamSession, now: Optional[datetime.datetime] = None) -> bool:
        return cls.remaining_seconds(session, now) == 0

    @classmethod
    def expire(cls, session: ExamSession, now: Optional[datetime.datetime] = None) -> ExamSession:
        """Encerra por tempo. Chamadas repetidas ou fora de hora nao tem efeito."""
        if session.state != ExamState.IN_PROGRESS:
            return session
        if not cls.is_time_up(session, now):
            return session
        return replace(session, state=ExamState.EXPIRED)

    @staticmethod
    def time_spent(session: ExamSession, now: datetime.datetime) -> int:
        if session.started_at is None:
            return 0
        elapsed = max(0.0, elapsed_seconds(session.started_at, now))
        return int(min(session.duration_seconds, int(elapsed)))

    @classmethod
    def submit(
        cls,
        session: ExamSession,
        simulado: Simulado,
        now: Optional[datetime.datetime] = None,
        passing_threshold: Optional[int] = None,
    ) -> Tuple[ExamSession, SimuladoResult]:
        """
        Corrige a tentativa e congela o resultado.

        Sessao expirada aceita uma unica entrega de tolerancia com as respostas
        ja registradas; ela continua EXPIRED, apenas marcada como corrigida.
        """
        if session.graded or session.state not in (ExamState.IN_PROGRESS, ExamState.EXPIRED):
            raise InvalidState(
                f"Sessao em estado {session.state.value} nao pode ser entregue.",
                state=session.state.value,
            )
        if simulado.id != session.simulado_id:
            raise InvalidSimulado(
                f"Simulado {simulado.id} nao corresponde a sessao do simulado {session.simulado_id}."
            )
        if not simulado.questoes:
            raise InvalidSimulado(f"Simulado {simulado.id} nao possui questoes.")
        known_ids = simulado.question_ids()
        for question_id in session.answers:
            if question_id not in known_ids:
                raise UnknownQuestion(question_id)

        now = resolve_now(now)
        total = len(simulado.questoes)
        correct = 0
        for questao in simulado.questoes:
            chosen = session.answers.get(questao.id)
            if chosen is not None and chosen == questao.correct_alternative_id():
                correct += 1

        threshold = int(simulado.nota_minima if passing_threshold is None else passing_threshold)
        score = round_half_up(100 * correct / total)
        result = SimuladoResult(
            simulado_id=simulado.id,
            user_id=session.user_id,
            answers=dict(session.answers),
            correct_answers=correct,
            total_questions=total,
            score=score,
            time_spent=cls.time_spent(session, now),
            passed_exam=score >= threshold,
            completed_at=now,
            passing_threshold=threshold,
        )
        next_state = ExamState.SUBMITTED if session.state == ExamState.IN_PROGRESS else session.state
        return replace(session, state=next_state, graded=True), result
