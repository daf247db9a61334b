# -*- coding: utf-8 -*-
"""Falhas tipadas do motor de simulados e do agendador de revisao."""

from __future__ import annotations

from typing import Optional


class ExamCoreError(Exception):
    """Base de todas as falhas reportadas pelo core."""

    code = "exam_core_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class QuotaExceeded(ExamCoreError):
    """Limite semanal de tentativas esgotado; so libera quando a janela desliza."""

    code = "quota_exceeded"

    def __init__(self, message: str = "", quota=None, retry_at=None):
        super().__init__(message or "Limite semanal de tentativas atingido.")
        self.quota = quota
        self.retry_at = retry_at


class InvalidState(ExamCoreError):
    code = "invalid_state"

    def __init__(self, message: str = "", state: Optional[str] = None):
        super().__init__(message or "Operacao invalida para o estado atual da sessao.")
        self.state = state


class UnknownQuestion(ExamCoreError):
    code = "unknown_question"

    def __init__(self, question_id=None, message: str = ""):
        super().__init__(message or f"Questao {question_id} nao pertence ao simulado.")
        self.question_id = question_id


class InvalidSimulado(ExamCoreError):
    code = "invalid_simulado"


class InvalidQuality(ExamCoreError):
    code = "invalid_quality"

    def __init__(self, value=None, message: str = ""):
        super().__init__(message or f"Qualidade de revisao invalida: {value!r}.")
        self.value = value


class NotFound(ExamCoreError):
    code = "not_found"


class SessionAlreadyActive(ExamCoreError):
    code = "session_already_active"

    def __init__(self, message: str = "", attempt_id: Optional[int] = None):
        super().__init__(message or "Ja existe um simulado em andamento para este usuario.")
        self.attempt_id = attempt_id
