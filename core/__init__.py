# -*- coding: utf-8 -*-
"""
Core Package - Cert Simulados

Motor de sessao de simulado e agendador de revisao espacada.
"""

from .errors import (
    ExamCoreError,
    InvalidQuality,
    InvalidSimulado,
    InvalidState,
    NotFound,
    QuotaExceeded,
    SessionAlreadyActive,
    UnknownQuestion,
)
from .models import (
    Alternativa,
    AttemptQuota,
    CardStatus,
    ExamSession,
    ExamState,
    FlashcardReviewState,
    FlashcardStats,
    Questao,
    Simulado,
    SimuladoResult,
)
from .services import (
    AttemptQuotaService,
    ExamCountdown,
    ExamSessionEngine,
    FlashcardReviewScheduler,
    MockExamReportService,
    validate_quality,
)

__all__ = [
    'Alternativa',
    'AttemptQuota',
    'AttemptQuotaService',
    'CardStatus',
    'ExamCoreError',
    'ExamCountdown',
    'ExamSession',
    'ExamSessionEngine',
    'ExamState',
    'FlashcardReviewScheduler',
    'FlashcardReviewState',
    'FlashcardStats',
    'InvalidQuality',
    'InvalidSimulado',
    'InvalidState',
    'MockExamReportService',
    'NotFound',
    'Questao',
    'QuotaExceeded',
    'SessionAlreadyActive',
    'Simulado',
    'SimuladoResult',
    'UnknownQuestion',
    'validate_quality',
]

__version__ = '1.0.0'
