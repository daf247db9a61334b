# -*- coding: utf-8 -*-
"""Services de dominio: simulados, cota semanal e revisao espacada."""

from .attempt_quota_service import AttemptQuotaService
from .exam_countdown import ExamCountdown
from .exam_session_service import ExamSessionEngine
from .flashcard_review_service import FlashcardReviewScheduler, validate_quality
from .mock_exam_report_service import MockExamReportService

__all__ = [
    "AttemptQuotaService",
    "ExamCountdown",
    "ExamSessionEngine",
    "FlashcardReviewScheduler",
    "MockExamReportService",
    "validate_quality",
]
