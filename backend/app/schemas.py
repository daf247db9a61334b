from datetime import datetime
from typing import Dict, List
from pydantic import BaseModel


class AlternativaOut(BaseModel):
    id: str
    texto: str


class QuestaoOut(BaseModel):
    id: int
    simulado_id: int
    enunciado: str
    alternativas: List[AlternativaOut]


class SimuladoOut(BaseModel):
    id: int
    titulo: str
    descricao: str = ""
    duracao_minutos: int
    nivel_dificuldade: str
    nota_minima: int
    quantidade_questoes: int
    questoes: List[QuestaoOut] = []


class QuotaOut(BaseModel):
    user_id: int
    attempts_used: int
    attempts_allowed: int
    remaining_attempts: int
    window_days: int
    next_slot_at: datetime | None = None
    hint: str = ""


class ExamStartIn(BaseModel):
    user_id: int
    simulado_id: int


class ExamUserIn(BaseModel):
    user_id: int


class AnswerIn(BaseModel):
    user_id: int
    question_id: int
    alternative_id: str


class ExamSessionOut(BaseModel):
    attempt_id: int
    user_id: int
    simulado_id: int
    state: str
    started_at: datetime
    duracao_minutos: int
    remaining_seconds: int
    answers: Dict[int, str] = {}
    graded: bool = False


class ResultOut(BaseModel):
    attempt_id: int
    simulado_id: int
    user_id: int
    answers: Dict[int, str]
    correct_answers: int
    total_questions: int
    score: int
    time_spent: int
    passed_exam: bool
    passing_threshold: int
    completed_at: datetime


class ResultsHistoryOut(BaseModel):
    user_id: int
    results: List[ResultOut]
    summary: Dict


class QuestaoBreakdownOut(BaseModel):
    questao_id: int
    enunciado: str
    resposta: str | None = None
    correta: str | None = None
    acertou: bool
    respondida: bool
    explicacao: str = ""


class ResultBreakdownOut(BaseModel):
    result: ResultOut
    questoes: List[QuestaoBreakdownOut]


class ReviewIn(BaseModel):
    user_id: int
    quality: int


class FlashcardStateOut(BaseModel):
    card_id: int
    user_id: int
    status: str
    interval_days: int
    ease_factor: float
    last_quality: int | None = None
    last_reviewed_at: datetime | None = None
    next_due_at: datetime | None = None
    total_reviews: int
    perfect_reviews: int
    frente: str | None = None
    verso: str | None = None


class FlashcardStatsOut(BaseModel):
    user_id: int
    total_cards: int
    by_status: Dict[str, int]
    total_reviews: int
    perfect_reviews: int
    average_quality: float
    average_interval: float
