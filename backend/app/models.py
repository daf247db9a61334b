from datetime import datetime
from sqlalchemy import String, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from core.time_utils import utcnow
from .database import Base


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    plan_code: Mapped[str] = mapped_column(String(30), default="free")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Simulado(Base):
    __tablename__ = "simulados"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    titulo: Mapped[str] = mapped_column(String(255), nullable=False)
    descricao: Mapped[str] = mapped_column(Text, default="")
    duracao_minutos: Mapped[int] = mapped_column(Integer, nullable=False)
    nivel_dificuldade: Mapped[str] = mapped_column(String(50), default="Médio")
    nota_minima: Mapped[int] = mapped_column(Integer, default=70)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)
    data_criacao: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Questao(Base):
    __tablename__ = "questoes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    simulado_id: Mapped[int] = mapped_column(ForeignKey("simulados.id"), nullable=False, index=True)
    ordem: Mapped[int] = mapped_column(Integer, default=0)
    enunciado: Mapped[str] = mapped_column(Text, nullable=False)
    alternativas_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    resposta_correta: Mapped[str | None] = mapped_column(String(64), nullable=True)
    explicacao: Mapped[str | None] = mapped_column(Text, nullable=True)


class ExamAttempt(Base):
    """Registro de sessoes: cada linha e uma tentativa e tambem conta para a cota."""

    __tablename__ = "exam_attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    simulado_id: Mapped[int] = mapped_column(ForeignKey("simulados.id"), nullable=False, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duracao_minutos: Mapped[int] = mapped_column(Integer, nullable=False)
    question_ids_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    answers_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    state: Mapped[str] = mapped_column(String(20), default="in_progress")
    graded: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (
        Index("ix_exam_attempts_user_started", "user_id", "started_at"),
        Index("ix_exam_attempts_user_simulado_state", "user_id", "simulado_id", "state"),
    )


class ExamResult(Base):
    __tablename__ = "resultados"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    attempt_id: Mapped[int] = mapped_column(ForeignKey("exam_attempts.id"), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    simulado_id: Mapped[int] = mapped_column(ForeignKey("simulados.id"), nullable=False, index=True)
    answers_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    score: Mapped[int] = mapped_column(Integer, default=0)
    time_spent: Mapped[int] = mapped_column(Integer, default=0)
    passed_exam: Mapped[bool] = mapped_column(Boolean, default=False)
    passing_threshold: Mapped[int] = mapped_column(Integer, default=70)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Flashcard(Base):
    __tablename__ = "flashcards"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    frente: Mapped[str] = mapped_column(Text, nullable=False)
    verso: Mapped[str] = mapped_column(Text, nullable=False)
    tema: Mapped[str] = mapped_column(String(120), default="Geral")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class FlashcardReview(Base):
    __tablename__ = "flashcard_reviews"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("flashcards.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="new")
    interval_days: Mapped[int] = mapped_column(Integer, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    quality_sum: Mapped[int] = mapped_column(Integer, default=0)
    consecutive_good: Mapped[int] = mapped_column(Integer, default=0)
    last_quality: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_due_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    perfect_reviews: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", name="uq_flashcard_review_user_card"),
        Index("ix_flashcard_reviews_user_due", "user_id", "next_due_at"),
    )
