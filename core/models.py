# -*- coding: utf-8 -*-
"""Registros de dominio do core: simulados, sessoes de prova, cotas e flashcards."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from config import EXAM, SRS


class ExamState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    EXPIRED = "expired"

    @property
    def terminal(self) -> bool:
        return self in (ExamState.SUBMITTED, ExamState.EXPIRED)


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    GRADUATED = "graduated"


def freeze_answers(answers: Optional[Mapping]) -> Mapping:
    """Copia as respostas para um mapeamento somente leitura."""
    return MappingProxyType(dict(answers or {}))


@dataclass(frozen=True)
class Alternativa:
    id: str
    texto: str
    correta: Optional[bool] = None

    def public_dict(self) -> Dict:
        return {"id": self.id, "texto": self.texto}


@dataclass(frozen=True)
class Questao:
    id: int
    simulado_id: int
    enunciado: str
    alternativas: Tuple[Alternativa, ...] = ()
    resposta_correta: Optional[str] = None
    explicacao: Optional[str] = None

    def correct_alternative_ids(self) -> List[str]:
        """Ids marcados como corretos pela flag ou pela chave `resposta_correta`."""
        ids = [alt.id for alt in self.alternativas if alt.correta]
        key = self.resposta_correta
        if key is not None and key not in ids:
            ids.append(key)
        return ids

    def correct_alternative_id(self) -> Optional[str]:
        ids = self.correct_alternative_ids()
        if len(ids) != 1:
            return None
        if not any(alt.id == ids[0] for alt in self.alternativas):
            return None
        return ids[0]

    def public_dict(self) -> Dict:
        # nunca expor a correcao antes da entrega
        return {
            "id": self.id,
            "simulado_id": self.simulado_id,
            "enunciado": self.enunciado,
            "alternativas": [alt.public_dict() for alt in self.alternativas],
        }


@dataclass(frozen=True)
class Simulado:
    id: int
    titulo: str
    duracao_minutos: int
    questoes: Tuple[Questao, ...] = ()
    nivel_dificuldade: str = "Médio"
    ativo: bool = True
    nota_minima: int = EXAM["nota_minima_padrao"]
    descricao: str = ""

    @property
    def total_questoes(self) -> int:
        return len(self.questoes)

    def question_ids(self) -> FrozenSet:
        return frozenset(q.id for q in self.questoes)

    def public_dict(self) -> Dict:
        return {
            "id": self.id,
            "titulo": self.titulo,
            "descricao": self.descricao,
            "duracao_minutos": self.duracao_minutos,
            "nivel_dificuldade": self.nivel_dificuldade,
            "nota_minima": self.nota_minima,
            "quantidade_questoes": self.total_questoes,
            "questoes": [q.public_dict() for q in self.questoes],
        }


@dataclass(frozen=True)
class ExamSession:
    simulado_id: int
    started_at: Optional[datetime.datetime]
    duracao_minutos: int
    question_ids: FrozenSet = frozenset()
    answers: Mapping = field(default_factory=dict)
    state: ExamState = ExamState.NOT_STARTED
    user_id: Optional[int] = None
    graded: bool = False

    def __post_init__(self):
        object.__setattr__(self, "answers", freeze_answers(self.answers))

    @property
    def duration_seconds(self) -> int:
        return int(self.duracao_minutos) * 60


@dataclass(frozen=True)
class SimuladoResult:
    simulado_id: int
    answers: Mapping
    correct_answers: int
    total_questions: int
    score: int
    time_spent: int
    passed_exam: bool
    completed_at: datetime.datetime
    passing_threshold: int
    user_id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "answers", freeze_answers(self.answers))


@dataclass(frozen=True)
class AttemptQuota:
    user_id: int
    attempts_used: int
    attempts_allowed: int
    window_start: Optional[datetime.datetime] = None
    window_days: int = EXAM["janela_tentativas_dias"]
    next_slot_at: Optional[datetime.datetime] = None

    @property
    def exhausted(self) -> bool:
        return self.attempts_used >= self.attempts_allowed


@dataclass(frozen=True)
class FlashcardReviewState:
    card_id: int
    user_id: int
    status: CardStatus = CardStatus.NEW
    interval_days: int = 0
    ease_factor: float = SRS["fator_inicial"]
    quality_sum: int = 0
    consecutive_good: int = 0
    last_quality: Optional[int] = None
    last_reviewed_at: Optional[datetime.datetime] = None
    next_due_at: Optional[datetime.datetime] = None
    total_reviews: int = 0
    perfect_reviews: int = 0

    @classmethod
    def new(cls, user_id: int, card_id: int, now: datetime.datetime) -> "FlashcardReviewState":
        return cls(card_id=card_id, user_id=user_id, next_due_at=now)

    @property
    def average_quality(self) -> float:
        if self.total_reviews <= 0:
            return 0.0
        return self.quality_sum / self.total_reviews


@dataclass(frozen=True)
class FlashcardStats:
    total_cards: int
    by_status: Dict[str, int]
    total_reviews: int
    perfect_reviews: int
    average_quality: float
    average_interval: float
