"""Colaboradores de persistencia do core: cota, simulados, sessoes, resultados e flashcards.

Cada funcao recebe a `Session` do SQLAlchemy e chama o core puro entre a
leitura e a escrita. A dupla verificar-cota/registrar-tentativa de
`start_exam` roda numa unica transacao com a linha do usuario bloqueada.
"""

from datetime import datetime
import json
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from config import DEFAULT_PLAN, DIFICULDADE_PADRAO, EXAM, NIVEIS_DIFICULDADE
from core.error_monitor import format_fields, log_event
from core.errors import InvalidSimulado, InvalidState, NotFound, SessionAlreadyActive
from core.models import (
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
from core.services import (
    AttemptQuotaService,
    ExamSessionEngine,
    FlashcardReviewScheduler,
    MockExamReportService,
    validate_quality,
)
from core.time_utils import resolve_now, utcnow, window_start
from . import models


def _loads(raw, default):
    try:
        value = json.loads(raw or "")
    except (TypeError, ValueError):
        return default
    return value if value is not None else default


def _answers_to_json(answers: Dict) -> str:
    return json.dumps({str(k): v for k, v in (answers or {}).items()}, ensure_ascii=False)


def _answers_from_json(raw: str) -> Dict[int, str]:
    return {int(k): str(v) for k, v in _loads(raw, {}).items()}


# ──────────────────────────────────────────────────────────────
# Usuarios e cota
# ──────────────────────────────────────────────────────────────

def ensure_user(db: Session, user_id: int, lock: bool = False) -> models.User:
    query = db.query(models.User).filter(models.User.id == int(user_id))
    if lock:
        query = query.with_for_update()
    row = query.first()
    if row:
        return row
    row = models.User(id=int(user_id), name=f"Usuario {int(user_id)}", plan_code=DEFAULT_PLAN)
    db.add(row)
    db.flush()
    return row


def _attempt_times(db: Session, user_id: int, since: datetime) -> List[datetime]:
    rows = (
        db.query(models.ExamAttempt.started_at)
        .filter(models.ExamAttempt.user_id == int(user_id), models.ExamAttempt.started_at > since)
        .all()
    )
    return [r[0] for r in rows]


def get_quota(db: Session, user_id: int, now: Optional[datetime] = None) -> AttemptQuota:
    now = resolve_now(now)
    user = ensure_user(db, user_id)
    days = int(EXAM["janela_tentativas_dias"])
    return AttemptQuotaService.build_quota(
        user.id,
        _attempt_times(db, user.id, window_start(now, days)),
        AttemptQuotaService.weekly_limit_for_plan(user.plan_code),
        now=now,
        window_days=days,
    )


def increment_attempts(db: Session, user_id: int, simulado_id: int, session: ExamSession) -> models.ExamAttempt:
    """Registra a tentativa; a linha conta para a cota a partir do flush."""
    row = models.ExamAttempt(
        user_id=int(user_id),
        simulado_id=int(simulado_id),
        started_at=session.started_at,
        duracao_minutos=int(session.duracao_minutos),
        question_ids_json=json.dumps(sorted(session.question_ids)),
        answers_json=_answers_to_json(session.answers),
        state=session.state.value,
        graded=bool(session.graded),
        updated_at=utcnow(),
    )
    db.add(row)
    db.flush()
    return row


# ──────────────────────────────────────────────────────────────
# Simulados
# ──────────────────────────────────────────────────────────────

def _questao_to_core(row: models.Questao) -> Questao:
    alternativas = tuple(
        Alternativa(
            id=str(item.get("id")),
            texto=str(item.get("texto") or ""),
            correta=item.get("correta"),
        )
        for item in _loads(row.alternativas_json, [])
        if isinstance(item, dict)
    )
    return Questao(
        id=int(row.id),
        simulado_id=int(row.simulado_id),
        enunciado=str(row.enunciado or ""),
        alternativas=alternativas,
        resposta_correta=row.resposta_correta,
        explicacao=row.explicacao,
    )


def load_simulado(db: Session, simulado_id: int) -> Simulado:
    row = db.query(models.Simulado).filter(models.Simulado.id == int(simulado_id)).first()
    if not row:
        raise NotFound(f"Simulado {simulado_id} nao encontrado.")
    questoes = (
        db.query(models.Questao)
        .filter(models.Questao.simulado_id == row.id)
        .order_by(models.Questao.ordem.asc(), models.Questao.id.asc())
        .all()
    )
    return Simulado(
        id=int(row.id),
        titulo=str(row.titulo or ""),
        descricao=str(row.descricao or ""),
        duracao_minutos=int(row.duracao_minutos or 0),
        nivel_dificuldade=str(row.nivel_dificuldade or DIFICULDADE_PADRAO),
        ativo=bool(row.ativo),
        nota_minima=int(EXAM["nota_minima_padrao"] if row.nota_minima is None else row.nota_minima),
        questoes=tuple(_questao_to_core(q) for q in questoes),
    )


def list_active_simulados(db: Session) -> List[Simulado]:
    ids = [r[0] for r in db.query(models.Simulado.id).filter(models.Simulado.ativo.is_(True)).order_by(models.Simulado.id).all()]
    return [load_simulado(db, sid) for sid in ids]


def import_simulado(db: Session, payload: Dict) -> int:
    """Cria um simulado completo a partir de um dicionario (formato do JSON de suporte)."""
    titulo = str(payload.get("titulo") or "").strip()
    if not titulo:
        raise InvalidSimulado("Simulado sem titulo.")
    nivel = str(payload.get("nivel_dificuldade") or DIFICULDADE_PADRAO).strip()
    if nivel not in NIVEIS_DIFICULDADE:
        raise InvalidSimulado(f"Nivel de dificuldade invalido: {nivel}.")

    questoes_in = [q for q in payload.get("questoes") or [] if isinstance(q, dict)]
    draft = Simulado(
        id=0,
        titulo=titulo,
        duracao_minutos=int(payload.get("duracao_minutos") or EXAM["duracao_padrao_minutos"]),
        nivel_dificuldade=nivel,
        ativo=bool(payload.get("ativo", True)),
        nota_minima=int(payload.get("nota_minima", EXAM["nota_minima_padrao"])),
        questoes=tuple(
            Questao(
                id=idx,
                simulado_id=0,
                enunciado=str(q.get("enunciado") or ""),
                alternativas=tuple(
                    Alternativa(id=str(a.get("id")), texto=str(a.get("texto") or ""), correta=a.get("correta"))
                    for a in q.get("alternativas") or []
                    if isinstance(a, dict)
                ),
                resposta_correta=q.get("resposta_correta"),
                explicacao=q.get("explicacao"),
            )
            for idx, q in enumerate(questoes_in)
        ),
    )
    ExamSessionEngine.validate_simulado(draft)

    row = models.Simulado(
        titulo=draft.titulo,
        descricao=str(payload.get("descricao") or ""),
        duracao_minutos=draft.duracao_minutos,
        nivel_dificuldade=draft.nivel_dificuldade,
        nota_minima=draft.nota_minima,
        ativo=draft.ativo,
    )
    db.add(row)
    db.flush()
    for ordem, questao in enumerate(draft.questoes):
        db.add(
            models.Questao(
                simulado_id=row.id,
                ordem=ordem,
                enunciado=questao.enunciado,
                alternativas_json=json.dumps(
                    [{"id": a.id, "texto": a.texto, "correta": a.correta} for a in questao.alternativas],
                    ensure_ascii=False,
                ),
                resposta_correta=questao.resposta_correta,
                explicacao=questao.explicacao,
            )
        )
    db.commit()
    log_event("simulado_import", format_fields(simulado_id=row.id, questoes=len(draft.questoes)))
    return int(row.id)


# ──────────────────────────────────────────────────────────────
# Sessoes de prova
# ──────────────────────────────────────────────────────────────

def _session_from_row(row: models.ExamAttempt) -> ExamSession:
    return ExamSession(
        simulado_id=int(row.simulado_id),
        user_id=int(row.user_id),
        started_at=row.started_at,
        duracao_minutos=int(row.duracao_minutos),
        question_ids=frozenset(int(x) for x in _loads(row.question_ids_json, [])),
        answers=_answers_from_json(row.answers_json),
        state=ExamState(row.state),
        graded=bool(row.graded),
    )


def _apply_session(row: models.ExamAttempt, session: ExamSession) -> None:
    row.answers_json = _answers_to_json(session.answers)
    row.state = session.state.value
    row.graded = bool(session.graded)
    row.updated_at = utcnow()


def _get_attempt(db: Session, attempt_id: int, user_id: int, lock: bool = False) -> models.ExamAttempt:
    query = db.query(models.ExamAttempt).filter(models.ExamAttempt.id == int(attempt_id))
    if lock:
        query = query.with_for_update()
    row = query.first()
    if not row or int(row.user_id) != int(user_id):
        raise NotFound(f"Tentativa {attempt_id} nao encontrada.")
    return row


def _sync_expiry(db: Session, row: models.ExamAttempt, now: datetime) -> ExamSession:
    session = _session_from_row(row)
    expired = ExamSessionEngine.expire(session, now)
    if expired.state != session.state:
        _apply_session(row, expired)
        db.flush()
        log_event("exam_expire", format_fields(attempt_id=row.id, user_id=row.user_id))
    return expired


def start_exam(
    db: Session,
    user_id: int,
    simulado_id: int,
    now: Optional[datetime] = None,
) -> Tuple[int, ExamSession, AttemptQuota]:
    now = resolve_now(now)
    try:
        user = ensure_user(db, user_id, lock=True)
        active = (
            db.query(models.ExamAttempt)
            .filter(
                models.ExamAttempt.user_id == user.id,
                models.ExamAttempt.simulado_id == int(simulado_id),
                models.ExamAttempt.state == ExamState.IN_PROGRESS.value,
            )
            .all()
        )
        for row in active:
            if _sync_expiry(db, row, now).state == ExamState.IN_PROGRESS:
                raise SessionAlreadyActive(attempt_id=int(row.id))

        simulado = load_simulado(db, simulado_id)
        quota = get_quota(db, user.id, now=now)
        session, quota_after = ExamSessionEngine.start(simulado, quota, user_id=user.id, now=now)
        row = increment_attempts(db, user.id, simulado.id, session)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log_event(
        "exam_start",
        format_fields(
            attempt_id=row.id,
            user_id=user.id,
            simulado_id=simulado.id,
            attempts=f"{quota_after.attempts_used}/{quota_after.attempts_allowed}",
        ),
    )
    return int(row.id), session, quota_after


def load_exam(db: Session, attempt_id: int, user_id: int, now: Optional[datetime] = None) -> ExamSession:
    row = _get_attempt(db, attempt_id, user_id)
    session = _sync_expiry(db, row, resolve_now(now))
    db.commit()
    return session


def record_answer(
    db: Session,
    attempt_id: int,
    user_id: int,
    question_id: int,
    alternative_id: str,
    now: Optional[datetime] = None,
) -> ExamSession:
    """Leitura, expiracao e escrita na mesma transacao, com a tentativa bloqueada."""
    try:
        row = _get_attempt(db, attempt_id, user_id, lock=True)
        session = _sync_expiry(db, row, resolve_now(now))
        if session.state != ExamState.IN_PROGRESS:
            # persiste a expiracao antes de recusar a resposta
            db.commit()
            raise InvalidState(
                f"Nao e possivel responder uma sessao em estado {session.state.value}.",
                state=session.state.value,
            )
        updated = ExamSessionEngine.record_answer(session, int(question_id), str(alternative_id))
        _apply_session(row, updated)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return updated


def expire_exam(db: Session, attempt_id: int, user_id: int, now: Optional[datetime] = None) -> ExamSession:
    row = _get_attempt(db, attempt_id, user_id, lock=True)
    session = _sync_expiry(db, row, resolve_now(now))
    db.commit()
    return session


def save_result(db: Session, attempt_id: int, result: SimuladoResult) -> models.ExamResult:
    row = models.ExamResult(
        attempt_id=int(attempt_id),
        user_id=int(result.user_id),
        simulado_id=int(result.simulado_id),
        answers_json=_answers_to_json(result.answers),
        correct_answers=int(result.correct_answers),
        total_questions=int(result.total_questions),
        score=int(result.score),
        time_spent=int(result.time_spent),
        passed_exam=bool(result.passed_exam),
        passing_threshold=int(result.passing_threshold),
        completed_at=result.completed_at,
    )
    db.add(row)
    db.flush()
    return row


def submit_exam(
    db: Session,
    attempt_id: int,
    user_id: int,
    now: Optional[datetime] = None,
) -> SimuladoResult:
    now = resolve_now(now)
    try:
        row = _get_attempt(db, attempt_id, user_id, lock=True)
        session = _sync_expiry(db, row, now)
        simulado = load_simulado(db, row.simulado_id)
        graded, result = ExamSessionEngine.submit(session, simulado, now=now)
        _apply_session(row, graded)
        save_result(db, row.id, result)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log_event(
        "exam_submit",
        format_fields(
            attempt_id=row.id,
            user_id=row.user_id,
            score=result.score,
            passed=result.passed_exam,
            grace=graded.state == ExamState.EXPIRED,
        ),
    )
    return result


def result_from_row(row: models.ExamResult) -> SimuladoResult:
    return SimuladoResult(
        simulado_id=int(row.simulado_id),
        user_id=int(row.user_id),
        answers=_answers_from_json(row.answers_json),
        correct_answers=int(row.correct_answers),
        total_questions=int(row.total_questions),
        score=int(row.score),
        time_spent=int(row.time_spent),
        passed_exam=bool(row.passed_exam),
        completed_at=row.completed_at,
        passing_threshold=int(row.passing_threshold),
    )


def list_results(db: Session, user_id: int) -> List[Tuple[int, SimuladoResult]]:
    rows = (
        db.query(models.ExamResult)
        .filter(models.ExamResult.user_id == int(user_id))
        .order_by(models.ExamResult.completed_at.desc())
        .all()
    )
    return [(int(r.attempt_id), result_from_row(r)) for r in rows]


def result_breakdown(db: Session, attempt_id: int, user_id: int) -> Tuple[SimuladoResult, List[Dict]]:
    """Gabarito comentado de uma tentativa ja corrigida."""
    attempt = _get_attempt(db, attempt_id, user_id)
    row = db.query(models.ExamResult).filter(models.ExamResult.attempt_id == attempt.id).first()
    if not row:
        raise NotFound(f"Tentativa {attempt_id} ainda nao foi corrigida.")
    result = result_from_row(row)
    simulado = load_simulado(db, result.simulado_id)
    return result, MockExamReportService.question_breakdown(simulado, result)


def results_summary(db: Session, user_id: int) -> Dict:
    return MockExamReportService.summarize_results(r for _aid, r in list_results(db, user_id))


# ──────────────────────────────────────────────────────────────
# Flashcards
# ──────────────────────────────────────────────────────────────

def _card_state_from_row(row: models.FlashcardReview) -> FlashcardReviewState:
    return FlashcardReviewState(
        card_id=int(row.card_id),
        user_id=int(row.user_id),
        status=CardStatus(row.status),
        interval_days=int(row.interval_days or 0),
        ease_factor=float(row.ease_factor),
        quality_sum=int(row.quality_sum or 0),
        consecutive_good=int(row.consecutive_good or 0),
        last_quality=row.last_quality,
        last_reviewed_at=row.last_reviewed_at,
        next_due_at=row.next_due_at,
        total_reviews=int(row.total_reviews or 0),
        perfect_reviews=int(row.perfect_reviews or 0),
    )


def _apply_card_state(row: models.FlashcardReview, state: FlashcardReviewState) -> None:
    row.status = state.status.value
    row.interval_days = state.interval_days
    row.ease_factor = state.ease_factor
    row.quality_sum = state.quality_sum
    row.consecutive_good = state.consecutive_good
    row.last_quality = state.last_quality
    row.last_reviewed_at = state.last_reviewed_at
    row.next_due_at = state.next_due_at
    row.total_reviews = state.total_reviews
    row.perfect_reviews = state.perfect_reviews
    row.updated_at = utcnow()


def get_flashcard(db: Session, card_id: int) -> models.Flashcard:
    card = db.query(models.Flashcard).filter(models.Flashcard.id == int(card_id)).first()
    if not card:
        raise NotFound(f"Flashcard {card_id} nao encontrado.")
    return card


def load_card_state(db: Session, user_id: int, card_id: int, now: Optional[datetime] = None) -> FlashcardReviewState:
    card = get_flashcard(db, card_id)
    row = (
        db.query(models.FlashcardReview)
        .filter(models.FlashcardReview.user_id == int(user_id), models.FlashcardReview.card_id == card.id)
        .first()
    )
    if row:
        return _card_state_from_row(row)
    return FlashcardReviewState.new(int(user_id), card.id, card.created_at or resolve_now(now))


def review_flashcard(
    db: Session,
    user_id: int,
    card_id: int,
    quality,
    now: Optional[datetime] = None,
) -> FlashcardReviewState:
    quality = validate_quality(quality)
    now = resolve_now(now)
    try:
        ensure_user(db, user_id)
        card = get_flashcard(db, card_id)
        row = (
            db.query(models.FlashcardReview)
            .filter(models.FlashcardReview.user_id == int(user_id), models.FlashcardReview.card_id == card.id)
            .with_for_update()
            .first()
        )
        if row:
            state = _card_state_from_row(row)
        else:
            state = FlashcardReviewState.new(int(user_id), card.id, now)
            row = models.FlashcardReview(user_id=int(user_id), card_id=card.id)
            db.add(row)
        updated = FlashcardReviewScheduler.review(state, quality, now)
        _apply_card_state(row, updated)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log_event(
        "flashcard_review",
        format_fields(
            user_id=user_id,
            card_id=card_id,
            quality=quality,
            status=updated.status.value,
            interval=updated.interval_days,
        ),
    )
    return updated


def _user_card_states(db: Session, user_id: int) -> List[FlashcardReviewState]:
    reviewed = {
        int(r.card_id): _card_state_from_row(r)
        for r in db.query(models.FlashcardReview).filter(models.FlashcardReview.user_id == int(user_id)).all()
    }
    states = []
    for card in db.query(models.Flashcard).order_by(models.Flashcard.id).all():
        state = reviewed.get(int(card.id))
        if state is None:
            # cartao nunca revisado entra como novo, vencido desde a criacao
            state = FlashcardReviewState.new(int(user_id), int(card.id), card.created_at)
        states.append(state)
    return states


def due_flashcards(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
    limit: int = 120,
) -> List[Tuple[FlashcardReviewState, models.Flashcard]]:
    cards = {int(c.id): c for c in db.query(models.Flashcard).all()}
    out = []
    for state in FlashcardReviewScheduler.due_cards(_user_card_states(db, user_id), resolve_now(now)):
        if len(out) >= int(max(1, limit)):
            break
        out.append((state, cards[state.card_id]))
    return out


def flashcard_stats(db: Session, user_id: int) -> FlashcardStats:
    return FlashcardReviewScheduler.stats(_user_card_states(db, user_id))
