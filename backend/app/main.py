from contextlib import contextmanager
from datetime import datetime
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from core.error_monitor import log_exception, log_warning
from core.errors import (
    ExamCoreError,
    InvalidQuality,
    InvalidSimulado,
    InvalidState,
    NotFound,
    QuotaExceeded,
    SessionAlreadyActive,
    UnknownQuestion,
)
from core.services import AttemptQuotaService, ExamSessionEngine
from core.time_utils import utcnow
from .database import Base, engine, get_db
from . import models, schemas, services


app = FastAPI(title="Cert Simulados API", version="1.0.0")
Base.metadata.create_all(bind=engine)

_STATUS_BY_ERROR = (
    (QuotaExceeded, 429),
    (SessionAlreadyActive, 409),
    (InvalidState, 409),
    (UnknownQuestion, 422),
    (InvalidSimulado, 422),
    (InvalidQuality, 422),
    (NotFound, 404),
)


def _http_error(ex: ExamCoreError) -> HTTPException:
    status = 400
    for exc_type, code in _STATUS_BY_ERROR:
        if isinstance(ex, exc_type):
            status = code
            break
    detail = {"code": ex.code, "message": ex.message}
    if isinstance(ex, QuotaExceeded) and ex.retry_at is not None:
        detail["retry_at"] = ex.retry_at.isoformat()
    if isinstance(ex, SessionAlreadyActive) and ex.attempt_id is not None:
        detail["attempt_id"] = ex.attempt_id
    return HTTPException(status_code=status, detail=detail)


@contextmanager
def _core_errors(where: str):
    try:
        yield
    except ExamCoreError as ex:
        log_warning(f"{where}: {ex.code}", ex.message)
        raise _http_error(ex) from ex


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_exception(exc, f"{request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Erro interno do servidor."})


def _session_out(attempt_id: int, session, now: datetime) -> schemas.ExamSessionOut:
    return schemas.ExamSessionOut(
        attempt_id=int(attempt_id),
        user_id=int(session.user_id),
        simulado_id=int(session.simulado_id),
        state=session.state.value,
        started_at=session.started_at,
        duracao_minutos=int(session.duracao_minutos),
        remaining_seconds=ExamSessionEngine.remaining_seconds(session, now),
        answers=dict(session.answers),
        graded=bool(session.graded),
    )


def _result_out(attempt_id: int, result) -> schemas.ResultOut:
    return schemas.ResultOut(
        attempt_id=int(attempt_id),
        simulado_id=int(result.simulado_id),
        user_id=int(result.user_id),
        answers=dict(result.answers),
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        score=result.score,
        time_spent=result.time_spent,
        passed_exam=result.passed_exam,
        passing_threshold=result.passing_threshold,
        completed_at=result.completed_at,
    )


def _quota_out(quota) -> schemas.QuotaOut:
    return schemas.QuotaOut(
        user_id=quota.user_id,
        attempts_used=quota.attempts_used,
        attempts_allowed=quota.attempts_allowed,
        remaining_attempts=AttemptQuotaService.remaining_attempts(quota),
        window_days=quota.window_days,
        next_slot_at=quota.next_slot_at,
        hint=AttemptQuotaService.plan_hint(quota),
    )


def _card_out(state, card: models.Flashcard | None = None) -> schemas.FlashcardStateOut:
    return schemas.FlashcardStateOut(
        card_id=state.card_id,
        user_id=state.user_id,
        status=state.status.value,
        interval_days=state.interval_days,
        ease_factor=state.ease_factor,
        last_quality=state.last_quality,
        last_reviewed_at=state.last_reviewed_at,
        next_due_at=state.next_due_at,
        total_reviews=state.total_reviews,
        perfect_reviews=state.perfect_reviews,
        frente=card.frente if card is not None else None,
        verso=card.verso if card is not None else None,
    )


@app.get("/health")
def health():
    return {"ok": True, "ts": utcnow().isoformat()}


@app.get("/health/ready")
def health_ready(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"ok": True, "db": "up", "ts": utcnow().isoformat()}
    except Exception as ex:
        raise HTTPException(status_code=503, detail=f"db_down: {ex}") from ex


@app.get("/simulados", response_model=list[schemas.SimuladoOut])
def list_simulados(db: Session = Depends(get_db)):
    out = []
    for simulado in services.list_active_simulados(db):
        data = simulado.public_dict()
        data["questoes"] = []
        out.append(schemas.SimuladoOut(**data))
    return out


@app.get("/simulados/{simulado_id}", response_model=schemas.SimuladoOut)
def get_simulado(simulado_id: int, db: Session = Depends(get_db)):
    with _core_errors("get_simulado"):
        simulado = services.load_simulado(db, simulado_id)
    if not simulado.ativo:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Simulado inativo."})
    return schemas.SimuladoOut(**simulado.public_dict())


@app.get("/quota/{user_id}", response_model=schemas.QuotaOut)
def get_quota(user_id: int, db: Session = Depends(get_db)):
    quota = services.get_quota(db, user_id)
    db.commit()
    return _quota_out(quota)


@app.post("/exams/start", response_model=schemas.ExamSessionOut)
def start_exam(payload: schemas.ExamStartIn, db: Session = Depends(get_db)):
    now = utcnow()
    with _core_errors("start_exam"):
        attempt_id, session, _quota = services.start_exam(db, payload.user_id, payload.simulado_id, now=now)
    return _session_out(attempt_id, session, now)


@app.get("/exams/{attempt_id}", response_model=schemas.ExamSessionOut)
def get_exam(attempt_id: int, user_id: int, db: Session = Depends(get_db)):
    now = utcnow()
    with _core_errors("get_exam"):
        session = services.load_exam(db, attempt_id, user_id, now=now)
    return _session_out(attempt_id, session, now)


@app.post("/exams/{attempt_id}/answers", response_model=schemas.ExamSessionOut)
def answer_question(attempt_id: int, payload: schemas.AnswerIn, db: Session = Depends(get_db)):
    now = utcnow()
    with _core_errors("answer_question"):
        session = services.record_answer(
            db,
            attempt_id,
            payload.user_id,
            payload.question_id,
            payload.alternative_id,
            now=now,
        )
    return _session_out(attempt_id, session, now)


@app.post("/exams/{attempt_id}/expire", response_model=schemas.ExamSessionOut)
def expire_exam(attempt_id: int, payload: schemas.ExamUserIn, db: Session = Depends(get_db)):
    now = utcnow()
    with _core_errors("expire_exam"):
        session = services.expire_exam(db, attempt_id, payload.user_id, now=now)
    return _session_out(attempt_id, session, now)


@app.post("/exams/{attempt_id}/submit", response_model=schemas.ResultOut)
def submit_exam(attempt_id: int, payload: schemas.ExamUserIn, db: Session = Depends(get_db)):
    with _core_errors("submit_exam"):
        result = services.submit_exam(db, attempt_id, payload.user_id)
    return _result_out(attempt_id, result)


@app.get("/results/{user_id}", response_model=schemas.ResultsHistoryOut)
def results_history(user_id: int, db: Session = Depends(get_db)):
    rows = services.list_results(db, user_id)
    return schemas.ResultsHistoryOut(
        user_id=int(user_id),
        results=[_result_out(aid, r) for aid, r in rows],
        summary=services.results_summary(db, user_id),
    )


@app.get("/results/{attempt_id}/breakdown", response_model=schemas.ResultBreakdownOut)
def result_breakdown(attempt_id: int, user_id: int, db: Session = Depends(get_db)):
    with _core_errors("result_breakdown"):
        result, linhas = services.result_breakdown(db, attempt_id, user_id)
    return schemas.ResultBreakdownOut(
        result=_result_out(attempt_id, result),
        questoes=[schemas.QuestaoBreakdownOut(**linha) for linha in linhas],
    )


@app.post("/flashcards/{card_id}/review", response_model=schemas.FlashcardStateOut)
def review_flashcard(card_id: int, payload: schemas.ReviewIn, db: Session = Depends(get_db)):
    with _core_errors("review_flashcard"):
        state = services.review_flashcard(db, payload.user_id, card_id, payload.quality)
        card = services.get_flashcard(db, card_id)
    return _card_out(state, card)


@app.get("/flashcards/due/{user_id}", response_model=list[schemas.FlashcardStateOut])
def due_flashcards(user_id: int, limit: int = 120, db: Session = Depends(get_db)):
    return [_card_out(state, card) for state, card in services.due_flashcards(db, user_id, limit=limit)]


@app.get("/flashcards/stats/{user_id}", response_model=schemas.FlashcardStatsOut)
def flashcard_stats(user_id: int, db: Session = Depends(get_db)):
    stats = services.flashcard_stats(db, user_id)
    return schemas.FlashcardStatsOut(
        user_id=int(user_id),
        total_cards=stats.total_cards,
        by_status=dict(stats.by_status),
        total_reviews=stats.total_reviews,
        perfect_reviews=stats.perfect_reviews,
        average_quality=stats.average_quality,
        average_interval=stats.average_interval,
    )
