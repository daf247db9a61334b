#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Ferramentas de suporte operacional para simulados e flashcards.

Uso (na raiz do projeto):
    python -m backend.scripts.support_tools import-simulado --file simulado.json
    python -m backend.scripts.support_tools user --user-id 7
    python -m backend.scripts.support_tools flashcards --user-id 7
"""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict, fields
from datetime import datetime
from enum import Enum
from typing import Any

from backend.app.database import Base, SessionLocal, engine
from backend.app import services
from core.errors import ExamCoreError
from core.services import AttemptQuotaService


def _json_default(value: Any):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _print_json(payload: dict):
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default))


def _result_dict(result) -> dict:
    data = {f.name: getattr(result, f.name) for f in fields(result)}
    data["answers"] = dict(result.answers)
    return data


def _import_simulado(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    db = SessionLocal()
    try:
        simulado_id = services.import_simulado(db, payload)
        return {"ok": True, "simulado_id": simulado_id}
    except ExamCoreError as ex:
        db.rollback()
        return {"ok": False, "message": ex.message}
    finally:
        db.close()


def _user_snapshot(user_id: int) -> dict:
    db = SessionLocal()
    try:
        quota = services.get_quota(db, int(user_id))
        db.commit()
        results = services.list_results(db, int(user_id))
        return {
            "ok": True,
            "user_id": int(user_id),
            "quota": {
                "attempts_used": quota.attempts_used,
                "attempts_allowed": quota.attempts_allowed,
                "next_slot_at": quota.next_slot_at,
                "hint": AttemptQuotaService.plan_hint(quota),
            },
            "summary": services.results_summary(db, int(user_id)),
            "recent_results": [
                {"attempt_id": attempt_id, **_result_dict(result)}
                for attempt_id, result in results[:20]
            ],
        }
    finally:
        db.close()


def _flashcards_snapshot(user_id: int) -> dict:
    db = SessionLocal()
    try:
        stats = services.flashcard_stats(db, int(user_id))
        due = services.due_flashcards(db, int(user_id), limit=20)
        return {
            "ok": True,
            "user_id": int(user_id),
            "stats": asdict(stats),
            "due": [
                {"card_id": state.card_id, "frente": card.frente, "status": state.status, "next_due_at": state.next_due_at}
                for state, card in due
            ],
        }
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Suporte operacional Cert Simulados")
    sub = parser.add_subparsers(dest="cmd", required=True)

    imp_cmd = sub.add_parser("import-simulado", help="Importa um simulado completo a partir de JSON")
    imp_cmd.add_argument("--file", required=True, help="Arquivo JSON do simulado")

    user_cmd = sub.add_parser("user", help="Mostra cota semanal e historico de resultados")
    user_cmd.add_argument("--user-id", type=int, required=True, help="ID do usuario")

    fc_cmd = sub.add_parser("flashcards", help="Mostra estatisticas e fila de revisao")
    fc_cmd.add_argument("--user-id", type=int, required=True, help="ID do usuario")

    args = parser.parse_args()
    Base.metadata.create_all(bind=engine)
    if args.cmd == "import-simulado":
        _print_json(_import_simulado(str(args.file)))
        return
    if args.cmd == "user":
        _print_json(_user_snapshot(int(args.user_id)))
        return
    if args.cmd == "flashcards":
        _print_json(_flashcards_snapshot(int(args.user_id)))
        return


if __name__ == "__main__":
    main()
