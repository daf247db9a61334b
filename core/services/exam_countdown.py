# -*- coding: utf-8 -*-
"""Cronometro cooperativo de uma sessao de simulado.

Um unico task asyncio por sessao ativa. O cronometro nao guarda estado de
prova: a cada tick le a sessao atual pelo `get_session`, calcula o tempo
restante e, ao zerar, chama `ExamSessionEngine.expire`. Cancelar o task em
qualquer ponto deixa a sessao intacta, ja que `expire` e idempotente.
"""

from __future__ import annotations

import asyncio
import datetime
from typing import Callable, Optional

from config import EXAM
from core.error_monitor import log_exception
from core.models import ExamSession, ExamState
from core.services.exam_session_service import ExamSessionEngine
from core.time_utils import utcnow


class ExamCountdown:
    def __init__(
        self,
        get_session: Callable[[], ExamSession],
        on_tick: Optional[Callable[[int], None]] = None,
        on_expire: Optional[Callable[[ExamSession], None]] = None,
        tick_seconds: float = EXAM["tick_segundos"],
        clock: Callable[[], datetime.datetime] = utcnow,
    ):
        self.get_session = get_session
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.tick_seconds = float(max(0.0, tick_seconds))
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def _run(self) -> None:
        try:
            while True:
                session = self.get_session()
                if session.state != ExamState.IN_PROGRESS:
                    return
                now = self.clock()
                restante = ExamSessionEngine.remaining_seconds(session, now)
                if self.on_tick:
                    self.on_tick(restante)
                if restante <= 0:
                    expired = ExamSessionEngine.expire(session, now)
                    if self.on_expire:
                        self.on_expire(expired)
                    return
                await asyncio.sleep(self.tick_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            log_exception(ex, "ExamCountdown._run")
            raise
