# -*- coding: utf-8 -*-
"""Testes do motor de sessao de simulado."""

import datetime
import unittest

from core.errors import InvalidSimulado, InvalidState, QuotaExceeded, UnknownQuestion
from core.models import Alternativa, AttemptQuota, ExamState, Questao, Simulado
from core.services.exam_session_service import ExamSessionEngine


T0 = datetime.datetime(2026, 3, 2, 9, 0, 0)


def _questao(qid: int, simulado_id: int = 1, correta: str = "a") -> Questao:
    return Questao(
        id=qid,
        simulado_id=simulado_id,
        enunciado=f"Questao {qid}?",
        alternativas=tuple(
            Alternativa(id=alt, texto=f"Alternativa {alt}", correta=(alt == correta))
            for alt in ("a", "b", "c", "d")
        ),
        explicacao="Porque sim.",
    )


def _simulado(total: int = 10, duracao: int = 30, nota_minima: int = 70, **kwargs) -> Simulado:
    return Simulado(
        id=1,
        titulo="AWS Cloud Practitioner",
        duracao_minutos=duracao,
        questoes=tuple(_questao(i) for i in range(1, total + 1)),
        nota_minima=nota_minima,
        **kwargs,
    )


def _quota(used: int = 0, allowed: int = 3) -> AttemptQuota:
    return AttemptQuota(user_id=7, attempts_used=used, attempts_allowed=allowed)


class ExamSessionStartTest(unittest.TestCase):
    def test_start_copies_duration_and_consumes_quota(self):
        session, quota = ExamSessionEngine.start(_simulado(duracao=45), _quota(used=1), now=T0)
        self.assertEqual(session.state, ExamState.IN_PROGRESS)
        self.assertEqual(session.started_at, T0)
        self.assertEqual(session.duracao_minutos, 45)
        self.assertEqual(session.user_id, 7)
        self.assertEqual(session.answers, {})
        self.assertEqual(quota.attempts_used, 2)

    def test_start_fails_exactly_when_quota_is_used_up(self):
        ExamSessionEngine.start(_simulado(), _quota(used=2, allowed=3), now=T0)
        with self.assertRaises(QuotaExceeded) as ctx:
            ExamSessionEngine.start(_simulado(), _quota(used=3, allowed=3), now=T0)
        self.assertEqual(ctx.exception.quota.attempts_used, 3)

    def test_zero_question_simulado_fails_fast(self):
        with self.assertRaises(InvalidSimulado):
            ExamSessionEngine.start(_simulado(total=0), _quota(), now=T0)

    def test_inactive_simulado_is_rejected(self):
        with self.assertRaises(InvalidSimulado):
            ExamSessionEngine.start(_simulado(ativo=False), _quota(), now=T0)

    def test_question_without_single_correct_alternative_is_rejected(self):
        broken = Questao(
            id=1,
            simulado_id=1,
            enunciado="?",
            alternativas=(Alternativa("a", "A", True), Alternativa("b", "B", True)),
        )
        simulado = Simulado(id=1, titulo="x", duracao_minutos=10, questoes=(broken,))
        with self.assertRaises(InvalidSimulado):
            ExamSessionEngine.start(simulado, _quota(), now=T0)

    def test_correct_answer_key_is_accepted_without_flags(self):
        questao = Questao(
            id=1,
            simulado_id=1,
            enunciado="?",
            alternativas=(Alternativa("a", "A"), Alternativa("b", "B")),
            resposta_correta="b",
        )
        simulado = Simulado(id=1, titulo="x", duracao_minutos=10, questoes=(questao,))
        session, _ = ExamSessionEngine.start(simulado, _quota(), now=T0)
        session = ExamSessionEngine.record_answer(session, 1, "b")
        _, result = ExamSessionEngine.submit(session, simulado, now=T0)
        self.assertEqual(result.score, 100)

    def test_later_simulado_edits_do_not_change_running_session(self):
        simulado = _simulado(duracao=30)
        session, _ = ExamSessionEngine.start(simulado, _quota(), now=T0)
        Simulado(id=1, titulo="editado", duracao_minutos=5, questoes=simulado.questoes)
        self.assertEqual(session.duracao_minutos, 30)


class ExamSessionAnswerTest(unittest.TestCase):
    def setUp(self):
        self.simulado = _simulado()
        self.session, _ = ExamSessionEngine.start(self.simulado, _quota(), now=T0)

    def test_last_write_wins(self):
        s = ExamSessionEngine.record_answer(self.session, 1, "b")
        s = ExamSessionEngine.record_answer(s, 1, "a")
        self.assertEqual(s.answers, {1: "a"})

    def test_record_answer_does_not_mutate_input_session(self):
        ExamSessionEngine.record_answer(self.session, 1, "b")
        self.assertEqual(self.session.answers, {})

    def test_unknown_question(self):
        with self.assertRaises(UnknownQuestion):
            ExamSessionEngine.record_answer(self.session, 99, "a")

    def test_answer_after_submit_is_invalid(self):
        submitted, _ = ExamSessionEngine.submit(self.session, self.simulado, now=T0)
        with self.assertRaises(InvalidState):
            ExamSessionEngine.record_answer(submitted, 1, "a")

    def test_answer_after_expire_is_invalid(self):
        expired = ExamSessionEngine.expire(self.session, T0 + datetime.timedelta(minutes=31))
        with self.assertRaises(InvalidState):
            ExamSessionEngine.record_answer(expired, 1, "a")


class ExamSessionTimerTest(unittest.TestCase):
    def setUp(self):
        self.session, _ = ExamSessionEngine.start(_simulado(duracao=1), _quota(), now=T0)

    def test_remaining_seconds_counts_down_to_zero(self):
        previous = None
        for offset in range(0, 120, 7):
            value = ExamSessionEngine.remaining_seconds(self.session, T0 + datetime.timedelta(seconds=offset))
            self.assertGreaterEqual(value, 0)
            if previous is not None:
                self.assertLessEqual(value, previous)
            previous = value
        self.assertEqual(ExamSessionEngine.remaining_seconds(self.session, T0), 60)
        self.assertEqual(ExamSessionEngine.remaining_seconds(self.session, T0 + datetime.timedelta(seconds=60)), 0)
        self.assertEqual(ExamSessionEngine.remaining_seconds(self.session, T0 + datetime.timedelta(hours=5)), 0)

    def test_partial_second_is_not_reported_as_zero(self):
        now = T0 + datetime.timedelta(seconds=59, milliseconds=500)
        self.assertEqual(ExamSessionEngine.remaining_seconds(self.session, now), 1)

    def test_clock_before_start_is_clamped_to_full_duration(self):
        now = T0 - datetime.timedelta(seconds=30)
        self.assertEqual(ExamSessionEngine.remaining_seconds(self.session, now), 60)

    def test_remaining_seconds_does_not_transition(self):
        ExamSessionEngine.remaining_seconds(self.session, T0 + datetime.timedelta(minutes=10))
        self.assertEqual(self.session.state, ExamState.IN_PROGRESS)

    def test_expire_before_time_is_noop(self):
        same = ExamSessionEngine.expire(self.session, T0 + datetime.timedelta(seconds=30))
        self.assertEqual(same.state, ExamState.IN_PROGRESS)

    def test_expire_is_idempotent(self):
        later = T0 + datetime.timedelta(minutes=2)
        first = ExamSessionEngine.expire(self.session, later)
        second = ExamSessionEngine.expire(first, later)
        self.assertEqual(first.state, ExamState.EXPIRED)
        self.assertEqual(second, first)

    def test_expire_on_submitted_session_is_noop(self):
        submitted, _ = ExamSessionEngine.submit(self.session, _simulado(duracao=1), now=T0)
        again = ExamSessionEngine.expire(submitted, T0 + datetime.timedelta(minutes=5))
        self.assertEqual(again.state, ExamState.SUBMITTED)


class ExamSessionSubmitTest(unittest.TestCase):
    def setUp(self):
        self.simulado = _simulado(total=10, duracao=30, nota_minima=70)
        self.session, _ = ExamSessionEngine.start(self.simulado, _quota(), now=T0)

    def _answer(self, session, mapping):
        for qid, alt in mapping.items():
            session = ExamSessionEngine.record_answer(session, qid, alt)
        return session

    def test_all_correct_scores_100_and_passes(self):
        session = self._answer(self.session, {i: "a" for i in range(1, 11)})
        submitted, result = ExamSessionEngine.submit(session, self.simulado, now=T0 + datetime.timedelta(minutes=12))
        self.assertEqual(submitted.state, ExamState.SUBMITTED)
        self.assertEqual(result.correct_answers, 10)
        self.assertEqual(result.score, 100)
        self.assertTrue(result.passed_exam)
        self.assertEqual(result.time_spent, 12 * 60)

    def test_seven_of_ten(self):
        answers = {i: "a" for i in range(1, 8)}
        answers.update({8: "b", 9: "c", 10: "d"})
        session = self._answer(self.session, answers)
        _, result = ExamSessionEngine.submit(session, self.simulado, now=T0 + datetime.timedelta(minutes=20))
        self.assertEqual(result.correct_answers, 7)
        self.assertEqual(result.total_questions, 10)
        self.assertEqual(result.score, 70)
        self.assertTrue(result.passed_exam)

        _, strict = ExamSessionEngine.submit(session, self.simulado, now=T0, passing_threshold=71)
        self.assertFalse(strict.passed_exam)

    def test_unanswered_questions_count_as_wrong(self):
        session = self._answer(self.session, {1: "a", 2: "a"})
        _, result = ExamSessionEngine.submit(session, self.simulado, now=T0)
        self.assertEqual(result.correct_answers, 2)
        self.assertEqual(result.total_questions, 10)
        self.assertEqual(result.score, 20)
        self.assertFalse(result.passed_exam)

    def test_score_rounds_half_up(self):
        simulado = _simulado(total=8)
        session, _ = ExamSessionEngine.start(simulado, _quota(), now=T0)
        session = ExamSessionEngine.record_answer(session, 1, "a")
        # 1/8 = 12.5%
        _, result = ExamSessionEngine.submit(session, simulado, now=T0)
        self.assertEqual(result.score, 13)

    def test_second_submit_fails(self):
        submitted, _ = ExamSessionEngine.submit(self.session, self.simulado, now=T0)
        with self.assertRaises(InvalidState):
            ExamSessionEngine.submit(submitted, self.simulado, now=T0)

    def test_expired_session_accepts_one_grace_submission(self):
        session = self._answer(self.session, {1: "a", 2: "a", 3: "b"})
        late = T0 + datetime.timedelta(minutes=45)
        expired = ExamSessionEngine.expire(session, late)
        graded, result = ExamSessionEngine.submit(expired, self.simulado, now=late)
        self.assertEqual(graded.state, ExamState.EXPIRED)
        self.assertTrue(graded.graded)
        self.assertEqual(result.correct_answers, 2)
        self.assertEqual(result.time_spent, 30 * 60)
        with self.assertRaises(InvalidState):
            ExamSessionEngine.submit(graded, self.simulado, now=late)

    def test_not_started_session_cannot_be_submitted(self):
        from core.models import ExamSession

        idle = ExamSession(simulado_id=1, started_at=None, duracao_minutos=30)
        with self.assertRaises(InvalidState):
            ExamSessionEngine.submit(idle, self.simulado, now=T0)

    def test_submit_against_other_simulado_fails(self):
        other = Simulado(id=2, titulo="outro", duracao_minutos=30, questoes=(_questao(1, simulado_id=2),))
        with self.assertRaises(InvalidSimulado):
            ExamSessionEngine.submit(self.session, other, now=T0)

    def test_result_is_frozen(self):
        _, result = ExamSessionEngine.submit(self.session, self.simulado, now=T0)
        with self.assertRaises(Exception):
            result.score = 99

    def test_result_answers_cannot_be_changed_after_submit(self):
        session = self._answer(self.session, {1: "b"})
        submitted, result = ExamSessionEngine.submit(session, self.simulado, now=T0)
        with self.assertRaises(TypeError):
            result.answers[1] = "a"
        with self.assertRaises(TypeError):
            submitted.answers[2] = "a"
        self.assertEqual(dict(result.answers), {1: "b"})
        self.assertEqual(result.score, 0)

    def test_result_does_not_share_answers_with_caller(self):
        answers = {1: "a"}
        from core.models import ExamSession

        session = ExamSession(
            simulado_id=1,
            started_at=T0,
            duracao_minutos=30,
            question_ids=self.simulado.question_ids(),
            answers=answers,
            state=ExamState.IN_PROGRESS,
        )
        _, result = ExamSessionEngine.submit(session, self.simulado, now=T0)
        answers[1] = "b"
        self.assertEqual(session.answers[1], "a")
        self.assertEqual(result.answers[1], "a")
        self.assertEqual(result.correct_answers, 1)

    def test_correct_answers_never_exceed_total(self):
        session = self._answer(self.session, {i: "a" for i in range(1, 11)})
        session = ExamSessionEngine.record_answer(session, 1, "a")
        _, result = ExamSessionEngine.submit(session, self.simulado, now=T0)
        self.assertLessEqual(result.correct_answers, result.total_questions)
        self.assertEqual(result.score, round(100 * result.correct_answers / result.total_questions))


if __name__ == "__main__":
    unittest.main()
