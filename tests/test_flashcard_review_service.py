# -*- coding: utf-8 -*-
import datetime
import unittest

from core.errors import InvalidQuality
from core.models import CardStatus, FlashcardReviewState
from core.services.flashcard_review_service import FlashcardReviewScheduler, validate_quality


T0 = datetime.datetime(2026, 5, 4, 8, 30, 0)


class FlashcardReviewSchedulerTest(unittest.TestCase):
    def _new(self, card_id: int = 1) -> FlashcardReviewState:
        return FlashcardReviewState.new(user_id=3, card_id=card_id, now=T0)

    def test_perfect_reviews_walk_new_learning_review(self):
        state = self._new()
        s1 = FlashcardReviewScheduler.review(state, 5, now=T0)
        self.assertEqual(s1.status, CardStatus.LEARNING)
        self.assertEqual(s1.interval_days, 1)
        self.assertEqual(s1.next_due_at, T0 + datetime.timedelta(days=1))

        s2 = FlashcardReviewScheduler.review(s1, 5, now=s1.next_due_at)
        self.assertEqual(s2.status, CardStatus.REVIEW)
        self.assertEqual(s2.interval_days, 3)

        s3 = FlashcardReviewScheduler.review(s2, 5, now=s2.next_due_at)
        self.assertEqual(s3.status, CardStatus.REVIEW)
        self.assertEqual(s3.interval_days, 8)
        self.assertEqual(s3.total_reviews, 3)
        self.assertEqual(s3.perfect_reviews, 3)
        self.assertAlmostEqual(s3.ease_factor, 2.8)

    def test_review_graduates_after_long_interval(self):
        state = self._new()
        now = T0
        for _ in range(4):
            state = FlashcardReviewScheduler.review(state, 5, now=now)
            now = state.next_due_at
        self.assertEqual(state.status, CardStatus.GRADUATED)
        self.assertGreaterEqual(state.interval_days, 21)

    def test_long_interval_learning_card_passes_through_review(self):
        state = self._new()
        now = T0
        for _ in range(12):
            state = FlashcardReviewScheduler.review(state, 3, now=now)
            now = state.next_due_at
        self.assertEqual(state.status, CardStatus.LEARNING)
        self.assertGreaterEqual(state.interval_days, 21)

        statuses = []
        for _ in range(3):
            state = FlashcardReviewScheduler.review(state, 5, now=now)
            now = state.next_due_at
            statuses.append(state.status)
        self.assertEqual(statuses, [CardStatus.LEARNING, CardStatus.REVIEW, CardStatus.GRADUATED])

    def test_graduated_card_stays_graduated_on_success(self):
        state = FlashcardReviewState(
            card_id=1,
            user_id=3,
            status=CardStatus.GRADUATED,
            interval_days=40,
            consecutive_good=3,
        )
        after = FlashcardReviewScheduler.review(state, 4, now=T0)
        self.assertEqual(after.status, CardStatus.GRADUATED)
        self.assertGreater(after.interval_days, 40)

    def test_failure_resets_from_any_status(self):
        for status in CardStatus:
            state = FlashcardReviewState(
                card_id=1,
                user_id=3,
                status=status,
                interval_days=30,
                ease_factor=2.5,
                consecutive_good=4,
            )
            after = FlashcardReviewScheduler.review(state, 2, now=T0)
            self.assertEqual(after.status, CardStatus.LEARNING)
            self.assertEqual(after.interval_days, 1)
            self.assertEqual(after.consecutive_good, 0)
            self.assertEqual(after.next_due_at, T0 + datetime.timedelta(days=1))
            self.assertAlmostEqual(after.ease_factor, 2.3)

    def test_ease_never_drops_below_floor(self):
        state = self._new()
        for _ in range(20):
            state = FlashcardReviewScheduler.review(state, 0, now=T0)
        self.assertAlmostEqual(state.ease_factor, 1.3)

        hard = FlashcardReviewScheduler.review(state, 3, now=T0)
        self.assertGreaterEqual(hard.ease_factor, 1.3)

    def test_successful_intervals_strictly_increase_until_cap(self):
        state = self._new()
        now = T0
        previous = 0
        for _ in range(30):
            state = FlashcardReviewScheduler.review(state, 3, now=now)
            now = state.next_due_at
            if previous < 365:
                self.assertGreater(state.interval_days, previous)
            self.assertLessEqual(state.interval_days, 365)
            previous = state.interval_days
        self.assertEqual(state.interval_days, 365)

    def test_quality_three_breaks_streak_but_is_not_failure(self):
        state = FlashcardReviewScheduler.review(self._new(), 5, now=T0)
        state = FlashcardReviewScheduler.review(state, 3, now=T0)
        self.assertEqual(state.status, CardStatus.LEARNING)
        self.assertEqual(state.consecutive_good, 0)
        self.assertEqual(state.interval_days, 2)

    def test_review_does_not_mutate_input(self):
        state = self._new()
        FlashcardReviewScheduler.review(state, 4, now=T0)
        self.assertEqual(state.status, CardStatus.NEW)
        self.assertEqual(state.total_reviews, 0)

    def test_due_cards_most_overdue_first(self):
        states = [
            FlashcardReviewState(card_id=3, user_id=3, next_due_at=T0 - datetime.timedelta(days=1)),
            FlashcardReviewState(card_id=1, user_id=3, next_due_at=T0 - datetime.timedelta(days=4)),
            FlashcardReviewState(card_id=2, user_id=3, next_due_at=T0 + datetime.timedelta(hours=1)),
            FlashcardReviewState(card_id=5, user_id=3, next_due_at=T0 - datetime.timedelta(days=1)),
            FlashcardReviewState(card_id=4, user_id=3, next_due_at=T0),
        ]
        due = list(FlashcardReviewScheduler.due_cards(states, now=T0))
        self.assertEqual([s.card_id for s in due], [1, 3, 5, 4])

    def test_stats(self):
        a = FlashcardReviewScheduler.review(self._new(1), 5, now=T0)
        b = FlashcardReviewScheduler.review(self._new(2), 2, now=T0)
        c = self._new(3)
        stats = FlashcardReviewScheduler.stats([a, b, c])
        self.assertEqual(stats.total_cards, 3)
        self.assertEqual(stats.by_status["learning"], 2)
        self.assertEqual(stats.by_status["new"], 1)
        self.assertEqual(stats.by_status["graduated"], 0)
        self.assertEqual(stats.total_reviews, 2)
        self.assertEqual(stats.perfect_reviews, 1)
        self.assertAlmostEqual(stats.average_quality, 3.5)
        self.assertAlmostEqual(stats.average_interval, 0.67)

    def test_stats_empty(self):
        stats = FlashcardReviewScheduler.stats([])
        self.assertEqual(stats.total_cards, 0)
        self.assertEqual(stats.average_quality, 0.0)


class ValidateQualityTest(unittest.TestCase):
    def test_accepts_integers_in_range(self):
        for value in range(0, 6):
            self.assertEqual(validate_quality(value), value)
        self.assertEqual(validate_quality("4"), 4)
        self.assertEqual(validate_quality(3.0), 3)

    def test_rejects_invalid_values(self):
        for value in (-1, 6, 2.5, "abc", "", None, True, [3]):
            with self.assertRaises(InvalidQuality):
                validate_quality(value)


if __name__ == "__main__":
    unittest.main()
