from django.contrib.auth import get_user_model
from django.test import TestCase

from . import aggregation, question_bank, scoring
from .models import Quiz, QuizResponse


class ScoringTests(TestCase):
    def setUp(self):
        owner = get_user_model().objects.create_user(username="owner", password="pass")
        self.quiz = Quiz.objects.create(owner=owner, slug="score")
        self.q1 = question_bank.append(self.quiz.pk, "Q1", ["Red", "Blue"], "Red")
        self.q2 = question_bank.append(self.quiz.pk, "Q2", ["Cat", "Dog"], "Dog")

    def test_case_insensitive_trimmed_match(self):
        result = scoring.score(
            question_bank.list_questions(self.quiz.pk),
            [
                {"questionId": self.q1.pk, "userSelectedOption": "  red "},
                {"questionId": self.q2.pk, "userSelectedOption": "Cat"},
            ],
        )
        self.assertEqual(result.score, 1)
        self.assertEqual(result.total_questions, 2)
        self.assertEqual(result.percentage, 50.0)
        self.assertEqual([a.is_correct for a in result.answers], [True, False])

    def test_missing_question_is_flagged(self):
        values = [
            {"questionId": self.q1.pk, "question": "Q1", "userSelectedOption": "Red"},
            {"questionId": self.q2.pk, "question": "Q2", "userSelectedOption": "Dog"},
        ]
        question_bank.delete(self.q2.pk)
        result = scoring.score(question_bank.list_questions(self.quiz.pk), values)

        self.assertEqual(result.score, 1)
        # Denominator follows the live bank.
        self.assertEqual(result.total_questions, 1)
        missing = result.answers[1]
        self.assertTrue(missing.missing_question)
        self.assertFalse(missing.is_correct)
        self.assertEqual(missing.question_text, "Q2")

    def test_repeated_question_counts_once(self):
        values = [{"questionId": self.q1.pk, "userSelectedOption": "Red"}] * 3
        result = scoring.score(question_bank.list_questions(self.quiz.pk), values)
        self.assertEqual(result.score, 1)


class AggregationTests(TestCase):
    def setUp(self):
        owner = get_user_model().objects.create_user(username="owner", password="pass")
        self.quiz = Quiz.objects.create(owner=owner, slug="stats")
        self.questions = [
            question_bank.append(self.quiz.pk, f"Q{i}", [f"A{i}", f"B{i}"], f"A{i}")
            for i in range(1, 4)
        ]

    def _respond(self, correct_count):
        values = [
            {"questionId": q.pk, "question": q.text,
             "userSelectedOption": q.answer if i < correct_count else q.select_options[1]}
            for i, q in enumerate(self.questions)
        ]
        return QuizResponse.objects.create(quiz=self.quiz, slug=self.quiz.slug, values=values, question_count=3)

    def test_collective_metrics(self):
        for s in [3, 2, 2, 0]:
            self._respond(s)
        result = aggregation.aggregate(self.quiz.questions.all(), self.quiz.responses.all())

        self.assertEqual(result.average_score, 1.75)
        self.assertEqual(result.median_score, 2)
        self.assertEqual(result.perfect_scores, 1)
        self.assertEqual(result.zero_scores, 1)
        self.assertEqual(result.score_distribution, {0: 1, 1: 0, 2: 2, 3: 1})

        by_text = {s.text: s for s in result.question_stats}
        self.assertEqual((by_text["Q1"].correct_count, by_text["Q1"].total_count), (3, 4))
        self.assertEqual((by_text["Q3"].correct_count, by_text["Q3"].total_count), (1, 4))

    def test_no_responses(self):
        result = aggregation.aggregate(self.quiz.questions.all(), [])
        self.assertIsNone(result.average_score)
        self.assertIsNone(result.median_score)
        self.assertEqual(result.score_distribution, {0: 0, 1: 0, 2: 0, 3: 0})
        self.assertEqual(result.perfect_scores, 0)

    def test_stale_question_keeps_last_text(self):
        self._respond(3)
        stale_id = self.questions[2].pk
        question_bank.delete(stale_id)

        result = aggregation.aggregate(self.quiz.questions.all(), self.quiz.responses.all())
        stale = next(s for s in result.question_stats if s.question_id == stale_id)
        self.assertTrue(stale.stale)
        self.assertEqual(stale.text, "Q3")
        self.assertEqual((stale.correct_count, stale.total_count), (0, 1))
        self.assertEqual(result.total_questions, 2)
        self.assertEqual(result.perfect_scores, 1)

    def test_empty_bank_has_no_perfect_scores(self):
        for q in self.questions:
            question_bank.delete(q.pk)
        self._respond(0)
        result = aggregation.aggregate([], self.quiz.responses.all())
        self.assertEqual(result.perfect_scores, 0)
        self.assertEqual(result.zero_scores, 1)
