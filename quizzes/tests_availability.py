from datetime import datetime, timedelta, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings

from . import availability, question_bank, responses
from .exceptions import NotFound, QuizClosed, TimeLimitExceeded, ValidationError
from .models import Quiz


T1 = datetime(2025, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
T2 = datetime(2025, 3, 1, 17, 0, tzinfo=dt_timezone.utc)


class AvailabilityWindowTests(SimpleTestCase):
    def test_manual_flag_overrides_everything(self):
        for start, end in [(None, None), (T1, None), (None, T2), (T1, T2)]:
            for now in [T1 - timedelta(days=1), T1, T2, T2 + timedelta(days=1)]:
                self.assertFalse(availability.is_available(False, start, end, now))
        self.assertEqual(availability.evaluate(False, None, None, T1).reason, availability.CLOSED)

    def test_window_is_inclusive_at_both_ends(self):
        self.assertTrue(availability.is_available(True, T1, T2, T1))
        self.assertTrue(availability.is_available(True, T1, T2, T2))
        self.assertTrue(availability.is_available(True, T1, T2, T1 + timedelta(hours=1)))

    def test_outside_window(self):
        before = availability.evaluate(True, T1, T2, T1 - timedelta(seconds=1))
        after = availability.evaluate(True, T1, T2, T2 + timedelta(seconds=1))
        self.assertFalse(before.available)
        self.assertEqual(before.reason, availability.NOT_STARTED)
        self.assertFalse(after.available)
        self.assertEqual(after.reason, availability.ENDED)

    def test_open_ended_bounds(self):
        self.assertTrue(availability.is_available(True, None, None, T1))
        self.assertTrue(availability.is_available(True, T1, None, T2 + timedelta(days=365)))
        self.assertTrue(availability.is_available(True, None, T2, T1 - timedelta(days=365)))


class SubmissionGateTests(TestCase):
    def setUp(self):
        owner = get_user_model().objects.create_user(username="owner", password="pass")
        self.quiz = Quiz.objects.create(owner=owner, slug="gate1", start_time=T1, end_time=T2)
        self.question = question_bank.append(self.quiz.pk, "Q1", ["A", "B"], "A")
        self.values = [{"questionId": self.question.pk, "userSelectedOption": "A"}]

    def test_submission_inside_window(self):
        response = responses.submit("gate1", self.values, now=T1 + timedelta(hours=1))
        self.assertEqual(response.quiz, self.quiz)
        self.assertEqual(response.question_count, 1)

    def test_submission_re_evaluates_window(self):
        with self.assertRaises(QuizClosed) as ctx:
            responses.submit("gate1", self.values, now=T2 + timedelta(seconds=1))
        self.assertEqual(ctx.exception.reason, availability.ENDED)

        Quiz.objects.filter(pk=self.quiz.pk).update(accepting_responses=False)
        with self.assertRaises(QuizClosed) as ctx:
            responses.submit("gate1", self.values, now=T1 + timedelta(hours=1))
        self.assertEqual(ctx.exception.reason, availability.CLOSED)
        self.assertEqual(self.quiz.responses.count(), 0)

    def test_unknown_slug(self):
        with self.assertRaises(NotFound):
            responses.submit("missing", self.values, now=T1)

    def test_answers_must_belong_to_quiz(self):
        now = T1 + timedelta(hours=1)
        with self.assertRaises(ValidationError):
            responses.submit("gate1", [{"questionId": 987654, "userSelectedOption": "A"}], now=now)
        with self.assertRaises(ValidationError):
            responses.submit("gate1", self.values + self.values, now=now)
        with self.assertRaises(ValidationError):
            responses.submit("gate1", "not a list", now=now)

    def test_time_limit_is_advisory_by_default(self):
        Quiz.objects.filter(pk=self.quiz.pk).update(time_limit_minutes=5)
        now = T1 + timedelta(hours=2)
        response = responses.submit("gate1", self.values, session_start_time=T1, now=now)
        self.assertEqual(response.session_start_time, T1)

    @override_settings(QUIZFORGE_ENFORCE_TIME_LIMIT=True)
    def test_time_limit_enforced_when_hardened(self):
        Quiz.objects.filter(pk=self.quiz.pk).update(time_limit_minutes=5)
        start = T1 + timedelta(hours=1)

        responses.submit("gate1", self.values, session_start_time=start,
                         now=start + timedelta(minutes=5, seconds=4))
        with self.assertRaises(TimeLimitExceeded):
            responses.submit("gate1", self.values, session_start_time=start,
                             now=start + timedelta(minutes=5, seconds=6))
        with self.assertRaises(TimeLimitExceeded):
            responses.submit("gate1", self.values, now=start)
