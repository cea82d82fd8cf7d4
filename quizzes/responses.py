"""Append-only store of submitted answer sets."""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import aggregation, availability, scoring
from .exceptions import NotFound, QuizClosed, TimeLimitExceeded, ValidationError
from .models import Quiz, QuizResponse
from .services import get_owned_quiz

logger = logging.getLogger(__name__)


def _clean_values(values, questions):
    if not isinstance(values, list):
        raise ValidationError("Response values must be a list.")

    by_id = {q.pk: q for q in questions}
    cleaned = []
    seen = set()
    for value in values:
        if not isinstance(value, dict):
            raise ValidationError("Each answer must be an object.")
        qid = scoring.parse_question_id(value.get("questionId"))
        selected = value.get("userSelectedOption")
        if qid is None:
            raise ValidationError(f"Question id {value.get('questionId')!r} must be an integer.")
        if qid not in by_id:
            raise ValidationError(f"Question {value.get('questionId')!r} does not belong to this quiz.")
        if qid in seen:
            raise ValidationError(f"Question {qid} was answered more than once.")
        if not isinstance(selected, str):
            raise ValidationError(f"Answer to question {qid} must be a string.")
        seen.add(qid)
        cleaned.append({
            "questionId": qid,
            "question": by_id[qid].text,
            "userSelectedOption": selected,
        })
    return cleaned


def _check_time_limit(quiz, session_start_time, now):
    if not (settings.QUIZFORGE_ENFORCE_TIME_LIMIT and quiz.time_limit_minutes):
        return
    if session_start_time is None:
        raise TimeLimitExceeded("Submission error: could not verify start time for time limit.")
    allowed = timedelta(minutes=quiz.time_limit_minutes,
                        seconds=settings.QUIZFORGE_TIME_LIMIT_GRACE_SECONDS)
    if now - session_start_time > allowed:
        raise TimeLimitExceeded(f"Time limit of {quiz.time_limit_minutes} minutes exceeded.")


def submit(slug, values, session_start_time=None, now=None):
    """Record a response for the quiz at ``slug``.

    Availability is re-evaluated here under a row lock, so a quiz closed or
    expired mid-session rejects the submission.
    """
    with transaction.atomic():
        quiz = Quiz.objects.select_for_update().filter(slug=slug).first()
        if quiz is None:
            raise NotFound("Quiz not found.")

        now = now or timezone.now()
        status = availability.for_quiz(quiz, now)
        if not status.available:
            raise QuizClosed(status.message, reason=status.reason)
        _check_time_limit(quiz, session_start_time, now)

        questions = list(quiz.questions.all())
        response = QuizResponse.objects.create(
            quiz=quiz,
            slug=quiz.slug,
            values=_clean_values(values, questions),
            question_count=len(questions),
            session_start_time=session_start_time,
        )

    logger.info(f"Recorded response {response.pk} for quiz {quiz.pk}")
    return response


def list_for_quiz(quiz_id):
    return list(QuizResponse.objects.filter(quiz_id=quiz_id).order_by("submitted_at", "id"))


def serialize(response, result):
    data = {
        "id": response.pk,
        "slug": response.slug,
        "submittedAt": response.submitted_at.isoformat() if response.submitted_at else None,
        "sessionStartTime": response.session_start_time.isoformat() if response.session_start_time else None,
        "questionCountAtSubmission": response.question_count,
    }
    data.update(result.as_dict())
    return data


def list_responses(user, quiz_id):
    """Owner view of every response, each scored against the live bank."""
    quiz = get_owned_quiz(user, quiz_id)
    questions = list(quiz.questions.all())
    return [
        serialize(response, scoring.score(questions, response.values))
        for response in list_for_quiz(quiz.pk)
    ]


def statistics(user, quiz_id):
    quiz = get_owned_quiz(user, quiz_id)
    return aggregation.aggregate(quiz.questions.all(), list_for_quiz(quiz.pk))
