"""Ordered, validated MCQ records per quiz.

Orders are dense and 1-based. Every mutation that touches ordering locks the
parent quiz row first so concurrent appends and deletes cannot interleave.
"""

import logging

from django.db import transaction
from django.db.models import F, Max

from .exceptions import NotFound, ValidationError
from .models import Question, Quiz

logger = logging.getLogger(__name__)


def clean_options(options, dedupe=False):
    """Trim options, reject blanks, and enforce case-insensitive uniqueness.

    With ``dedupe`` later duplicates are dropped instead of rejected; the
    generation pipeline uses this to sanitize model output.
    """
    if not isinstance(options, (list, tuple)):
        raise ValidationError("Options must be a list of strings.")

    cleaned = []
    seen = set()
    for option in options:
        if not isinstance(option, str):
            raise ValidationError("Options must be a list of strings.")
        option = option.strip()
        if not option:
            raise ValidationError("Option text cannot be empty.")
        key = option.casefold()
        if key in seen:
            if dedupe:
                continue
            raise ValidationError(f"Duplicate option: '{option}'.")
        seen.add(key)
        cleaned.append(option)

    if len(cleaned) < 2:
        raise ValidationError("MCQ questions must have at least two distinct options.")
    return cleaned


def clean_question(text, options, answer, dedupe=False):
    """Return ``(text, options, answer)`` trimmed and validated."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Question text must not be empty.")
    options = clean_options(options, dedupe=dedupe)
    if not isinstance(answer, str) or answer.strip() not in options:
        raise ValidationError("The answer must exactly match one of the options.")
    return text.strip(), options, answer.strip()


def _lock_quiz(quiz_id):
    try:
        return Quiz.objects.select_for_update().get(pk=quiz_id)
    except Quiz.DoesNotExist:
        raise NotFound("Quiz not found.")


def append(quiz_id, text, options, answer):
    text, options, answer = clean_question(text, options, answer)
    with transaction.atomic():
        quiz = _lock_quiz(quiz_id)
        current_max = quiz.questions.aggregate(m=Max("order"))["m"] or 0
        return Question.objects.create(
            quiz=quiz,
            text=text,
            select_options=options,
            answer=answer,
            order=current_max + 1,
        )


def append_many(quiz_id, cleaned_questions):
    """Append already-validated ``(text, options, answer)`` tuples in one transaction."""
    with transaction.atomic():
        quiz = _lock_quiz(quiz_id)
        current_max = quiz.questions.aggregate(m=Max("order"))["m"] or 0
        objs = [
            Question(quiz=quiz, text=text, select_options=options, answer=answer, order=current_max + i)
            for i, (text, options, answer) in enumerate(cleaned_questions, start=1)
        ]
        return Question.objects.bulk_create(objs)


def update(question_id, text, options, answer):
    text, options, answer = clean_question(text, options, answer)
    updated = Question.objects.filter(pk=question_id).update(
        text=text, select_options=options, answer=answer
    )
    if not updated:
        raise NotFound("Question not found.")
    return Question.objects.get(pk=question_id)


def delete(question_id):
    try:
        question = Question.objects.get(pk=question_id)
    except Question.DoesNotExist:
        raise NotFound("Question not found.")

    with transaction.atomic():
        _lock_quiz(question.quiz_id)
        # Re-read under the lock; a concurrent delete may have shifted it.
        question = Question.objects.filter(pk=question_id).first()
        if question is None:
            raise NotFound("Question not found.")
        quiz_id, order = question.quiz_id, question.order
        question.delete()
        shifted = Question.objects.filter(quiz_id=quiz_id, order__gt=order).update(order=F("order") - 1)

    logger.info(f"Deleted question {question_id} from quiz {quiz_id}, shifted {shifted} question(s)")
    return shifted


def list_questions(quiz_id):
    return list(Question.objects.filter(quiz_id=quiz_id).order_by("order"))


def serialize(question, include_answer=True):
    data = {
        "id": question.pk,
        "question": question.text,
        "selectOptions": list(question.select_options),
        "order": question.order,
    }
    if include_answer:
        data["answer"] = question.answer
    return data


def list_for_owner(quiz_id):
    return [serialize(q) for q in list_questions(quiz_id)]


def list_for_taker(quiz_id):
    return [serialize(q, include_answer=False) for q in list_questions(quiz_id)]
