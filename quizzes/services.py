import logging
import random
import string

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_slug
from django.db import IntegrityError, transaction

from . import availability, question_bank, ratelimit
from .exceptions import Forbidden, NotFound, Unauthorized, ValidationError
from .models import Question, Quiz

logger = logging.getLogger(__name__)

SLUG_ALPHABET = string.ascii_lowercase + string.digits
SLUG_LENGTH = 5
SLUG_ATTEMPTS = 5


# -----------------------------
# Helpers
# -----------------------------
def require_user(user):
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthorized("You must be logged in.")
    return user


def get_owned_quiz(user, quiz_id, for_update=False):
    require_user(user)
    qs = Quiz.objects.select_for_update() if for_update else Quiz.objects
    quiz = qs.filter(pk=quiz_id).first()
    if quiz is None:
        raise NotFound("Quiz not found.")
    if quiz.owner_id != user.pk:
        logger.warning(f"User {user.pk} attempted to access quiz {quiz_id} owned by {quiz.owner_id}")
        raise Forbidden("You don't have permission to modify this quiz.")
    return quiz


def get_owned_question(user, question_id):
    question = Question.objects.select_related("quiz").filter(pk=question_id).first()
    if question is None:
        raise NotFound("Question not found.")
    get_owned_quiz(user, question.quiz_id)
    return question


def _random_slug():
    return "".join(random.choice(SLUG_ALPHABET) for _ in range(SLUG_LENGTH))


def serialize_quiz(quiz, now=None):
    return {
        "id": quiz.pk,
        "name": quiz.name,
        "description": quiz.description,
        "slug": quiz.slug,
        "acceptingResponses": quiz.accepting_responses,
        "startTime": quiz.start_time.isoformat() if quiz.start_time else None,
        "endTime": quiz.end_time.isoformat() if quiz.end_time else None,
        "timeLimitMinutes": quiz.time_limit_minutes,
        "generationStatus": quiz.generation_status,
        "availability": availability.for_quiz(quiz, now).as_dict(),
    }


# -----------------------------
# Quizzes
# -----------------------------
def create_quiz(user, name="", description=""):
    require_user(user)
    ratelimit.check("quiz_creation", user)

    for _ in range(SLUG_ATTEMPTS):
        slug = _random_slug()
        if Quiz.objects.filter(slug=slug).exists():
            continue
        try:
            with transaction.atomic():
                quiz = Quiz.objects.create(
                    owner=user,
                    name=name.strip(),
                    description=description,
                    slug=slug,
                )
        except IntegrityError:
            continue
        logger.info(f"Created quiz {quiz.pk} ({slug}) for user {user.pk}")
        return quiz
    raise ValidationError("Failed to generate a unique slug.")


def update_quiz(user, quiz_id, name, description, slug,
                start_time=None, end_time=None, time_limit_minutes=None):
    quiz = get_owned_quiz(user, quiz_id)
    name = (name or "").strip()
    slug = (slug or "").strip()

    try:
        validate_slug(slug)
    except DjangoValidationError:
        raise ValidationError("Slug may only contain letters, numbers, underscores or hyphens.")
    if Quiz.objects.filter(slug=slug).exclude(pk=quiz.pk).exists():
        raise ValidationError("Quiz with this slug already exists.")
    if name and Quiz.objects.filter(owner=user, name=name).exclude(pk=quiz.pk).exists():
        raise ValidationError("Quiz with this name already exists.")
    if start_time and end_time and end_time <= start_time:
        raise ValidationError("End time must be after start time.")
    if time_limit_minutes is not None and time_limit_minutes <= 0:
        raise ValidationError("Time limit must be a positive number of minutes.")

    quiz.name = name
    quiz.description = description or ""
    quiz.slug = slug
    quiz.start_time = start_time
    quiz.end_time = end_time
    quiz.time_limit_minutes = time_limit_minutes
    try:
        quiz.save(update_fields=[
            "name", "description", "slug", "start_time", "end_time", "time_limit_minutes",
        ])
    except IntegrityError:
        raise ValidationError("Quiz with this slug already exists.")
    return quiz


def toggle_status(user, quiz_id):
    with transaction.atomic():
        quiz = get_owned_quiz(user, quiz_id, for_update=True)
        quiz.accepting_responses = not quiz.accepting_responses
        quiz.save(update_fields=["accepting_responses"])
    logger.info(f"Quiz {quiz.pk} accepting_responses -> {quiz.accepting_responses}")
    return quiz.accepting_responses


def delete_quiz(user, quiz_id):
    with transaction.atomic():
        quiz = get_owned_quiz(user, quiz_id, for_update=True)
        if quiz.responses.exists():
            raise ValidationError("Quiz has responses - cannot delete.")
        quiz.delete()


def get_quiz(user, quiz_id):
    return get_owned_quiz(user, quiz_id)


def get_quiz_by_slug(slug):
    quiz = Quiz.objects.filter(slug=slug).first()
    if quiz is None:
        raise NotFound("Quiz not found.")
    return quiz


def list_user_quizzes(user):
    require_user(user)
    return list(Quiz.objects.filter(owner=user).order_by("-created_at"))


# -----------------------------
# Questions
# -----------------------------
def add_question(user, quiz_id, text, options, answer):
    get_owned_quiz(user, quiz_id)
    return question_bank.append(quiz_id, text, options, answer)


def update_question(user, question_id, text, options, answer):
    get_owned_question(user, question_id)
    return question_bank.update(question_id, text, options, answer)


def delete_question(user, question_id):
    get_owned_question(user, question_id)
    question_bank.delete(question_id)


def list_owner_questions(user, quiz_id):
    get_owned_quiz(user, quiz_id)
    return question_bank.list_for_owner(quiz_id)
