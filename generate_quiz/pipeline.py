"""Model output -> validated questions, under the generation guard."""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator

from quizzes import question_bank, ratelimit
from quizzes.exceptions import NoValidQuestions, UnsupportedContent, ValidationError
from quizzes.services import get_owned_quiz
from sources import storage

from . import candidates, documents, extraction, llm, prompts
from .guard import generation_guard

logger = logging.getLogger(__name__)

RATE_LIMIT_ACTION = "generate_questions"


@dataclass
class GenerationResult:
    count: int
    requested: int
    rejected: int

    def as_dict(self):
        return {"success": True, "count": self.count, "requested": self.requested, "rejected": self.rejected}


@dataclass
class ContentSource:
    """Either an owned upload or a URL; only one of the two is set."""

    source_file: Optional[object] = None
    url: Optional[str] = None

    def build_request(self, num_questions):
        """Return ``(prompt, attachment)`` for the model call."""
        if self.url:
            return prompts.build_url_prompt(num_questions, self.url), None
        data, content_type = storage.read_content(self.source_file)
        logger.info(
            f"Generating {num_questions} questions from file: {self.source_file.name} "
            f"(Type: {content_type}, Size: {len(data)} bytes)"
        )
        text, attachment = documents.prepare_document(data, content_type)
        return prompts.build_document_prompt(num_questions, self.source_file.name, text), attachment


def _clean_count(num_questions):
    limit = settings.QUIZFORGE_MAX_QUESTIONS_PER_BATCH
    if isinstance(num_questions, bool) or not isinstance(num_questions, int) or num_questions <= 0:
        raise ValidationError("Number of questions must be a positive integer.")
    if num_questions > limit:
        raise ValidationError(f"Cannot generate more than {limit} questions at a time.")
    return num_questions


def resolve_source(user, file_id=None, url=None):
    if (file_id is None) == (not url):
        raise ValidationError("Provide exactly one of a file or a URL.")
    if url:
        try:
            URLValidator(schemes=["http", "https"])(url)
        except DjangoValidationError:
            raise ValidationError("Please enter a valid http(s) URL.")
        return ContentSource(url=url)

    source_file = storage.get_owned_file(user, file_id)
    if source_file.content_type not in settings.QUIZFORGE_SUPPORTED_MIME_TYPES:
        raise UnsupportedContent(f"Unsupported file type: {source_file.content_type}.")
    return ContentSource(source_file=source_file)


def generate_questions(user, quiz_id, num_questions, file_id=None, url=None):
    """Generate questions into the quiz's bank.

    Invalid candidates are dropped and logged; only an all-invalid batch is
    an error. Returns a ``GenerationResult`` with the committed count.
    """
    quiz = get_owned_quiz(user, quiz_id)
    num_questions = _clean_count(num_questions)
    source = resolve_source(user, file_id=file_id, url=url)

    with generation_guard(quiz.pk):
        ratelimit.check(RATE_LIMIT_ACTION, user)

        prompt, attachment = source.build_request(num_questions)
        raw = llm.generate_content(prompt, attachment)
        logger.debug(f"LLM raw response: {raw}")

        items = extraction.parse_json_array(raw)
        valid, rejected = candidates.validate_candidates(items)

        if rejected:
            logger.warning(
                f"Filtered out {len(rejected)} invalid question(s) for quiz {quiz.pk}: "
                + "; ".join(f"#{idx}: {reason}" for idx, reason in rejected)
            )
        if not valid:
            logger.error(f"All {len(items)} question(s) received from LLM were invalid for quiz {quiz.pk}")
            raise NoValidQuestions(
                "AI response parsed, but contained no valid questions."
                if items else "AI returned an empty list. No questions were generated."
            )
        if len(valid) > num_questions:
            logger.info(f"LLM returned {len(valid)} valid questions, keeping the first {num_questions}")
            valid = valid[:num_questions]

        created = question_bank.append_many(quiz.pk, valid)

    logger.info(f"Added {len(created)} questions to quiz {quiz.pk}")
    return GenerationResult(count=len(created), requested=num_questions, rejected=len(rejected))
