"""Single-flight generation per quiz.

The flag lives on ``Quiz.generation_status`` and is flipped with a
conditional UPDATE, so the acquire is atomic across worker processes.
Release always runs, whatever the guarded block raises.
"""

import logging
from contextlib import contextmanager

from quizzes.exceptions import AlreadyInProgress
from quizzes.models import Quiz

logger = logging.getLogger(__name__)


def try_acquire(quiz_id):
    updated = Quiz.objects.filter(pk=quiz_id, generation_status=Quiz.IDLE).update(
        generation_status=Quiz.GENERATING
    )
    return updated == 1


def release(quiz_id):
    Quiz.objects.filter(pk=quiz_id).update(generation_status=Quiz.IDLE)


@contextmanager
def generation_guard(quiz_id):
    if not try_acquire(quiz_id):
        raise AlreadyInProgress("Question generation is already in progress for this quiz.")
    logger.info(f"Set generation_status for quiz {quiz_id} to 'generating'")
    try:
        yield
    finally:
        release(quiz_id)
        logger.info(f"Set generation_status for quiz {quiz_id} to 'idle'")
