"""Per-candidate validation of model-proposed questions.

A bad candidate is dropped, never the whole batch.
"""

from quizzes.exceptions import ValidationError
from quizzes.question_bank import clean_question


def validate_candidates(items):
    """Split ``items`` into ``(valid, rejected)``.

    ``valid`` holds cleaned ``(text, options, answer)`` tuples, ``rejected``
    holds ``(index, reason)`` pairs.
    """
    valid, rejected = [], []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            rejected.append((idx, "not an object"))
            continue
        try:
            valid.append(clean_question(
                item.get("question"),
                item.get("selectOptions"),
                item.get("answer"),
                dedupe=True,
            ))
        except ValidationError as e:
            rejected.append((idx, e.message))
    return valid, rejected
