"""Best-effort recovery of a JSON literal from free-form model text.

The fallback chain is: a ```json fenced block, then the span between the first
opening and last closing bracket. Anything else is a terminal failure.
"""

import json
import re

from django.conf import settings

from quizzes.exceptions import MalformedModelOutput

FENCED_BLOCK = re.compile(r"```(?:json|JSON)\s*([\s\S]*?)\s*```")


def excerpt(text):
    text = text or ""
    limit = settings.QUIZFORGE_ERROR_EXCERPT_CHARS
    return text if len(text) <= limit else text[:limit] + "..."


def _extract_literal(text, opener, closer):
    cleaned = (text or "").strip()
    match = FENCED_BLOCK.search(cleaned)
    if match and match.group(1):
        return match.group(1).strip()

    first = cleaned.find(opener)
    last = cleaned.rfind(closer)
    if first != -1 and last != -1 and first < last:
        return cleaned[first:last + 1]

    raise MalformedModelOutput(
        f"Could not find a JSON {'array' if opener == '[' else 'object'} in the AI response.",
        excerpt=excerpt(cleaned),
    )


def extract_array_literal(text):
    return _extract_literal(text, "[", "]")


def extract_object_literal(text):
    return _extract_literal(text, "{", "}")


def _loads(literal):
    try:
        return json.loads(literal)
    except ValueError as e:
        raise MalformedModelOutput(
            f"Failed to process AI response: {e}",
            excerpt=excerpt(literal),
        )


def parse_json_array(text):
    data = _loads(extract_array_literal(text))
    if not isinstance(data, list):
        raise MalformedModelOutput("AI did not return a valid list of questions.", excerpt=excerpt(text))
    return data


def parse_json_object(text):
    data = _loads(extract_object_literal(text))
    if not isinstance(data, dict):
        raise MalformedModelOutput("AI did not return a JSON object.", excerpt=excerpt(text))
    return data
