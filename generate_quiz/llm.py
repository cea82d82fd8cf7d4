"""Gemini access with API-key rotation.

``generate_content`` is the single seam to the language model: it returns
the model's raw text or raises ``ProviderError``.
"""

import logging
import random

import google.generativeai as genai
from django.conf import settings
from google.api_core import exceptions as google_exceptions

from quizzes.exceptions import ProviderError

logger = logging.getLogger(__name__)


def get_gemini_model(api_key):
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(settings.GEMINI_MODEL)


def _provider_status(exc):
    code = getattr(exc, "code", None)
    try:
        return int(code)
    except (TypeError, ValueError):
        return None


def _to_provider_error(exc):
    status = _provider_status(exc)
    if status == 429:
        message = "Rate limit exceeded when calling the AI model. Please try again later."
    elif status is not None and 400 <= status < 500:
        message = f"AI model received a bad request (Status {status}). Check file format or prompt. Error detail: {exc}"
    elif status is not None and status >= 500:
        message = f"AI model service is currently experiencing issues (Status {status}). Please try again later."
    else:
        message = f"Failed to get a response from the AI service: {exc}"
    return ProviderError(message, provider_status=status)


def generate_content(prompt, attachment=None):
    """Send ``prompt`` (plus an optional ``{"mime_type", "data"}`` part) to Gemini.

    Keys are tried in random order; a 429 on one key moves on to the next.
    """
    keys = list(settings.GEMINI_API_KEYS)
    if not keys:
        logger.error("No Gemini API keys configured.")
        raise ProviderError("AI service configuration error. Please contact support.", provider_status=500)
    random.shuffle(keys)

    parts = [prompt]
    if attachment is not None:
        parts.append(attachment)

    last_error = None
    for attempt, key in enumerate(keys, start=1):
        try:
            response = get_gemini_model(key).generate_content(parts)
            return response.text or ""
        except google_exceptions.GoogleAPICallError as e:
            last_error = _to_provider_error(e)
            if last_error.provider_status == 429 and attempt < len(keys):
                logger.warning(f"Rate limit hit on Gemini key {attempt}/{len(keys)}, rotating")
                continue
            logger.error(f"Gemini API Error: {e}")
            raise last_error
        except ValueError as e:
            # Raised by ``response.text`` when the candidate was blocked.
            logger.error(f"Gemini returned no usable text: {e}")
            raise ProviderError(f"AI model returned no usable text: {e}", provider_status=400)
    raise last_error
