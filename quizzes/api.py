"""Glue between JSON views and the service layer."""

import json
import logging
from functools import wraps

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .exceptions import QuizForgeError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)


def api_view(methods=("GET",), public=False):
    """Wrap a view returning a dict into a JSON endpoint.

    ``QuizForgeError`` subclasses become ``{"ok": false, ...}`` bodies with the
    error's status. Non-public views require an authenticated user.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if request.method not in methods:
                return JsonResponse(
                    {"ok": False, "error": "method_not_allowed", "message": f"{request.method} not allowed."},
                    status=405,
                )
            try:
                if not public and not request.user.is_authenticated:
                    raise Unauthorized("You must be logged in.")
                result = view(request, *args, **kwargs)
            except QuizForgeError as e:
                if e.status >= 500:
                    logger.error(f"{view.__name__} failed: {e.code}: {e.message}")
                return JsonResponse(e.as_dict(), status=e.status)

            if isinstance(result, HttpResponse):
                return result
            payload = {"ok": True}
            payload.update(result or {})
            return JsonResponse(payload)

        return csrf_exempt(wrapper) if public else wrapper
    return decorator


def read_json(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (TypeError, ValueError):
        raise ValidationError("Request body must be valid JSON.")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def clean_form(form_class, data, files=None):
    form = form_class(data, files)
    if not form.is_valid():
        errors = {field: [str(m) for m in messages] for field, messages in form.errors.items()}
        raise ValidationError("Please fix the errors.", fields=errors)
    return form.cleaned_data
