"""Error taxonomy shared by every quiz operation.

Each error knows the HTTP status and the short machine code the JSON views
report, so callers can raise them anywhere below a view and let
``quizzes.api.api_view`` render them.
"""


class QuizForgeError(Exception):
    status = 400
    code = "error"

    def __init__(self, message="", **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def as_dict(self):
        payload = {"ok": False, "error": self.code, "message": self.message}
        payload.update(self.extra)
        return payload


class Unauthorized(QuizForgeError):
    status = 401
    code = "unauthorized"


class Forbidden(Unauthorized):
    status = 403
    code = "forbidden"


class NotFound(QuizForgeError):
    status = 404
    code = "not_found"


class ValidationError(QuizForgeError):
    status = 400
    code = "validation_error"


class QuizClosed(ValidationError):
    status = 403
    code = "quiz_closed"

    def __init__(self, message="", reason="closed"):
        super().__init__(message, reason=reason)
        self.reason = reason


class TimeLimitExceeded(ValidationError):
    status = 403
    code = "time_limit_exceeded"


class RateLimited(QuizForgeError):
    status = 429
    code = "rate_limited"

    def __init__(self, message="", retry_after=None):
        super().__init__(message, retry_after=retry_after)
        self.retry_after = retry_after


class AlreadyInProgress(QuizForgeError):
    status = 409
    code = "already_in_progress"


class UnsupportedContent(QuizForgeError):
    status = 415
    code = "unsupported_content"


class MalformedModelOutput(QuizForgeError):
    status = 502
    code = "malformed_model_output"

    def __init__(self, message="", excerpt=""):
        super().__init__(message, excerpt=excerpt)
        self.excerpt = excerpt


class SchemaValidationError(MalformedModelOutput):
    code = "schema_validation_error"

    def __init__(self, message="", excerpt="", violations=None):
        super().__init__(message, excerpt=excerpt)
        self.violations = violations or []
        self.extra["violations"] = self.violations


class NoValidQuestions(QuizForgeError):
    status = 422
    code = "no_valid_questions"


class ProviderError(QuizForgeError):
    """Upstream model failure; ``provider_status`` is the provider's HTTP-like status."""

    code = "provider_error"

    def __init__(self, message="", provider_status=None):
        super().__init__(message, provider_status=provider_status)
        self.provider_status = provider_status

    @property
    def is_transient(self):
        if self.provider_status is None:
            return True
        return self.provider_status == 429 or self.provider_status >= 500

    @property
    def status(self):
        return 503 if self.is_transient else 400
