from django.conf import settings
from django.db import models


class Quiz(models.Model):
    IDLE = "idle"
    GENERATING = "generating"
    GENERATION_STATUS_CHOICES = [
        (IDLE, "Idle"),
        (GENERATING, "Generating"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owned_quizzes"
    )
    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    slug = models.CharField(max_length=64, unique=True)
    accepting_responses = models.BooleanField(
        default=True,
        help_text="Manual override: when off, no responses are accepted"
    )
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)
    time_limit_minutes = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Optional per-session time limit in minutes"
    )
    generation_status = models.CharField(
        max_length=16,
        choices=GENERATION_STATUS_CHOICES,
        default=IDLE
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name or 'Untitled quiz'} ({self.slug})"


class Question(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="questions")
    text = models.TextField()
    select_options = models.JSONField(default=list)
    answer = models.TextField()
    order = models.PositiveIntegerField()

    class Meta:
        ordering = ["order"]
        indexes = [models.Index(fields=["quiz", "order"], name="question_quiz_order_idx")]

    def __str__(self):
        return f"{self.order}. {self.text[:50]}"


class QuizResponse(models.Model):
    """A submitted answer set.

    ``values`` holds ``{"questionId", "question", "userSelectedOption"}`` dicts.
    Question ids are plain integers rather than foreign keys so a response
    survives edits and deletions in the question bank.
    """

    quiz = models.ForeignKey(Quiz, on_delete=models.PROTECT, related_name="responses")
    slug = models.CharField(max_length=64)
    values = models.JSONField(default=list)
    question_count = models.PositiveIntegerField(default=0)
    submitted_at = models.DateTimeField(auto_now_add=True)
    session_start_time = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["submitted_at", "id"]
        indexes = [models.Index(fields=["quiz"], name="response_quiz_idx")]

    def __str__(self):
        return f"Response {self.pk} to {self.slug}"


class TokenBucket(models.Model):
    action = models.CharField(max_length=64)
    identity = models.CharField(max_length=255)
    tokens = models.FloatField()
    updated_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["action", "identity"], name="unique_bucket_per_identity")
        ]

    def __str__(self):
        return f"{self.action}:{self.identity} ({self.tokens:.2f})"
