from django.db import models

from quizzes.models import Quiz


class Analysis(models.Model):
    """The latest qualitative analysis of a quiz's responses, replaced wholesale on regeneration."""

    quiz = models.OneToOneField(Quiz, on_delete=models.CASCADE, related_name="analysis")
    payload = models.JSONField()
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Analysis for {self.quiz.slug}"
