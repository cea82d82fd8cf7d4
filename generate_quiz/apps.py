from django.apps import AppConfig


class GenerateQuizConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "generate_quiz"
