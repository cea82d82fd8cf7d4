from django.urls import path
from . import views

urlpatterns = [
    path("quizzes/<int:quiz_id>/generate/", views.generate, name="generate_questions"),
]
