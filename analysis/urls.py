from django.urls import path
from . import views

urlpatterns = [
    path("quizzes/<int:quiz_id>/analysis/", views.quiz_analysis, name="quiz_analysis"),
]
