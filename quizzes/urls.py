from django.urls import path
from . import views

urlpatterns = [
    path("quizzes/", views.quiz_collection, name="quiz_collection"),
    path("quizzes/<int:quiz_id>/", views.quiz_detail, name="quiz_detail"),
    path("quizzes/<int:quiz_id>/toggle/", views.toggle_status, name="quiz_toggle_status"),
    path("quizzes/<int:quiz_id>/questions/", views.question_collection, name="question_collection"),
    path("quizzes/<int:quiz_id>/responses/", views.response_list, name="response_list"),
    path("quizzes/<int:quiz_id>/statistics/", views.quiz_statistics, name="quiz_statistics"),
    path("quizzes/<int:quiz_id>/results.pdf", views.results_pdf, name="quiz_results_pdf"),
    path("questions/<int:question_id>/", views.question_detail, name="question_detail"),
    path("f/<str:slug>/", views.public_quiz, name="public_quiz"),
    path("f/<str:slug>/questions/", views.public_questions, name="public_questions"),
    path("f/<str:slug>/responses/", views.submit_response, name="submit_response"),
]
