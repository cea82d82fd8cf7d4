import logging

from quizzes.api import api_view, clean_form, read_json

from .forms import QuestionGenerationForm
from .pipeline import generate_questions

logger = logging.getLogger(__name__)


@api_view(methods=("POST",))
def generate(request, quiz_id):
    data = clean_form(QuestionGenerationForm, read_json(request))
    if data["source_type"] == "url":
        result = generate_questions(request.user, quiz_id, data["num_questions"], url=data["url"])
    else:
        result = generate_questions(request.user, quiz_id, data["num_questions"], file_id=data["file_id"])
    return result.as_dict()
