import logging
from datetime import datetime

from django.http import HttpResponse
from django.utils import timezone

from . import availability, question_bank, responses, services
from .api import api_view, clean_form, read_json
from .forms import QuizCreationForm, QuizSettingsForm, ResponseSubmitForm

logger = logging.getLogger(__name__)


def _session_key(slug):
    return f"quiz:{slug}:session_start"


def _parse_iso(dt_str):
    if not dt_str:
        return None
    dt = datetime.fromisoformat(dt_str)
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


# -----------------------------
# Owner: quizzes
# -----------------------------
@api_view(methods=("GET", "POST"))
def quiz_collection(request):
    if request.method == "POST":
        data = clean_form(QuizCreationForm, read_json(request))
        quiz = services.create_quiz(request.user, data["name"], data["description"])
        return {"quiz": services.serialize_quiz(quiz)}
    return {"quizzes": [services.serialize_quiz(q) for q in services.list_user_quizzes(request.user)]}


@api_view(methods=("GET", "POST", "DELETE"))
def quiz_detail(request, quiz_id):
    if request.method == "DELETE":
        services.delete_quiz(request.user, quiz_id)
        return {"deleted": True}
    if request.method == "POST":
        data = clean_form(QuizSettingsForm, read_json(request))
        quiz = services.update_quiz(request.user, quiz_id, **data)
        return {"quiz": services.serialize_quiz(quiz)}
    return {"quiz": services.serialize_quiz(services.get_quiz(request.user, quiz_id))}


@api_view(methods=("POST",))
def toggle_status(request, quiz_id):
    return {"newStatus": services.toggle_status(request.user, quiz_id)}


# -----------------------------
# Owner: questions
# -----------------------------
@api_view(methods=("GET", "POST"))
def question_collection(request, quiz_id):
    if request.method == "POST":
        data = read_json(request)
        question = services.add_question(
            request.user, quiz_id,
            data.get("question"), data.get("selectOptions"), data.get("answer"),
        )
        return {"question": question_bank.serialize(question)}
    return {"questions": services.list_owner_questions(request.user, quiz_id)}


@api_view(methods=("POST", "DELETE"))
def question_detail(request, question_id):
    if request.method == "DELETE":
        services.delete_question(request.user, question_id)
        return {"deleted": True}
    data = read_json(request)
    question = services.update_question(
        request.user, question_id,
        data.get("question"), data.get("selectOptions"), data.get("answer"),
    )
    return {"question": question_bank.serialize(question)}


# -----------------------------
# Owner: responses and results
# -----------------------------
@api_view(methods=("GET",))
def response_list(request, quiz_id):
    return {"responses": responses.list_responses(request.user, quiz_id)}


@api_view(methods=("GET",))
def quiz_statistics(request, quiz_id):
    return {"statistics": responses.statistics(request.user, quiz_id).as_dict()}


# -----------------------------
# Public: taking a quiz
# -----------------------------
@api_view(methods=("GET",), public=True)
def public_quiz(request, slug):
    return {"quiz": services.serialize_quiz(services.get_quiz_by_slug(slug))}


@api_view(methods=("GET",), public=True)
def public_questions(request, slug):
    quiz = services.get_quiz_by_slug(slug)
    now = timezone.now()
    status = availability.for_quiz(quiz, now)

    remaining_seconds = None
    if status.available:
        key = _session_key(slug)
        started_at = _parse_iso(request.session.get(key))
        if started_at is None:
            started_at = now
            request.session[key] = now.isoformat()
        if quiz.time_limit_minutes:
            elapsed = (now - started_at).total_seconds()
            remaining_seconds = max(0, int(quiz.time_limit_minutes * 60 - elapsed))

    return {
        "availability": status.as_dict(),
        "timeLimitMinutes": quiz.time_limit_minutes,
        "remainingSeconds": remaining_seconds,
        "questions": question_bank.list_for_taker(quiz.pk),
    }


@api_view(methods=("POST",), public=True)
def submit_response(request, slug):
    data = read_json(request)
    cleaned = clean_form(ResponseSubmitForm, {"session_start_time": data.get("sessionStartTime")})
    key = _session_key(slug)
    session_start = cleaned["session_start_time"] or _parse_iso(request.session.get(key))

    response = responses.submit(slug, data.get("values"), session_start_time=session_start)
    request.session.pop(key, None)
    return {"responseId": response.pk}


# -----------------------------
# Results PDF
# -----------------------------
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@api_view(methods=("GET",))
def results_pdf(request, quiz_id):
    quiz = services.get_quiz(request.user, quiz_id)
    rows = responses.list_responses(request.user, quiz_id)
    stats = responses.statistics(request.user, quiz_id)

    resp = HttpResponse(content_type="application/pdf")
    resp["Content-Disposition"] = f'attachment; filename="quiz_{quiz.slug}_results.pdf"'

    p = canvas.Canvas(resp, pagesize=letter)
    p.setFont("Helvetica-Bold", 16)
    p.drawString(72, 760, f"Results - {quiz.name or 'Untitled quiz'} ({quiz.slug})")

    p.setFont("Helvetica", 11)
    average = "-" if stats.average_score is None else f"{stats.average_score:.2f}"
    median = "-" if stats.median_score is None else f"{stats.median_score:g}"
    p.drawString(72, 738, f"Responses: {stats.response_count}   Average: {average}   Median: {median}")
    p.drawString(72, 722, f"Perfect scores: {stats.perfect_scores}   Zero scores: {stats.zero_scores}")

    y = 694
    p.setFont("Helvetica", 12)
    for idx, row in enumerate(rows, start=1):
        line = f"{idx}. Response #{row['id']}  -  {row['score']} / {row['totalQuestions']} ({row['percentage']}%)"
        p.drawString(72, y, line)
        y -= 18
        if y < 72:
            p.showPage()
            p.setFont("Helvetica", 12)
            y = 760

    p.showPage()
    p.save()
    return resp
