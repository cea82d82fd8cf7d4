import json
import logging

from generate_quiz import extraction, llm
from quizzes import ratelimit, responses, scoring
from quizzes.exceptions import ValidationError
from quizzes.services import get_owned_quiz

from .models import Analysis
from .schema import Performance, empty_payload, validate_payload

logger = logging.getLogger(__name__)

RATE_LIMIT_ACTION = "response_analysis"


def _percentage(correct, total):
    return round(correct / total * 100, 1) if total else 0


def build_prompt(questions, quiz_responses):
    formatted_questions = [
        {
            "questionId": q.pk,
            "questionText": q.text,
            "options": list(q.select_options),
            "correctAnswer": q.answer,
            "order": q.order,
            "type": "mcq",
        }
        for q in questions
    ]
    by_id = {q.pk: q for q in questions}
    formatted_responses = []
    for response in quiz_responses:
        submitted = []
        for value in response.values:
            question = by_id.get(scoring.coerce_question_id(value.get("questionId")))
            submitted.append({
                "questionId": value.get("questionId"),
                "questionText": value.get("question"),
                "options": list(question.select_options) if question else [],
                "correctAnswer": question.answer if question else "N/A",
                "userSelectedOption": value.get("userSelectedOption"),
            })
        formatted_responses.append({"responseId": response.pk, "submittedAnswers": submitted})

    return f"""
You are an expert educational analyst. Analyze the following quiz responses based on the provided questions.
Use the match between "userSelectedOption" and "correctAnswer" to compute correctness.

Your analysis should:
- Calculate individual correctness (correct count, total, and percentage).
- Identify weak and strong topics per individual.
- Suggest focus areas for each respondent.
- Summarize collective performance (total correct, percentage).
- Highlight common weak areas and overall suggestions for improvement.

Return ONLY a JSON object matching this exact structure:

```json
{{
  "individualAnalysis": [
    {{
      "responseId": "number (use the provided responseId)",
      "performanceByTopic": {{"correct": "number", "total": "number", "percentage": "number (1 decimal)"}},
      "weakTopics": ["string"],
      "strongTopics": ["string"],
      "individualFocusAreas": ["string"]
    }}
  ],
  "collectiveAnalysis": {{
    "topicPerformanceSummary": {{"correct": "number", "total": "number", "percentage": "number (1 decimal)"}},
    "collectiveWeaknesses": ["string"],
    "collectiveFocusAreas": ["string"]
  }}
}}
```

Questions:
{json.dumps(formatted_questions, indent=2)}

Responses:
{json.dumps(formatted_responses, indent=2)}
""".strip()


def merge_scores(payload, questions, quiz_responses):
    """Overwrite the model's numbers with deterministic scores.

    Entries naming a response that does not belong to the quiz are dropped.
    """
    results = {str(r.pk): (r.pk, scoring.score(questions, r.values)) for r in quiz_responses}

    kept = []
    for entry in payload.individual_analysis:
        match = results.get(str(entry.response_id))
        if match is None:
            logger.warning(f"Dropping analysis entry for unknown response {entry.response_id!r}")
            continue
        pk, result = match
        entry.response_id = pk
        entry.performance_by_topic = Performance(
            correct=result.score,
            total=result.total_questions,
            percentage=_percentage(result.score, result.total_questions),
        )
        kept.append(entry)
    payload.individual_analysis = kept

    correct = sum(result.score for _, result in results.values())
    total = sum(result.total_questions for _, result in results.values())
    payload.collective_analysis.topic_performance_summary = Performance(
        correct=correct, total=total, percentage=_percentage(correct, total),
    )
    return payload


def _upsert(quiz, payload):
    analysis, created = Analysis.objects.update_or_create(
        quiz=quiz, defaults={"payload": payload.to_json()}
    )
    logger.info(f"{'Added new' if created else 'Updated'} analysis for quiz {quiz.pk}")
    return analysis


def generate_analysis(user, quiz_id):
    quiz = get_owned_quiz(user, quiz_id)
    ratelimit.check(RATE_LIMIT_ACTION, user)

    quiz_responses = responses.list_for_quiz(quiz.pk)
    if not quiz_responses:
        logger.info(f"No responses found for quiz {quiz.pk}. Storing an empty analysis.")
        return _upsert(quiz, empty_payload())

    questions = list(quiz.questions.all())
    if not questions:
        raise ValidationError("No questions found for this quiz. Cannot generate analysis.")

    raw = llm.generate_content(build_prompt(questions, quiz_responses))
    payload = validate_payload(extraction.parse_json_object(raw), raw)
    return _upsert(quiz, merge_scores(payload, questions, quiz_responses))


def get_analysis(user, quiz_id):
    quiz = get_owned_quiz(user, quiz_id)
    return Analysis.objects.filter(quiz=quiz).first()


def delete_analysis(user, quiz_id):
    quiz = get_owned_quiz(user, quiz_id)
    deleted, _ = Analysis.objects.filter(quiz=quiz).delete()
    if not deleted:
        logger.warning(f"Analysis record not found for quiz {quiz.pk}. Nothing to delete.")
    return bool(deleted)


def serialize(analysis):
    if analysis is None:
        return None
    return {
        "quizId": analysis.quiz_id,
        "analysis": analysis.payload,
        "updatedAt": analysis.updated_at.isoformat() if analysis.updated_at else None,
    }
