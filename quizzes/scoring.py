"""Deterministic scoring of one response against a question-bank snapshot.

The denominator is the size of the bank at read time, not at submission,
so editing the bank changes historical scores on the next read.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class AnswerResult:
    question_id: object
    question_text: str
    selected_option: str
    correct_answer: Optional[str]
    is_correct: bool
    missing_question: bool = False

    def as_dict(self):
        return {
            "questionId": self.question_id,
            "question": self.question_text,
            "userSelectedOption": self.selected_option,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
            "missingQuestion": self.missing_question,
        }


@dataclass
class ScoreResult:
    score: int
    total_questions: int
    answers: list = field(default_factory=list)

    @property
    def percentage(self):
        if not self.total_questions:
            return 0.0
        return round(self.score / self.total_questions * 100, 1)

    def as_dict(self):
        return {
            "score": self.score,
            "totalQuestions": self.total_questions,
            "percentage": self.percentage,
            "answers": [a.as_dict() for a in self.answers],
        }


def normalize(option):
    return (option or "").strip().lower()


def parse_question_id(value):
    """Return ``value`` as an int id, or None unless it is an int or a digit string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdecimal():
        return int(value.strip())
    return None


def coerce_question_id(value):
    qid = parse_question_id(value)
    return value if qid is None else qid


def answers_match(selected, answer):
    return normalize(selected) == normalize(answer)


def score(questions, values):
    """Score ``values`` (a response's answer list) against ``questions``."""
    by_id = {q.pk: q for q in questions}
    seen = set()
    total = 0
    answers = []

    for value in values:
        qid = coerce_question_id(value.get("questionId"))
        if qid in seen:
            continue
        seen.add(qid)

        selected = value.get("userSelectedOption") or ""
        question = by_id.get(qid)
        if question is None:
            answers.append(AnswerResult(
                question_id=qid,
                question_text=value.get("question") or "",
                selected_option=selected,
                correct_answer=None,
                is_correct=False,
                missing_question=True,
            ))
            continue

        is_correct = answers_match(selected, question.answer)
        if is_correct:
            total += 1
        answers.append(AnswerResult(
            question_id=qid,
            question_text=question.text,
            selected_option=selected,
            correct_answer=question.answer,
            is_correct=is_correct,
        ))

    return ScoreResult(score=total, total_questions=len(by_id), answers=answers)
