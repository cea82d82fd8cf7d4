"""Collective statistics over every response to a quiz.

Nothing here is stored; results are recomputed from the current question
bank on each call.
"""

import statistics
from dataclasses import dataclass, field
from typing import Optional

from . import scoring


@dataclass
class QuestionStats:
    question_id: object
    text: str
    correct_count: int = 0
    total_count: int = 0
    stale: bool = False

    @property
    def correct_rate(self):
        if not self.total_count:
            return 0.0
        return self.correct_count / self.total_count

    def as_dict(self):
        return {
            "questionId": self.question_id,
            "question": self.text,
            "correctCount": self.correct_count,
            "totalCount": self.total_count,
            "correctRate": round(self.correct_rate, 3),
            "stale": self.stale,
        }


@dataclass
class Aggregate:
    total_questions: int
    response_count: int
    score_distribution: dict
    average_score: Optional[float]
    median_score: Optional[float]
    perfect_scores: int
    zero_scores: int
    question_stats: list = field(default_factory=list)
    scores: list = field(default_factory=list)

    def as_dict(self):
        return {
            "totalQuestions": self.total_questions,
            "responseCount": self.response_count,
            "scoreDistribution": {str(k): v for k, v in self.score_distribution.items()},
            "averageScore": self.average_score,
            "medianScore": self.median_score,
            "perfectScores": self.perfect_scores,
            "zeroScores": self.zero_scores,
            "questionStats": [s.as_dict() for s in self.question_stats],
        }


def aggregate(questions, responses):
    """Aggregate ``responses`` (objects with a ``values`` list) over ``questions``."""
    questions = list(questions)
    total_questions = len(questions)
    by_id = {q.pk: q for q in questions}

    results = [scoring.score(questions, r.values) for r in responses]
    scores = [r.score for r in results]

    distribution = {s: 0 for s in range(total_questions + 1)}
    for s in scores:
        distribution[s] = distribution.get(s, 0) + 1

    stats = {}
    for result in results:
        for answer in result.answers:
            entry = stats.get(answer.question_id)
            if entry is None:
                entry = QuestionStats(question_id=answer.question_id, text=answer.question_text)
                stats[answer.question_id] = entry
            entry.total_count += 1
            if answer.is_correct:
                entry.correct_count += 1
            if answer.missing_question:
                # Keep the last text a taker saw for questions deleted since.
                entry.stale = True
                if answer.question_text:
                    entry.text = answer.question_text
            else:
                entry.text = by_id[answer.question_id].text

    return Aggregate(
        total_questions=total_questions,
        response_count=len(scores),
        score_distribution=distribution,
        average_score=statistics.mean(scores) if scores else None,
        median_score=statistics.median(scores) if scores else None,
        perfect_scores=sum(1 for s in scores if s == total_questions) if total_questions else 0,
        zero_scores=sum(1 for s in scores if s == 0),
        question_stats=list(stats.values()),
        scores=results,
    )
