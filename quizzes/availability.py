"""Whether a quiz can accept a response at a given instant."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

OPEN = "open"
CLOSED = "closed"
NOT_STARTED = "not_started"
ENDED = "ended"


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: str
    message: str

    def as_dict(self):
        return {"available": self.available, "reason": self.reason, "message": self.message}


def evaluate(accepting_responses: bool,
             start_time: Optional[datetime],
             end_time: Optional[datetime],
             now: datetime) -> Availability:
    # The manual flag wins over any timestamps.
    if not accepting_responses:
        return Availability(False, CLOSED, "This quiz is currently not accepting responses.")
    if start_time is not None and now < start_time:
        return Availability(False, NOT_STARTED, f"This quiz is not open yet. It opens on {start_time.isoformat()}.")
    if end_time is not None and now > end_time:
        return Availability(False, ENDED, f"This quiz closed on {end_time.isoformat()}.")
    return Availability(True, OPEN, "This quiz is accepting responses.")


def is_available(accepting_responses: bool,
                 start_time: Optional[datetime],
                 end_time: Optional[datetime],
                 now: datetime) -> bool:
    return evaluate(accepting_responses, start_time, end_time, now).available


def for_quiz(quiz, now: Optional[datetime] = None) -> Availability:
    return evaluate(quiz.accepting_responses, quiz.start_time, quiz.end_time, now or timezone.now())
