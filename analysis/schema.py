"""Declarative schema for the analysis payload returned by the model."""

from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from generate_quiz.extraction import excerpt
from quizzes.exceptions import SchemaValidationError

Number = Union[StrictInt, StrictFloat]


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Performance(_Schema):
    correct: Number
    total: Number
    percentage: Number


class IndividualAnalysis(_Schema):
    response_id: Union[StrictStr, StrictInt] = Field(alias="responseId")
    performance_by_topic: Performance = Field(alias="performanceByTopic")
    weak_topics: List[StrictStr] = Field(alias="weakTopics")
    strong_topics: List[StrictStr] = Field(alias="strongTopics")
    individual_focus_areas: List[StrictStr] = Field(alias="individualFocusAreas")


class CollectiveAnalysis(_Schema):
    topic_performance_summary: Performance = Field(alias="topicPerformanceSummary")
    collective_weaknesses: List[StrictStr] = Field(alias="collectiveWeaknesses")
    collective_focus_areas: List[StrictStr] = Field(alias="collectiveFocusAreas")


class AnalysisPayload(_Schema):
    individual_analysis: List[IndividualAnalysis] = Field(alias="individualAnalysis")
    collective_analysis: CollectiveAnalysis = Field(alias="collectiveAnalysis")

    def to_json(self):
        return self.model_dump(mode="json", by_alias=True)


def empty_payload():
    return AnalysisPayload(
        individual_analysis=[],
        collective_analysis=CollectiveAnalysis(
            topic_performance_summary=Performance(correct=0, total=0, percentage=0),
            collective_weaknesses=[],
            collective_focus_areas=[],
        ),
    )


def validate_payload(data, raw_text=""):
    """Return a typed ``AnalysisPayload`` or raise ``SchemaValidationError`` listing every violation."""
    try:
        return AnalysisPayload.model_validate(data)
    except PydanticValidationError as e:
        violations = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise SchemaValidationError(
            f"AI service returned data in an unexpected format ({len(violations)} violation(s)).",
            excerpt=excerpt(raw_text),
            violations=violations,
        )
