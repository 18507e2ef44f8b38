# decision_wizard/models/flow_models.py

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FlowStage(str, Enum):
    START = "START"
    GENERATING_QUESTIONS = "GENERATING_QUESTIONS"
    ANSWERING = "ANSWERING"
    ANALYZING = "ANALYZING"
    RESULT = "RESULT"


class Question(BaseModel):
    """One multiple-choice question produced by the generation backend."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    text: str
    options: Tuple[str, ...] = Field(min_length=3, max_length=4)

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question text must not be blank")
        return value

    @field_validator("options")
    @classmethod
    def _options_distinct(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if any(not option.strip() for option in value):
            raise ValueError("options must not be blank")
        if len(set(value)) != len(value):
            raise ValueError("options must be distinct")
        return value


class AnalysisResult(BaseModel):
    """Structured recommendation returned for a topic and its answers."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    final_recommendation: str = Field(alias="finalRecommendation")
    summary: str
    reasoning: Tuple[str, ...]
    pros: Tuple[str, ...]
    cons: Tuple[str, ...]
    next_steps: Tuple[str, ...] = Field(alias="nextSteps")
