# decision_wizard/core/prompt_builder.py
"""
Builds the two backend prompts: one asking for the questions about a topic and
one asking for a recommendation from the question/answer transcript.

Both functions are pure: they read their inputs and return a string.
"""
from typing import Mapping, Optional, Sequence

from decision_wizard.core.exceptions import validation_error
from decision_wizard.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from decision_wizard.models.flow_models import Question

DEFAULT_QUESTION_COUNT = 20
DEFAULT_LANGUAGE = "English"


def _require_topic(topic: str) -> str:
    if topic is None or not topic.strip():
        raise validation_error("Topic cannot be empty", field="topic", value=topic)
    return topic.strip()


def build_question_prompt(
    topic: str,
    question_count: int = DEFAULT_QUESTION_COUNT,
    prompt_manager: Optional[PromptManager] = None
) -> str:
    """Instruction asking for ``question_count`` multiple-choice questions about ``topic``."""
    pm = prompt_manager or get_prompt_manager()
    return pm.get_prompt(
        PromptType.QUESTIONS,
        topic=_require_topic(topic),
        question_count=question_count
    )


def build_transcript(
    questions: Sequence[Question],
    answers: Mapping[int, str],
    prompt_manager: Optional[PromptManager] = None
) -> str:
    """One line per question, pairing it with its answer or the unanswered marker."""
    pm = prompt_manager or get_prompt_manager()
    unanswered = pm.get_prompt(PromptType.UNANSWERED_MARKER)
    return "\n".join(
        pm.get_prompt(
            PromptType.TRANSCRIPT_LINE,
            question=question.text,
            answer=answers.get(question.id, unanswered)
        )
        for question in questions
    )


def build_analysis_prompt(
    topic: str,
    questions: Sequence[Question],
    answers: Mapping[int, str],
    language: str = DEFAULT_LANGUAGE,
    prompt_manager: Optional[PromptManager] = None
) -> str:
    """Instruction asking for a structured recommendation based on the transcript."""
    pm = prompt_manager or get_prompt_manager()
    return pm.get_prompt(
        PromptType.ANALYSIS,
        topic=_require_topic(topic),
        question_count=len(questions),
        transcript=build_transcript(questions, answers, pm),
        language=language
    )
