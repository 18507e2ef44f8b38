# decision_wizard/core/flow_handlers.py
"""
Flow handlers - the backend work behind the two loading stages.

The engine only moves state; these handlers call the generation service and
translate its failures into what the user should read.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from decision_wizard.core.exceptions import (
    EmptyResponseError,
    InvalidCredentialError,
    MissingCredentialError,
    ResponseParseError,
    WizardError,
)
from decision_wizard.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from decision_wizard.models.flow_models import AnalysisResult, FlowStage, Question
from decision_wizard.models.wizard_state import WizardState
from decision_wizard.services.generation_service import GenerationService

logger = logging.getLogger(__name__)


@dataclass
class FailureNotice:
    """What the user sees after a failed backend call."""
    message: str
    needs_credential: bool = False


class FlowHandlers:
    """Runs the generation and analysis requests for the flow controller."""

    def __init__(
        self,
        generation_service: GenerationService,
        prompt_manager: Optional[PromptManager] = None
    ):
        self.generation_service = generation_service
        self.prompt_manager = prompt_manager or get_prompt_manager()

    async def handle_question_generation(self, state: WizardState) -> List[Question]:
        logger.info(f"Requesting questions for topic '{state.topic[:50]}'")
        return await self.generation_service.request_questions(state.topic)

    async def handle_analysis(self, state: WizardState) -> AnalysisResult:
        logger.info(f"Requesting analysis of {len(state.answers)}/{len(state.questions)} answers")
        # Copies keep the request independent of later state changes
        return await self.generation_service.request_analysis(
            state.topic,
            list(state.questions),
            dict(state.answers)
        )

    def describe_failure(self, error: Exception, stage: FlowStage) -> FailureNotice:
        """Map a failed request to a user-facing message."""
        pm = self.prompt_manager
        can_select = self.generation_service.credential_gate.can_select
        analyzing = stage == FlowStage.ANALYZING

        if isinstance(error, InvalidCredentialError):
            return FailureNotice(pm.get_prompt(PromptType.ERROR_INVALID_CREDENTIAL), needs_credential=can_select)

        if isinstance(error, MissingCredentialError):
            return FailureNotice(pm.get_prompt(PromptType.ERROR_MISSING_CREDENTIAL), needs_credential=can_select)

        if isinstance(error, EmptyResponseError):
            key = PromptType.ERROR_EMPTY_ANALYSIS if analyzing else PromptType.ERROR_EMPTY_RESPONSE
            return FailureNotice(pm.get_prompt(key))

        if isinstance(error, ResponseParseError):
            return FailureNotice(pm.get_prompt(PromptType.ERROR_PARSE))

        fallback = pm.get_prompt(
            PromptType.ERROR_ANALYSIS_GENERIC if analyzing else PromptType.ERROR_GENERIC
        )
        if isinstance(error, WizardError):
            return FailureNotice(error.message or fallback)
        # Not a backend rejection; keep internals out of the UI
        return FailureNotice(fallback)
