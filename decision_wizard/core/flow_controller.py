# decision_wizard/core/flow_controller.py
"""
Decision flow controller - the interface the presentation layer talks to.

Owns the single WizardState, turns user actions and backend completions into
FSM events and keeps the two loading stages exclusive: while a request is in
flight the engine rejects new submissions.
"""

from typing import Any, Dict, Optional
import logging

from decision_wizard.core.exceptions import WizardError, flow_error, validation_error
from decision_wizard.core.flow_engine import FlowEngine, FlowEvent
from decision_wizard.core.flow_handlers import FlowHandlers
from decision_wizard.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from decision_wizard.models.flow_models import FlowStage
from decision_wizard.models.wizard_state import WizardState

logger = logging.getLogger(__name__)


class DecisionFlowController:
    """
    Drives the user through START -> GENERATING_QUESTIONS -> ANSWERING ->
    ANALYZING -> RESULT.

    Backend failures never escape: they put the flow back to START with a
    message in ``state.error``. Invalid user actions raise FlowError or
    ValidationError and leave the state untouched.
    """

    def __init__(
        self,
        flow_handlers: FlowHandlers,
        flow_engine: Optional[FlowEngine] = None,
        prompt_manager: Optional[PromptManager] = None,
        state: Optional[WizardState] = None
    ):
        self.handlers = flow_handlers
        self.flow_engine = flow_engine or FlowEngine()
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.state = state or WizardState()
        # Bumped on reset so late backend results are dropped
        self._epoch = 0
        # At most one backend call at a time, even across a reset
        self._in_flight = False

    @property
    def credential_gate(self):
        return self.handlers.generation_service.credential_gate

    # ===========================================
    # CREDENTIALS
    # ===========================================

    async def check_credential(self) -> bool:
        """Startup probe; flags the state when the user has to pick a key first."""
        if await self.credential_gate.needs_selection():
            self.state.needs_credential = True
        return self.state.needs_credential

    async def open_credential_dialog(self) -> None:
        """Ask the host for a key and continue as if the selection succeeded."""
        if self.credential_gate.can_select:
            await self.credential_gate.selector.open_select_key()
        self.state.needs_credential = False

    def credential_selected(self) -> None:
        self.state.needs_credential = False

    # ===========================================
    # TOPIC / QUESTION GENERATION
    # ===========================================

    async def submit_topic(self, topic: str) -> WizardState:
        """
        Start a decision: generate questions for the topic.

        Raises:
            ValidationError: blank topic
            FlowError: not in START, or a request dropped by reset is still running
        """
        if topic is None or not topic.strip():
            raise validation_error("Topic cannot be empty", field="topic", value=topic)
        if self._in_flight:
            raise flow_error("A previous request is still running", current_state=self.state.stage.value)

        loading = self.prompt_manager.get_prompt(
            PromptType.LOADING_QUESTIONS,
            question_count=self.handlers.generation_service.config.question_count
        )
        self.flow_engine.process_event(
            self.state,
            FlowEvent.SUBMIT_TOPIC,
            {"topic": topic, "loading_message": loading}
        )
        epoch = self._epoch

        self._in_flight = True
        try:
            questions = await self.handlers.handle_question_generation(self.state)
        except Exception as e:
            if epoch != self._epoch:
                logger.info("Dropping failed question request after reset")
                return self.state
            self._fail(e, FlowEvent.GENERATION_FAILED, FlowStage.GENERATING_QUESTIONS)
            return self.state
        finally:
            self._in_flight = False

        if epoch != self._epoch:
            logger.info("Dropping question result after reset")
            return self.state

        self.flow_engine.process_event(self.state, FlowEvent.QUESTIONS_READY, {"questions": questions})
        return self.state

    # ===========================================
    # ANSWERING
    # ===========================================

    def select_option(self, option: str) -> WizardState:
        """Record the answer for the current question."""
        question = self.state.current_question
        if self.state.stage == FlowStage.ANSWERING and question is not None and option not in question.options:
            raise validation_error("Option does not belong to the current question", field="option", value=option)

        self.flow_engine.process_event(self.state, FlowEvent.SELECT_OPTION, {"option": option})
        return self.state

    @property
    def can_advance(self) -> bool:
        return self.flow_engine.can_transition(self.state, FlowEvent.ADVANCE)

    async def advance(self) -> WizardState:
        """
        Next question, or the analysis after the last one.

        Raises:
            FlowError: the current question has no answer yet
        """
        loading = None
        if self.state.is_last_question:
            loading = self.prompt_manager.get_prompt(PromptType.LOADING_ANALYSIS)

        stage = self.flow_engine.process_event(
            self.state,
            FlowEvent.ADVANCE,
            {"loading_message": loading}
        )
        if stage == FlowStage.ANALYZING:
            await self._analyze()
        return self.state

    def go_back(self) -> WizardState:
        """Previous question; a no-op on the first one."""
        if self.state.stage == FlowStage.ANSWERING and self.state.current_index == 0:
            return self.state
        self.flow_engine.process_event(self.state, FlowEvent.GO_BACK)
        return self.state

    # ===========================================
    # ANALYSIS
    # ===========================================

    async def _analyze(self) -> None:
        epoch = self._epoch
        self._in_flight = True
        try:
            result = await self.handlers.handle_analysis(self.state)
        except Exception as e:
            if epoch != self._epoch:
                logger.info("Dropping failed analysis after reset")
                return
            self._fail(e, FlowEvent.ANALYSIS_FAILED, FlowStage.ANALYZING)
            return
        finally:
            self._in_flight = False

        if epoch != self._epoch:
            logger.info("Dropping analysis result after reset")
            return

        self.flow_engine.process_event(self.state, FlowEvent.ANALYSIS_READY, {"result": result})

    # ===========================================
    # RESET / ERRORS
    # ===========================================

    def reset(self) -> WizardState:
        """
        Back to the initial state from anywhere.

        A running backend call is not cancelled: its outcome is dropped and
        new topics are refused until it settles.
        """
        self._epoch += 1
        self.flow_engine.process_event(self.state, FlowEvent.RESET)
        return self.state

    def dismiss_error(self) -> WizardState:
        self.state.error = None
        return self.state

    def _fail(self, error: Exception, event: FlowEvent, stage: FlowStage) -> None:
        if isinstance(error, WizardError):
            logger.error(f"{event.value}: {error}")
        else:
            logger.error(f"{event.value}: unexpected {type(error).__name__}", exc_info=error)

        notice = self.handlers.describe_failure(error, stage)
        self.flow_engine.process_event(
            self.state,
            event,
            {"error": notice.message, "needs_credential": notice.needs_credential}
        )

    # ===========================================
    # PRESENTATION
    # ===========================================

    def snapshot(self) -> Dict[str, Any]:
        """Everything the presentation layer needs to render the current stage."""
        state = self.state
        question = state.current_question
        return {
            "stage": state.stage.value,
            "topic": state.topic,
            "loading": state.is_loading,
            "busy": self._in_flight,
            "loading_message": state.loading_message,
            "error": state.error,
            "needs_credential": state.needs_credential,
            "question_count": len(state.questions),
            "current_index": state.current_index,
            "progress": state.progress(),
            "current_question": question.model_dump(mode="json") if question else None,
            "current_answer": state.current_answer,
            "can_advance": self.can_advance,
            "can_go_back": state.stage == FlowStage.ANSWERING and state.current_index > 0,
            "is_last_question": state.is_last_question,
            "answers": {str(k): v for k, v in state.answers.items()},
            "result": state.result.model_dump(by_alias=True, mode="json") if state.result else None,
        }
