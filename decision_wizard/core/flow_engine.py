# decision_wizard/core/flow_engine.py
"""
Flow engine - FSM for the guided decision wizard.

Every stage change goes through an explicit transition table. Transitions may
carry a condition (checked against the state and the event context) and a
handler that applies the state changes belonging to that transition.
"""

from typing import Dict, List, Optional, Any, Callable, Tuple
from enum import Enum
from dataclasses import dataclass
import logging

from decision_wizard.models.flow_models import FlowStage
from decision_wizard.models.wizard_state import WizardState
from decision_wizard.core.exceptions import flow_error

logger = logging.getLogger(__name__)

TransitionHandler = Callable[[WizardState, Dict[str, Any]], None]
TransitionCondition = Callable[[WizardState, Dict[str, Any]], bool]


class FlowEvent(str, Enum):
    """Events that can trigger state transitions"""

    # User actions
    SUBMIT_TOPIC = "submit_topic"
    SELECT_OPTION = "select_option"
    ADVANCE = "advance"
    GO_BACK = "go_back"
    RESET = "reset"

    # Backend completions
    QUESTIONS_READY = "questions_ready"
    GENERATION_FAILED = "generation_failed"
    ANALYSIS_READY = "analysis_ready"
    ANALYSIS_FAILED = "analysis_failed"


@dataclass
class Transition:
    """Represents a state transition"""
    from_state: FlowStage
    event: FlowEvent
    to_state: FlowStage
    condition: Optional[TransitionCondition] = None
    handler: Optional[TransitionHandler] = None
    description: str = ""


class FlowEngine:
    """
    FSM driving START -> GENERATING_QUESTIONS -> ANSWERING -> ANALYZING -> RESULT.

    Failures fall back to START; RESET returns to START from anywhere.
    Several transitions may share a (state, event) key; the first one whose
    condition holds is taken.
    """

    def __init__(self):
        self.transitions: List[Transition] = []
        self._transition_map: Dict[Tuple[FlowStage, FlowEvent], List[Transition]] = {}

        self._setup_transitions()
        self._build_transition_map()

        logger.debug(f"FlowEngine initialized with {len(self.transitions)} transitions")

    def _setup_transitions(self):
        """Define all state transitions"""

        # ===========================================
        # TOPIC SUBMISSION
        # ===========================================

        self.add_transition(
            from_state=FlowStage.START,
            event=FlowEvent.SUBMIT_TOPIC,
            to_state=FlowStage.GENERATING_QUESTIONS,
            condition=self._has_topic,
            handler=self._handle_submit_topic,
            description="Non-blank topic -> generate questions"
        )

        # ===========================================
        # QUESTION GENERATION
        # ===========================================

        self.add_transition(
            from_state=FlowStage.GENERATING_QUESTIONS,
            event=FlowEvent.QUESTIONS_READY,
            to_state=FlowStage.ANSWERING,
            condition=self._has_questions,
            handler=self._handle_questions_ready,
            description="Questions received -> answer from the first one"
        )

        self.add_transition(
            from_state=FlowStage.GENERATING_QUESTIONS,
            event=FlowEvent.GENERATION_FAILED,
            to_state=FlowStage.START,
            handler=self._handle_failure,
            description="Generation failed -> back to start with an error"
        )

        # ===========================================
        # ANSWERING
        # ===========================================

        self.add_transition(
            from_state=FlowStage.ANSWERING,
            event=FlowEvent.SELECT_OPTION,
            to_state=FlowStage.ANSWERING,
            condition=self._is_current_option,
            handler=self._handle_select_option,
            description="Record the answer for the current question"
        )

        self.add_transition(
            from_state=FlowStage.ANSWERING,
            event=FlowEvent.ADVANCE,
            to_state=FlowStage.ANSWERING,
            condition=lambda state, ctx: state.has_current_answer and not state.is_last_question,
            handler=self._handle_advance,
            description="Answered, not last -> next question"
        )

        self.add_transition(
            from_state=FlowStage.ANSWERING,
            event=FlowEvent.ADVANCE,
            to_state=FlowStage.ANALYZING,
            condition=lambda state, ctx: state.has_current_answer and state.is_last_question,
            handler=self._handle_start_analysis,
            description="Answered last question -> analyze"
        )

        self.add_transition(
            from_state=FlowStage.ANSWERING,
            event=FlowEvent.GO_BACK,
            to_state=FlowStage.ANSWERING,
            condition=lambda state, ctx: state.current_index > 0,
            handler=self._handle_go_back,
            description="Previous question"
        )

        # ===========================================
        # ANALYSIS
        # ===========================================

        self.add_transition(
            from_state=FlowStage.ANALYZING,
            event=FlowEvent.ANALYSIS_READY,
            to_state=FlowStage.RESULT,
            condition=lambda state, ctx: ctx.get("result") is not None,
            handler=self._handle_analysis_ready,
            description="Analysis received -> show result"
        )

        self.add_transition(
            from_state=FlowStage.ANALYZING,
            event=FlowEvent.ANALYSIS_FAILED,
            to_state=FlowStage.START,
            handler=self._handle_failure,
            description="Analysis failed -> back to start with an error"
        )

        # ===========================================
        # UNIVERSAL RESET
        # ===========================================

        for stage in FlowStage:
            self.add_transition(
                from_state=stage,
                event=FlowEvent.RESET,
                to_state=FlowStage.START,
                handler=self._handle_reset,
                description=f"Reset from {stage.value} -> initial state"
            )

    # ===========================================
    # CONDITIONS
    # ===========================================

    @staticmethod
    def _has_topic(state: WizardState, context: Dict[str, Any]) -> bool:
        topic = context.get("topic")
        return isinstance(topic, str) and bool(topic.strip())

    @staticmethod
    def _has_questions(state: WizardState, context: Dict[str, Any]) -> bool:
        return bool(context.get("questions"))

    @staticmethod
    def _is_current_option(state: WizardState, context: Dict[str, Any]) -> bool:
        question = state.current_question
        return question is not None and context.get("option") in question.options

    # ===========================================
    # HANDLERS
    # ===========================================

    @staticmethod
    def _handle_submit_topic(state: WizardState, context: Dict[str, Any]) -> None:
        state.topic = context["topic"].strip()
        state.error = None
        state.result = None
        state.loading_message = context.get("loading_message")

    @staticmethod
    def _handle_questions_ready(state: WizardState, context: Dict[str, Any]) -> None:
        state.questions = list(context["questions"])
        state.answers = {}
        state.current_index = 0
        state.loading_message = None

    @staticmethod
    def _handle_select_option(state: WizardState, context: Dict[str, Any]) -> None:
        state.answers[state.current_question.id] = context["option"]

    @staticmethod
    def _handle_advance(state: WizardState, context: Dict[str, Any]) -> None:
        state.current_index += 1

    @staticmethod
    def _handle_go_back(state: WizardState, context: Dict[str, Any]) -> None:
        state.current_index -= 1

    @staticmethod
    def _handle_start_analysis(state: WizardState, context: Dict[str, Any]) -> None:
        state.loading_message = context.get("loading_message")

    @staticmethod
    def _handle_analysis_ready(state: WizardState, context: Dict[str, Any]) -> None:
        state.result = context["result"]
        state.loading_message = None

    @staticmethod
    def _handle_failure(state: WizardState, context: Dict[str, Any]) -> None:
        # Topic stays so the user can resubmit it
        state.questions = []
        state.answers = {}
        state.current_index = 0
        state.result = None
        state.loading_message = None
        state.error = context.get("error")
        if context.get("needs_credential"):
            state.needs_credential = True

    @staticmethod
    def _handle_reset(state: WizardState, context: Dict[str, Any]) -> None:
        state.topic = ""
        state.questions = []
        state.answers = {}
        state.current_index = 0
        state.result = None
        state.error = None
        state.loading_message = None

    # ===========================================
    # CORE FSM METHODS
    # ===========================================

    def add_transition(
        self,
        from_state: FlowStage,
        event: FlowEvent,
        to_state: FlowStage,
        condition: Optional[TransitionCondition] = None,
        handler: Optional[TransitionHandler] = None,
        description: str = ""
    ):
        """Add a new transition to the FSM"""
        self.transitions.append(Transition(
            from_state=from_state,
            event=event,
            to_state=to_state,
            condition=condition,
            handler=handler,
            description=description
        ))

    def _build_transition_map(self):
        """Build fast lookup map for transitions"""
        self._transition_map.clear()
        for transition in self.transitions:
            key = (transition.from_state, transition.event)
            self._transition_map.setdefault(key, []).append(transition)

    def get_valid_transitions(self, current_state: FlowStage) -> List[Transition]:
        """Get all transitions leaving the given state"""
        return [t for t in self.transitions if t.from_state == current_state]

    def _select_transition(
        self,
        state: WizardState,
        event: FlowEvent,
        context: Dict[str, Any]
    ) -> Optional[Transition]:
        for transition in self._transition_map.get((state.stage, event), []):
            if transition.condition is None or transition.condition(state, context):
                return transition
        return None

    def can_transition(
        self,
        state: WizardState,
        event: FlowEvent,
        context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Check whether the event would move the FSM from the current state"""
        return self._select_transition(state, event, context or {}) is not None

    def process_event(
        self,
        state: WizardState,
        event: FlowEvent,
        context: Optional[Dict[str, Any]] = None
    ) -> FlowStage:
        """
        Apply an event to the state.

        Args:
            state: Wizard state, mutated in place
            event: Event to process
            context: Event payload (topic, option, questions, result, error...)

        Returns:
            The new stage

        Raises:
            FlowError: If no transition applies
        """
        context = context or {}
        current_state = state.stage

        transition = self._select_transition(state, event, context)
        if transition is None:
            valid_events = sorted({t.event.value for t in self.get_valid_transitions(current_state)})
            logger.warning(f"Invalid transition: {current_state.value} + {event.value}. Valid events: {valid_events}")
            raise flow_error(
                f"Invalid transition: {current_state.value} + {event.value}",
                current_state=current_state.value
            )

        if transition.handler:
            transition.handler(state, context)
        state.stage = transition.to_state

        logger.info(f"Transition: {current_state.value} -> {transition.to_state.value} ({event.value})")
        return transition.to_state

    def get_flow_summary(self) -> Dict[str, Any]:
        """Summary of the FSM for debugging/monitoring"""
        states = {t.from_state for t in self.transitions} | {t.to_state for t in self.transitions}
        events = {t.event for t in self.transitions}

        return {
            "total_states": len(states),
            "total_events": len(events),
            "total_transitions": len(self.transitions),
            "states": sorted(s.value for s in states),
            "events": sorted(e.value for e in events),
            "transitions": [
                {
                    "from": t.from_state.value,
                    "event": t.event.value,
                    "to": t.to_state.value,
                    "description": t.description,
                    "conditional": t.condition is not None
                }
                for t in self.transitions
            ]
        }

    def validate_fsm(self) -> List[str]:
        """Validate the FSM for common issues"""
        issues = []

        reachable = {FlowStage.START}
        changed = True
        while changed:
            changed = False
            for transition in self.transitions:
                if transition.from_state in reachable and transition.to_state not in reachable:
                    reachable.add(transition.to_state)
                    changed = True

        unreachable = set(FlowStage) - reachable
        if unreachable:
            issues.append(f"Unreachable states: {sorted(s.value for s in unreachable)}")

        for stage in FlowStage:
            if (stage, FlowEvent.RESET) not in self._transition_map:
                issues.append(f"No reset from {stage.value}")

        return issues
