# tests/core/test_flow_engine.py
"""
Tests for the FlowEngine - FSM mechanics of the decision wizard.

Tests cover:
- Transition table completeness
- Conditional transitions (advance, go back, select)
- State changes applied by transition handlers
- Invalid transitions
"""

import pytest

from decision_wizard.core.exceptions import FlowError
from decision_wizard.core.flow_engine import FlowEngine, FlowEvent, Transition
from decision_wizard.models.flow_models import FlowStage
from decision_wizard.models.wizard_state import WizardState


@pytest.fixture
def engine():
    return FlowEngine()


@pytest.fixture
def answering_state(question_factory):
    return WizardState(
        stage=FlowStage.ANSWERING,
        topic="Which laptop should I buy?",
        questions=question_factory(3)
    )


# ===========================================
# UNIT TESTS - FSM MECHANICS
# ===========================================

@pytest.mark.unit
class TestFlowEngineFSM:
    """Test core FSM structure"""

    def test_key_transitions_defined(self, engine):
        expected = [
            (FlowStage.START, FlowEvent.SUBMIT_TOPIC),
            (FlowStage.GENERATING_QUESTIONS, FlowEvent.QUESTIONS_READY),
            (FlowStage.GENERATING_QUESTIONS, FlowEvent.GENERATION_FAILED),
            (FlowStage.ANSWERING, FlowEvent.SELECT_OPTION),
            (FlowStage.ANSWERING, FlowEvent.ADVANCE),
            (FlowStage.ANSWERING, FlowEvent.GO_BACK),
            (FlowStage.ANALYZING, FlowEvent.ANALYSIS_READY),
            (FlowStage.ANALYZING, FlowEvent.ANALYSIS_FAILED),
        ]
        for key in expected:
            assert key in engine._transition_map, f"Missing transition: {key[0].value} + {key[1].value}"

    def test_reset_from_every_stage(self, engine):
        for stage in FlowStage:
            transitions = engine._transition_map[(stage, FlowEvent.RESET)]
            assert transitions[0].to_state == FlowStage.START

    def test_advance_has_two_conditional_targets(self, engine):
        targets = {t.to_state for t in engine._transition_map[(FlowStage.ANSWERING, FlowEvent.ADVANCE)]}
        assert targets == {FlowStage.ANSWERING, FlowStage.ANALYZING}

    def test_get_valid_transitions(self, engine):
        transitions = engine.get_valid_transitions(FlowStage.START)
        assert all(isinstance(t, Transition) for t in transitions)
        assert {t.event for t in transitions} == {FlowEvent.SUBMIT_TOPIC, FlowEvent.RESET}

    def test_validate_fsm_passes(self, engine):
        assert engine.validate_fsm() == []

    def test_flow_summary(self, engine):
        summary = engine.get_flow_summary()
        assert summary["total_states"] == len(FlowStage)
        assert summary["total_transitions"] == len(engine.transitions)
        assert "submit_topic" in summary["events"]


# ===========================================
# TRANSITIONS
# ===========================================

@pytest.mark.unit
class TestTransitions:

    def test_submit_topic_sets_topic_and_clears_error(self, engine):
        state = WizardState(error="old error")

        stage = engine.process_event(
            state,
            FlowEvent.SUBMIT_TOPIC,
            {"topic": "  Where to go on holiday?  ", "loading_message": "Generating..."}
        )

        assert stage == FlowStage.GENERATING_QUESTIONS
        assert state.stage == FlowStage.GENERATING_QUESTIONS
        assert state.topic == "Where to go on holiday?"
        assert state.error is None
        assert state.loading_message == "Generating..."

    @pytest.mark.parametrize("topic", ["", "   ", None])
    def test_blank_topic_rejected(self, engine, topic):
        state = WizardState()

        assert not engine.can_transition(state, FlowEvent.SUBMIT_TOPIC, {"topic": topic})
        with pytest.raises(FlowError):
            engine.process_event(state, FlowEvent.SUBMIT_TOPIC, {"topic": topic})
        assert state.stage == FlowStage.START

    def test_questions_ready_starts_at_first_question(self, engine, question_factory):
        state = WizardState(stage=FlowStage.GENERATING_QUESTIONS, answers={99: "stale"}, current_index=4)

        engine.process_event(state, FlowEvent.QUESTIONS_READY, {"questions": question_factory(20)})

        assert state.stage == FlowStage.ANSWERING
        assert state.current_index == 0
        assert state.answers == {}
        assert len(state.questions) == 20
        assert state.loading_message is None

    def test_questions_ready_without_questions_rejected(self, engine):
        state = WizardState(stage=FlowStage.GENERATING_QUESTIONS)
        with pytest.raises(FlowError):
            engine.process_event(state, FlowEvent.QUESTIONS_READY, {"questions": []})

    def test_select_option_records_answer(self, engine, answering_state):
        engine.process_event(answering_state, FlowEvent.SELECT_OPTION, {"option": "Option B1"})

        assert answering_state.answers == {1: "Option B1"}
        assert answering_state.current_index == 0

    def test_select_unknown_option_rejected(self, engine, answering_state):
        with pytest.raises(FlowError):
            engine.process_event(answering_state, FlowEvent.SELECT_OPTION, {"option": "Nope"})
        assert answering_state.answers == {}

    def test_advance_requires_answer(self, engine, answering_state):
        assert not engine.can_transition(answering_state, FlowEvent.ADVANCE)
        with pytest.raises(FlowError):
            engine.process_event(answering_state, FlowEvent.ADVANCE)
        assert answering_state.current_index == 0

    def test_advance_moves_to_next_question(self, engine, answering_state):
        answering_state.answers[1] = "Option A1"

        stage = engine.process_event(answering_state, FlowEvent.ADVANCE)

        assert stage == FlowStage.ANSWERING
        assert answering_state.current_index == 1

    def test_advance_from_last_question_analyzes(self, engine, answering_state):
        answering_state.current_index = 2
        answering_state.answers[3] = "Option C3"

        stage = engine.process_event(answering_state, FlowEvent.ADVANCE, {"loading_message": "Analysing..."})

        assert stage == FlowStage.ANALYZING
        assert answering_state.current_index == 2
        assert answering_state.loading_message == "Analysing..."

    def test_go_back_not_available_on_first_question(self, engine, answering_state):
        assert not engine.can_transition(answering_state, FlowEvent.GO_BACK)

    def test_go_back_keeps_answers(self, engine, answering_state):
        answering_state.current_index = 2
        answering_state.answers = {1: "Option A1", 2: "Option B2"}

        engine.process_event(answering_state, FlowEvent.GO_BACK)

        assert answering_state.current_index == 1
        assert answering_state.answers == {1: "Option A1", 2: "Option B2"}

    def test_analysis_ready_stores_result(self, engine, sample_analysis):
        state = WizardState(stage=FlowStage.ANALYZING, loading_message="Analysing...")

        engine.process_event(state, FlowEvent.ANALYSIS_READY, {"result": sample_analysis})

        assert state.stage == FlowStage.RESULT
        assert state.result == sample_analysis
        assert state.loading_message is None

    @pytest.mark.parametrize("stage, event", [
        (FlowStage.GENERATING_QUESTIONS, FlowEvent.GENERATION_FAILED),
        (FlowStage.ANALYZING, FlowEvent.ANALYSIS_FAILED),
    ])
    def test_failure_returns_to_start(self, engine, question_factory, stage, event):
        state = WizardState(
            stage=stage,
            topic="Topic",
            questions=question_factory(2),
            answers={1: "Option A1"},
            current_index=1
        )

        engine.process_event(state, event, {"error": "Boom", "needs_credential": True})

        assert state.stage == FlowStage.START
        assert state.error == "Boom"
        assert state.needs_credential is True
        assert state.topic == "Topic"
        assert state.questions == []
        assert state.answers == {}
        assert state.current_index == 0

    def test_reset_restores_initial_values(self, engine, answering_state, sample_analysis):
        answering_state.answers = {1: "Option A1"}
        answering_state.current_index = 1
        answering_state.error = "error"
        answering_state.result = sample_analysis

        engine.process_event(answering_state, FlowEvent.RESET)

        fresh = WizardState()
        assert answering_state.model_dump() == fresh.model_dump()

    @pytest.mark.parametrize("stage, event", [
        (FlowStage.START, FlowEvent.ADVANCE),
        (FlowStage.GENERATING_QUESTIONS, FlowEvent.SUBMIT_TOPIC),
        (FlowStage.ANALYZING, FlowEvent.SUBMIT_TOPIC),
        (FlowStage.RESULT, FlowEvent.GO_BACK),
    ])
    def test_invalid_transitions_raise(self, engine, stage, event):
        state = WizardState(stage=stage)

        with pytest.raises(FlowError) as exc_info:
            engine.process_event(state, event, {"topic": "x"})

        assert exc_info.value.current_state == stage.value
        assert state.stage == stage
