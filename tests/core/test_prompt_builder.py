# tests/core/test_prompt_builder.py
"""
Tests for the question and analysis prompt builders.
"""

import pytest

from decision_wizard.core.exceptions import ValidationError
from decision_wizard.core.prompt_builder import (
    build_analysis_prompt,
    build_question_prompt,
    build_transcript,
)


@pytest.mark.unit
class TestQuestionPrompt:

    def test_contains_topic_and_count(self, prompt_manager):
        prompt = build_question_prompt("Buy a car or lease one?", 20, prompt_manager)

        assert '"Buy a car or lease one?"' in prompt
        assert "exactly 20 multiple-choice questions" in prompt
        assert "3 to 4" in prompt

    def test_topic_is_trimmed(self, prompt_manager):
        prompt = build_question_prompt("   Rent or buy?  ", prompt_manager=prompt_manager)
        assert '"Rent or buy?"' in prompt

    def test_custom_count(self, prompt_manager):
        assert "exactly 5" in build_question_prompt("Topic", 5, prompt_manager)

    @pytest.mark.parametrize("topic", ["", "  ", None])
    def test_blank_topic_rejected(self, prompt_manager, topic):
        with pytest.raises(ValidationError):
            build_question_prompt(topic, prompt_manager=prompt_manager)

    def test_deterministic(self, prompt_manager):
        assert build_question_prompt("Topic", 20, prompt_manager) == build_question_prompt("Topic", 20, prompt_manager)


@pytest.mark.unit
class TestAnalysisPrompt:

    def test_transcript_in_question_order(self, prompt_manager, question_factory):
        questions = question_factory(3)
        answers = {3: "Option C3", 1: "Option A1"}

        transcript = build_transcript(questions, answers, prompt_manager)

        assert transcript.splitlines() == [
            "Q: Question 1 about the decision? | A: Option A1",
            "Q: Question 2 about the decision? | A: (no answer)",
            "Q: Question 3 about the decision? | A: Option C3",
        ]

    def test_contains_topic_transcript_and_language(self, prompt_manager, question_factory):
        questions = question_factory(2)

        prompt = build_analysis_prompt(
            "Which bike?",
            questions,
            {1: "Option B1", 2: "Option A2"},
            "Korean",
            prompt_manager
        )

        assert '"Which bike?"' in prompt
        assert "Here are 2 questions" in prompt
        assert "Q: Question 2 about the decision? | A: Option A2" in prompt
        assert "in Korean" in prompt
        for field in ("finalRecommendation", "summary", "reasoning", "pros", "cons", "nextSteps"):
            assert field in prompt

    def test_blank_topic_rejected(self, prompt_manager, question_factory):
        with pytest.raises(ValidationError):
            build_analysis_prompt(" ", question_factory(1), {}, prompt_manager=prompt_manager)

    def test_no_questions(self, prompt_manager):
        prompt = build_analysis_prompt("Topic", [], {}, prompt_manager=prompt_manager)
        assert "Here are 0 questions" in prompt
