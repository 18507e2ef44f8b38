# tests/conftest.py
"""
Shared fixtures for decision wizard tests.

Mock-first: the generation backend is replaced by AsyncMocks or by a mocked
OpenAI client returning real ChatCompletion objects.
"""

import json
from typing import List
from unittest.mock import AsyncMock, Mock

import pytest
from openai.types.chat import ChatCompletion, ChatCompletionMessage
from openai.types.chat.chat_completion import Choice

from decision_wizard.core.credential_gate import CredentialGate, StaticCredentialProvider
from decision_wizard.core.flow_controller import DecisionFlowController
from decision_wizard.core.flow_handlers import FlowHandlers
from decision_wizard.core.prompt_manager import PromptManager
from decision_wizard.models.flow_models import AnalysisResult, Question
from decision_wizard.services.generation_service import GenerationConfig


def make_questions(count: int = 20) -> List[Question]:
    """Well-formed questions with ids 1..count"""
    return [
        Question(
            id=i,
            text=f"Question {i} about the decision?",
            options=(f"Option A{i}", f"Option B{i}", f"Option C{i}")
        )
        for i in range(1, count + 1)
    ]


def make_completion(content):
    """ChatCompletion with a single assistant message"""
    return ChatCompletion(
        id="test-id",
        object="chat.completion",
        created=1234567890,
        model="gpt-4o-mini",
        choices=[
            Choice(
                index=0,
                message=ChatCompletionMessage(role="assistant", content=content),
                finish_reason="stop"
            )
        ]
    )


def question_payload(count: int = 20) -> str:
    return json.dumps({
        "questions": [q.model_dump(mode="json") for q in make_questions(count)]
    })


ANALYSIS_PAYLOAD = {
    "finalRecommendation": "Take the job in Berlin",
    "summary": "The move fits your career goals and budget.",
    "reasoning": ["You value growth", "You are flexible on location"],
    "pros": ["Higher salary", "Larger team"],
    "cons": ["Higher rent"],
    "nextSteps": ["Negotiate the start date", "Look for a flat"]
}


@pytest.fixture
def sample_questions():
    return make_questions(20)


@pytest.fixture
def sample_analysis():
    return AnalysisResult.model_validate(ANALYSIS_PAYLOAD)


@pytest.fixture
def prompt_manager():
    pm = PromptManager()
    pm.load_prompts()
    return pm


@pytest.fixture
def credential_gate():
    return CredentialGate(StaticCredentialProvider("test-api-key"))


@pytest.fixture
def mock_openai_client():
    """Mocked AsyncOpenAI client answering with a 20-question payload"""
    client = Mock()
    client.chat = Mock()
    client.chat.completions = Mock()
    client.chat.completions.create = AsyncMock(return_value=make_completion(question_payload()))
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_generation_service(credential_gate, sample_questions, sample_analysis):
    """Generation service double with the real config and gate"""
    service = Mock()
    service.credential_gate = credential_gate
    service.config = GenerationConfig()
    service.request_questions = AsyncMock(return_value=sample_questions)
    service.request_analysis = AsyncMock(return_value=sample_analysis)
    return service


@pytest.fixture
def controller(mock_generation_service, prompt_manager):
    handlers = FlowHandlers(mock_generation_service, prompt_manager=prompt_manager)
    return DecisionFlowController(handlers, prompt_manager=prompt_manager)


@pytest.fixture
def question_factory():
    return make_questions


@pytest.fixture
def completion_factory():
    return make_completion


@pytest.fixture
def analysis_payload():
    return dict(ANALYSIS_PAYLOAD)
