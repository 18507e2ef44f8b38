# decision_wizard/services/generation_service.py
"""
Generation service for the decision wizard.

Async-only wrapper around an OpenAI-compatible chat completions API with:
- Structured (JSON schema) output for questions and analysis
- Credential checks through the CredentialGate on every request
- Consistent error classification
- Single-shot requests (no internal retries)
"""
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from openai import AsyncOpenAI, AuthenticationError, NotFoundError
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from decision_wizard.core.config import Settings, settings as default_settings
from decision_wizard.core.credential_gate import (
    CredentialGate,
    SettingsCredentialProvider,
    StaticCredentialProvider,
)
from decision_wizard.core.exceptions import (
    EmptyResponseError,
    GenerationServiceError,
    InvalidCredentialError,
    ResponseParseError,
    SchemaMismatchError,
    UnclassifiedGenerationError,
    config_error,
)
from decision_wizard.core.prompt_builder import build_analysis_prompt, build_question_prompt
from decision_wizard.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from decision_wizard.core.service_base import BaseService, ServiceConfig
from decision_wizard.models.flow_models import AnalysisResult, Question
from decision_wizard.models.response_schemas import (
    ANALYSIS_SCHEMA,
    ANALYSIS_SCHEMA_NAME,
    QUESTION_LIST_SCHEMA,
    QUESTION_LIST_SCHEMA_NAME,
)

logger = logging.getLogger(__name__)

# Error text some backends return for a key without a valid project or billing
INVALID_CREDENTIAL_PHRASE = "Requested entity was not found."

_QUESTION_LIST = TypeAdapter(List[Question])


@dataclass
class GenerationConfig(ServiceConfig):
    """Configuration for the generation service"""
    question_model: str = "gpt-4o-mini"
    analysis_model: str = "gpt-4o"
    base_url: Optional[str] = None
    temperature: float = 0.7
    timeout: Optional[float] = None
    max_retries: int = 0
    question_count: int = 20
    response_language: str = "English"

    @classmethod
    def from_settings(cls, current: Settings) -> "GenerationConfig":
        return cls(
            question_model=current.QUESTION_MODEL,
            analysis_model=current.ANALYSIS_MODEL,
            base_url=current.BASE_URL,
            temperature=current.TEMPERATURE,
            timeout=current.REQUEST_TIMEOUT,
            question_count=current.QUESTION_COUNT,
            response_language=current.RESPONSE_LANGUAGE,
        )


class GenerationService(BaseService[GenerationConfig]):
    """
    Client for the two wizard requests: generate questions and analyze answers.

    The API key is never read here directly; every request asks the
    CredentialGate for one and rebuilds the client when the key changed.
    """

    def __init__(
        self,
        credential_gate: CredentialGate,
        config: Optional[GenerationConfig] = None,
        prompt_manager: Optional[PromptManager] = None
    ):
        if config is None:
            config = GenerationConfig.from_settings(default_settings)

        super().__init__(config, logger)
        self.credential_gate = credential_gate
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self._active_key: Optional[str] = None

    def _validate_config(self) -> None:
        super()._validate_config()

        if not self._active_key:
            raise config_error("API key is required before the client can be created", component="api_key")

        if self.config.temperature < 0 or self.config.temperature > 2:
            raise config_error("Temperature must be between 0 and 2", component="temperature")

        if self.config.question_count < 1:
            raise config_error("Question count must be at least 1", component="question_count")

    async def _initialize_client(self) -> AsyncOpenAI:
        client_kwargs: Dict[str, Any] = {
            "api_key": self._active_key,
            "max_retries": self.config.max_retries,
        }
        if self.config.base_url:
            client_kwargs["base_url"] = self.config.base_url
        if self.config.timeout is not None:
            client_kwargs["timeout"] = self.config.timeout
        return AsyncOpenAI(**client_kwargs)

    async def _cleanup(self) -> None:
        await self._client.close()

    async def _prepare_client(self) -> None:
        """Get a key from the gate and make sure the client uses it."""
        api_key = await self.credential_gate.ensure_credential()
        if self._initialized and api_key == self._active_key:
            return
        if self._initialized:
            self.logger.info("API key changed, rebuilding client")
            await self.shutdown()
        self._active_key = api_key
        await self.initialize()

    @staticmethod
    def _is_credential_rejection(error: Exception) -> bool:
        if isinstance(error, (AuthenticationError, NotFoundError)):
            return True
        return INVALID_CREDENTIAL_PHRASE in str(error)

    async def _classify_failure(
        self,
        error: Exception,
        model: str,
        operation: str
    ) -> GenerationServiceError:
        if self._is_credential_rejection(error):
            await self.credential_gate.handle_rejection(self._active_key)
            await self.shutdown()
            return InvalidCredentialError(
                "Backend rejected the API key",
                model=model,
                operation=operation,
                original_error=error
            )

        message = getattr(error, "message", None) or str(error)
        self.logger.error(f"{operation} failed: {type(error).__name__}: {message}")
        return UnclassifiedGenerationError(
            message,
            model=model,
            operation=operation,
            original_error=error
        )

    async def _generate_json(
        self,
        prompt: str,
        *,
        model: str,
        schema_name: str,
        schema: Dict[str, Any],
        operation: str
    ) -> Any:
        """Send one prompt with a declared output schema and decode the JSON reply."""
        await self._prepare_client()

        params = {
            "model": model,
            "messages": [
                {"role": "system", "content": self.prompt_manager.get_prompt(PromptType.SYSTEM)},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                },
            },
        }

        try:
            self.logger.debug(f"{operation}: calling model {model}")
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            failure = await self._classify_failure(e, model, operation)
            raise failure from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise EmptyResponseError(
                "Empty completion returned from API",
                model=model,
                operation=operation
            )

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            self.logger.error(f"{operation}: response is not JSON ({e}): {content[:200]!r}")
            raise ResponseParseError(
                f"Failed to parse JSON response: {e}",
                model=model,
                operation=operation,
                original_error=e
            ) from e

    def _parse_questions(self, payload: Any) -> List[Question]:
        items = payload.get("questions") if isinstance(payload, dict) else payload
        try:
            questions = _QUESTION_LIST.validate_python(items)
        except PydanticValidationError as e:
            self.logger.error(f"Question payload does not match schema ({e.error_count()} errors): {str(items)[:200]!r}")
            raise SchemaMismatchError(
                "Question list does not match the declared schema",
                model=self.config.question_model,
                operation="request_questions",
                original_error=e
            ) from e

        if not questions:
            raise SchemaMismatchError(
                "Question list is empty",
                model=self.config.question_model,
                operation="request_questions"
            )

        ids = [question.id for question in questions]
        if len(set(ids)) != len(ids):
            raise SchemaMismatchError(
                "Question ids are not unique",
                model=self.config.question_model,
                operation="request_questions",
                details={"ids": ids}
            )

        return questions

    async def request_questions(self, topic: str) -> List[Question]:
        """
        Ask the backend for the multiple-choice questions about a topic.

        Raises:
            MissingCredentialError / InvalidCredentialError: key problems
            EmptyResponseError: backend returned no text
            ResponseParseError / SchemaMismatchError: unusable payload
            UnclassifiedGenerationError: any other backend failure
        """
        prompt = build_question_prompt(topic, self.config.question_count, self.prompt_manager)
        payload = await self._generate_json(
            prompt,
            model=self.config.question_model,
            schema_name=QUESTION_LIST_SCHEMA_NAME,
            schema=QUESTION_LIST_SCHEMA,
            operation="request_questions"
        )
        questions = self._parse_questions(payload)

        if len(questions) != self.config.question_count:
            self.logger.warning(
                f"Asked for {self.config.question_count} questions, received {len(questions)}"
            )

        self.logger.info(f"Generated {len(questions)} questions")
        return questions

    async def request_analysis(
        self,
        topic: str,
        questions: Sequence[Question],
        answers: Mapping[int, str]
    ) -> AnalysisResult:
        """Ask the backend for a structured recommendation. Same failure modes as request_questions."""
        prompt = build_analysis_prompt(
            topic,
            questions,
            answers,
            self.config.response_language,
            self.prompt_manager
        )
        payload = await self._generate_json(
            prompt,
            model=self.config.analysis_model,
            schema_name=ANALYSIS_SCHEMA_NAME,
            schema=ANALYSIS_SCHEMA,
            operation="request_analysis"
        )

        try:
            result = AnalysisResult.model_validate(payload)
        except PydanticValidationError as e:
            self.logger.error(f"Analysis payload does not match schema ({e.error_count()} errors): {str(payload)[:200]!r}")
            raise SchemaMismatchError(
                "Analysis does not match the declared schema",
                model=self.config.analysis_model,
                operation="request_analysis",
                original_error=e
            ) from e

        self.logger.info("Analysis received")
        return result

    async def health_check(self) -> Dict[str, Any]:
        """Send a minimal completion and report availability and response time."""
        try:
            start_time = time.time()
            await self._prepare_client()
            await self.client.chat.completions.create(
                model=self.config.question_model,
                messages=[{"role": "user", "content": "Respond with OK"}],
                temperature=0,
                max_tokens=5
            )
            response_time_ms = int((time.time() - start_time) * 1000)

            return {
                "healthy": True,
                "status": "connected",
                "details": {
                    "model": self.config.question_model,
                    "response_time_ms": response_time_ms,
                    "credential_state": self.credential_gate.state.value
                }
            }

        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "details": {
                    "error": str(e),
                    "model": self.config.question_model,
                    "credential_state": self.credential_gate.state.value
                }
            }

    def get_metrics(self) -> Dict[str, Any]:
        metrics = super().get_metrics()
        metrics.update({
            "question_model": self.config.question_model,
            "analysis_model": self.config.analysis_model,
            "temperature": self.config.temperature,
            "question_count": self.config.question_count
        })
        return metrics


async def create_generation_service(
    api_key: Optional[str] = None,
    **kwargs
) -> GenerationService:
    """
    Create a generation service with a ready client.

    Args:
        api_key: API key (uses settings if not provided)
        **kwargs: GenerationConfig fields
    """
    if api_key is not None:
        provider = StaticCredentialProvider(api_key)
    else:
        provider = SettingsCredentialProvider(default_settings)

    service = GenerationService(CredentialGate(provider), GenerationConfig(**kwargs))
    await service._prepare_client()
    return service
