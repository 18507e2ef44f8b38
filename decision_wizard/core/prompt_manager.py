# decision_wizard/core/prompt_manager.py
"""
Centralized prompt management for the decision wizard.

Keeps every template the wizard sends to the backend or shows to the user in
one registry that supports:
- Organized prompt storage by category
- Variable substitution with missing-variable checks
- Prompt versioning
"""
from typing import Dict, Any, Optional, List
from enum import Enum
from dataclasses import dataclass
import logging
import re

from decision_wizard.core.exceptions import PromptError

logger = logging.getLogger(__name__)


class PromptCategory(str, Enum):
    """Categories for organizing prompts"""
    GENERATION = "generation"
    SYSTEM = "system"
    MESSAGE = "message"


class PromptType(str, Enum):
    """Enum for all prompt types - maps to prompt keys"""

    # Backend prompts
    QUESTIONS = "generation.questions"
    ANALYSIS = "generation.analysis"
    TRANSCRIPT_LINE = "generation.transcript.line"
    UNANSWERED_MARKER = "generation.unanswered.marker"
    SYSTEM = "system.decision.coach"

    # Loading messages
    LOADING_QUESTIONS = "message.loading.questions"
    LOADING_ANALYSIS = "message.loading.analysis"

    # Error messages
    ERROR_INVALID_CREDENTIAL = "message.error.invalid.credential"
    ERROR_MISSING_CREDENTIAL = "message.error.missing.credential"
    ERROR_EMPTY_RESPONSE = "message.error.empty.response"
    ERROR_EMPTY_ANALYSIS = "message.error.empty.analysis"
    ERROR_PARSE = "message.error.parse"
    ERROR_GENERIC = "message.error.generic"
    ERROR_ANALYSIS_GENERIC = "message.error.analysis.generic"


@dataclass
class Prompt:
    """Represents a single prompt template"""
    key: str
    template: str
    category: PromptCategory
    description: str = ""
    variables: List[str] = None
    version: str = "1.0"

    def __post_init__(self):
        if self.variables is None:
            self.variables = self._extract_variables()

    def _extract_variables(self) -> List[str]:
        """Extract {variable} names from the template"""
        return sorted(set(re.findall(r'\{(\w+)\}', self.template)))

    def format(self, **kwargs) -> str:
        """
        Format the prompt with provided variables.

        Raises:
            PromptError: If required variables are missing
        """
        missing = set(self.variables) - set(kwargs.keys())
        if missing:
            raise PromptError(
                prompt_type=self.key,
                message=f"Missing required variables: {sorted(missing)}",
                details={"missing_variables": sorted(missing)}
            )

        try:
            return self.template.format(**kwargs)
        except (KeyError, IndexError) as e:
            raise PromptError(
                prompt_type=self.key,
                message=f"Error formatting prompt: {e}",
                details={"error": str(e)}
            ) from e


class PromptManager:
    """
    Centralized prompt registry.

    Prompts are defined in the ``decision_wizard.prompts`` modules and
    registered here under dotted keys (see PromptType).
    """

    def __init__(self):
        self.prompts: Dict[str, Prompt] = {}
        self._loaded = False

    def get_prompt(self, prompt_type, **kwargs) -> str:
        """Format a prompt addressed by PromptType or by raw key."""
        key = prompt_type.value if hasattr(prompt_type, 'value') else str(prompt_type)
        return self.get(key, **kwargs)

    def load_prompts(self):
        """Register all prompts from the prompt modules (idempotent)."""
        if self._loaded:
            logger.debug("Prompts already loaded")
            return

        self._define_prompts()

        self._loaded = True
        logger.info(f"Loaded {len(self.prompts)} prompts")

    def _define_prompts(self):
        from decision_wizard.prompts import generation_prompts, message_prompts

        self.add_prompt(Prompt(
            key=PromptType.QUESTIONS.value,
            template=generation_prompts.QUESTION_TEMPLATE,
            category=PromptCategory.GENERATION,
            description="Asks for the multiple-choice questions about a topic"
        ))
        self.add_prompt(Prompt(
            key=PromptType.ANALYSIS.value,
            template=generation_prompts.ANALYSIS_TEMPLATE,
            category=PromptCategory.GENERATION,
            description="Asks for a structured recommendation from the answer transcript"
        ))
        self.add_prompt(Prompt(
            key=PromptType.TRANSCRIPT_LINE.value,
            template=generation_prompts.TRANSCRIPT_LINE_TEMPLATE,
            category=PromptCategory.GENERATION
        ))
        self.add_prompt(Prompt(
            key=PromptType.UNANSWERED_MARKER.value,
            template=generation_prompts.UNANSWERED_MARKER,
            category=PromptCategory.GENERATION
        ))
        self.add_prompt(Prompt(
            key=PromptType.SYSTEM.value,
            template=generation_prompts.SYSTEM_TEMPLATE,
            category=PromptCategory.SYSTEM
        ))

        # User-facing messages: LOADING_X -> message.loading.x
        for name in dir(message_prompts):
            value = getattr(message_prompts, name)
            if isinstance(value, str) and name.isupper() and not name.startswith('_'):
                key = f"message.{'.'.join(name.lower().split('_'))}"
                self.add_prompt(Prompt(
                    key=key,
                    template=value,
                    category=PromptCategory.MESSAGE,
                    description=f"Auto-imported from {message_prompts.__name__}.{name}"
                ))

    def add_prompt(self, prompt: Prompt):
        """Add a prompt to the manager"""
        if prompt.key in self.prompts:
            logger.warning(f"Overwriting existing prompt: {prompt.key}")

        self.prompts[prompt.key] = prompt

    def get(self, key: str, **kwargs) -> str:
        """
        Get a formatted prompt by key.

        Raises:
            PromptError: If prompt not found or formatting fails
        """
        if not self._loaded:
            self.load_prompts()

        if key not in self.prompts:
            raise PromptError(
                prompt_type=key,
                message=f"Prompt not found: {key}",
                details={"available_keys": list(self.prompts.keys())}
            )

        prompt = self.prompts[key]

        if not prompt.variables and not kwargs:
            return prompt.template

        return prompt.format(**kwargs)

    def list_prompts(self, category: Optional[PromptCategory] = None) -> List[str]:
        """List all available prompt keys, optionally filtered by category."""
        if not self._loaded:
            self.load_prompts()

        if category:
            return [
                key for key, prompt in self.prompts.items()
                if prompt.category == category
            ]

        return list(self.prompts.keys())

    def get_prompt_info(self, key: str) -> Dict[str, Any]:
        """Get information about a prompt."""
        if not self._loaded:
            self.load_prompts()

        if key not in self.prompts:
            raise PromptError(
                prompt_type=key,
                message=f"Prompt not found: {key}"
            )

        prompt = self.prompts[key]
        return {
            "key": prompt.key,
            "category": prompt.category.value,
            "description": prompt.description,
            "variables": prompt.variables,
            "version": prompt.version,
            "template_preview": prompt.template[:100] + "..." if len(prompt.template) > 100 else prompt.template
        }


# Global instance for easy access
_prompt_manager = None


def get_prompt_manager() -> PromptManager:
    """Get the global PromptManager instance"""
    global _prompt_manager
    if _prompt_manager is None:
        _prompt_manager = PromptManager()
        _prompt_manager.load_prompts()
    return _prompt_manager
