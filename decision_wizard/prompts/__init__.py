"""Prompts package - centralized prompt management"""

# Import all prompt modules for PromptManager
from . import generation_prompts
from . import message_prompts

__all__ = [
    'generation_prompts',
    'message_prompts'
]
