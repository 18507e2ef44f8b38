# decision_wizard/core/config.py
import logging
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Placeholder some build tools substitute for an unset variable
UNDEFINED_PLACEHOLDER = "undefined"


class Settings(BaseSettings):
    """Basic application settings"""
    APP_NAME: str = "Decision Wizard"
    DEBUG: bool = False

    # Generation backend
    API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("API_KEY", "OPENAI_API_KEY")
    )
    BASE_URL: Optional[str] = None
    QUESTION_MODEL: str = "gpt-4o-mini"
    ANALYSIS_MODEL: str = "gpt-4o"
    TEMPERATURE: float = 0.7
    REQUEST_TIMEOUT: Optional[float] = None

    # Wizard
    QUESTION_COUNT: int = 20
    RESPONSE_LANGUAGE: str = "English"

    # Logging; level falls back to DEBUG/INFO depending on DEBUG
    LOG_LEVEL: Optional[str] = None
    LOG_DIR: str = "logs"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 5

    # HTTP surface
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }


# Configuration as a module singleton
settings = Settings()


def is_credential_usable(value: Optional[str]) -> bool:
    """A credential counts as absent when unset, the 'undefined' placeholder, or blank."""
    if value is None:
        return False
    stripped = value.strip()
    return bool(stripped) and stripped != UNDEFINED_PLACEHOLDER


def validate_required_settings(current: Optional[Settings] = None) -> bool:
    """Check that required settings are present; warn but don't fail"""
    current = current or settings
    missing = []

    if not is_credential_usable(current.API_KEY):
        missing.append("API_KEY/OPENAI_API_KEY")

    if missing:
        logger.warning(f"Missing environment variables: {', '.join(missing)}")
        logger.warning("A key will have to be selected before questions can be generated.")
        return False

    return True
