# decision_wizard/core/credential_gate.py
"""
Credential gate - makes sure a usable API key exists before and while the
generation backend is called.

The key comes from an injected CredentialProvider. A hosting environment may
additionally offer a way to let the user pick a key (HostCredentialSelector);
without one, credential problems surface to the user directly.
"""
from enum import Enum
from typing import Iterable, List, Optional, Protocol, runtime_checkable
import logging

from decision_wizard.core.config import Settings, is_credential_usable
from decision_wizard.core.exceptions import MissingCredentialError, validation_error

logger = logging.getLogger(__name__)


class CredentialState(str, Enum):
    CREDENTIAL_PRESENT = "credential_present"
    CREDENTIAL_MISSING = "credential_missing"


@runtime_checkable
class CredentialProvider(Protocol):
    def get_credential(self) -> Optional[str]:
        ...


@runtime_checkable
class HostCredentialSelector(Protocol):
    available: bool

    async def has_selected_key(self) -> bool:
        ...

    async def open_select_key(self) -> None:
        ...


class SettingsCredentialProvider:
    """Reads the key from application settings on every request."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def get_credential(self) -> Optional[str]:
        return self.settings.API_KEY


class StaticCredentialProvider:
    """Holds a key passed in explicitly (tests, scripts)."""

    def __init__(self, credential: Optional[str] = None):
        self.credential = credential

    def get_credential(self) -> Optional[str]:
        return self.credential


class CredentialChain:
    """First provider with a usable key wins."""

    def __init__(self, providers: Iterable[CredentialProvider]):
        self.providers: List[CredentialProvider] = list(providers)

    def get_credential(self) -> Optional[str]:
        for provider in self.providers:
            credential = provider.get_credential()
            if is_credential_usable(credential):
                return credential
        return None


class NullCredentialSelector:
    """Default when the host offers no key selection."""
    available = False

    async def has_selected_key(self) -> bool:
        return False

    async def open_select_key(self) -> None:
        return None


class InteractiveCredentialHost:
    """
    Key selection driven by the front end.

    Opening selection only raises ``selection_requested``; the page notices it,
    asks the user for a key and hands it back through ``submit_key``. Also acts
    as a CredentialProvider for the submitted key.
    """
    available = True

    def __init__(self):
        self._selected_key: Optional[str] = None
        self.selection_requested = False

    def get_credential(self) -> Optional[str]:
        return self._selected_key

    async def has_selected_key(self) -> bool:
        return is_credential_usable(self._selected_key)

    async def open_select_key(self) -> None:
        logger.info("Requesting key selection from the front end")
        self._selected_key = None
        self.selection_requested = True

    def submit_key(self, key: Optional[str]) -> None:
        if not is_credential_usable(key):
            raise validation_error("API key cannot be empty", field="api_key")
        self._selected_key = key.strip()
        self.selection_requested = False
        logger.info("API key selected by the user")


class CredentialGate:
    """
    Two-state gate in front of every generation request.

    ``ensure_credential`` returns a usable key, asking the host selector for
    one when none is configured. ``handle_rejection`` is called when the
    backend refuses the key and asks the host for a new one. Recovery is best
    effort; the caller still reports the failure.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        selector: Optional[HostCredentialSelector] = None
    ):
        self.provider = provider
        self.selector = selector or NullCredentialSelector()
        self.state = CredentialState.CREDENTIAL_MISSING

    @property
    def can_select(self) -> bool:
        return bool(getattr(self.selector, "available", False))

    def _read(self) -> Optional[str]:
        credential = self.provider.get_credential()
        if is_credential_usable(credential):
            self.state = CredentialState.CREDENTIAL_PRESENT
            return credential.strip()
        self.state = CredentialState.CREDENTIAL_MISSING
        return None

    async def needs_selection(self) -> bool:
        """Startup probe: no key configured and the host has none selected yet."""
        if self._read() is not None or not self.can_select:
            return False
        return not await self.selector.has_selected_key()

    async def ensure_credential(self) -> str:
        credential = self._read()
        if credential is not None:
            return credential

        if self.can_select:
            if not await self.selector.has_selected_key():
                logger.info("No API key configured, opening host key selection")
                await self.selector.open_select_key()
            credential = self._read()
            if credential is not None:
                return credential

        raise MissingCredentialError(
            "No usable API key configured",
            details={"host_selection": self.can_select}
        )

    async def handle_rejection(self, rejected: Optional[str] = None) -> bool:
        """
        Mark the key as unusable and re-open host selection.

        When ``rejected`` is given and the provider already hands out a
        different key, nothing changes.

        Returns True when the host was asked for a new key.
        """
        if rejected is not None:
            current = self._read()
            if current is not None and current != rejected:
                logger.info("Rejected API key was already replaced, keeping the new one")
                return False

        self.state = CredentialState.CREDENTIAL_MISSING
        if not self.can_select:
            logger.warning("Backend rejected the API key and no host selection is available")
            return False

        logger.warning("Backend rejected the API key, re-opening host key selection")
        await self.selector.open_select_key()
        return True
