# tests/core/test_credential_gate.py
"""
Tests for the credential gate and its providers.
"""

import pytest

from decision_wizard.core.config import Settings
from decision_wizard.core.credential_gate import (
    CredentialChain,
    CredentialGate,
    CredentialState,
    InteractiveCredentialHost,
    NullCredentialSelector,
    SettingsCredentialProvider,
    StaticCredentialProvider,
)
from decision_wizard.core.exceptions import MissingCredentialError, ValidationError


class CountingSelector:
    """Host selection that hands out a key when opened"""
    available = True

    def __init__(self, provider: StaticCredentialProvider, key="picked-key"):
        self.provider = provider
        self.key = key
        self.opened = 0

    async def has_selected_key(self):
        return self.provider.credential is not None

    async def open_select_key(self):
        self.opened += 1
        self.provider.credential = self.key


# ===========================================
# PROVIDERS
# ===========================================

@pytest.mark.unit
class TestProviders:

    def test_settings_provider_reads_live_value(self):
        current = Settings(API_KEY="first")
        provider = SettingsCredentialProvider(current)
        assert provider.get_credential() == "first"

        current.API_KEY = "second"
        assert provider.get_credential() == "second"

    def test_chain_skips_unusable_keys(self):
        chain = CredentialChain([
            StaticCredentialProvider(None),
            StaticCredentialProvider("undefined"),
            StaticCredentialProvider("  "),
            StaticCredentialProvider("real-key"),
            StaticCredentialProvider("later-key"),
        ])
        assert chain.get_credential() == "real-key"

    def test_chain_without_usable_key(self):
        assert CredentialChain([StaticCredentialProvider(None)]).get_credential() is None

    async def test_null_selector(self):
        selector = NullCredentialSelector()
        assert selector.available is False
        assert await selector.has_selected_key() is False
        assert await selector.open_select_key() is None


@pytest.mark.unit
class TestInteractiveCredentialHost:

    async def test_submit_key(self):
        host = InteractiveCredentialHost()
        await host.open_select_key()
        assert host.selection_requested is True

        host.submit_key("  new-key  ")

        assert host.get_credential() == "new-key"
        assert host.selection_requested is False
        assert await host.has_selected_key() is True

    @pytest.mark.parametrize("key", [None, "", "   ", "undefined"])
    def test_submit_unusable_key_rejected(self, key):
        host = InteractiveCredentialHost()

        with pytest.raises(ValidationError) as exc_info:
            host.submit_key(key)

        assert exc_info.value.field == "api_key"
        assert host.get_credential() is None

    async def test_open_selection_drops_previous_key(self):
        host = InteractiveCredentialHost()
        host.submit_key("old-key")

        await host.open_select_key()

        assert host.get_credential() is None
        assert await host.has_selected_key() is False


# ===========================================
# GATE
# ===========================================

@pytest.mark.unit
class TestCredentialGate:

    async def test_present_key_is_returned_stripped(self):
        gate = CredentialGate(StaticCredentialProvider("  key  "))

        assert await gate.ensure_credential() == "key"
        assert gate.state == CredentialState.CREDENTIAL_PRESENT

    @pytest.mark.parametrize("key", [None, "", "undefined"])
    async def test_missing_key_without_host(self, key):
        gate = CredentialGate(StaticCredentialProvider(key))

        with pytest.raises(MissingCredentialError):
            await gate.ensure_credential()

        assert gate.state == CredentialState.CREDENTIAL_MISSING
        assert gate.can_select is False

    async def test_missing_key_opens_host_selection(self):
        provider = StaticCredentialProvider(None)
        selector = CountingSelector(provider)
        gate = CredentialGate(provider, selector)

        assert await gate.ensure_credential() == "picked-key"
        assert selector.opened == 1
        assert gate.state == CredentialState.CREDENTIAL_PRESENT

    async def test_host_selection_without_result(self):
        host = InteractiveCredentialHost()
        gate = CredentialGate(host, host)

        with pytest.raises(MissingCredentialError) as exc_info:
            await gate.ensure_credential()

        assert exc_info.value.details["host_selection"] is True
        assert host.selection_requested is True

    async def test_needs_selection(self):
        host = InteractiveCredentialHost()
        gate = CredentialGate(host, host)
        assert await gate.needs_selection() is True

        host.submit_key("key")
        assert await gate.needs_selection() is False

    async def test_needs_selection_false_without_host(self):
        gate = CredentialGate(StaticCredentialProvider(None))
        assert await gate.needs_selection() is False

    async def test_needs_selection_false_with_configured_key(self):
        host = InteractiveCredentialHost()
        gate = CredentialGate(CredentialChain([host, StaticCredentialProvider("configured")]), host)
        assert await gate.needs_selection() is False

    async def test_rejection_without_host(self):
        gate = CredentialGate(StaticCredentialProvider("key"))
        await gate.ensure_credential()

        assert await gate.handle_rejection() is False
        assert gate.state == CredentialState.CREDENTIAL_MISSING

    async def test_rejection_of_replaced_key_is_ignored(self):
        host = InteractiveCredentialHost()
        gate = CredentialGate(CredentialChain([host, StaticCredentialProvider("old-key")]), host)
        host.submit_key("new-key")

        assert await gate.handle_rejection("old-key") is False
        assert host.get_credential() == "new-key"
        assert host.selection_requested is False
        assert gate.state == CredentialState.CREDENTIAL_PRESENT

    async def test_rejection_of_current_key(self):
        host = InteractiveCredentialHost()
        gate = CredentialGate(host, host)
        host.submit_key("current-key")

        assert await gate.handle_rejection("current-key") is True
        assert host.get_credential() is None
        assert host.selection_requested is True
        assert gate.state == CredentialState.CREDENTIAL_MISSING

    async def test_rejection_reopens_host_selection(self):
        provider = StaticCredentialProvider("key")
        selector = CountingSelector(provider, key="replacement")
        gate = CredentialGate(provider, selector)

        assert await gate.handle_rejection() is True
        assert selector.opened == 1
        assert await gate.ensure_credential() == "replacement"
