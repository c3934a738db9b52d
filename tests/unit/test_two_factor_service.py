"""Unit tests for SecondaryAuthenticationProvider construction and failure handling."""

import threading

import pytest

from secondfactor.config import AttributeKeys, InvalidConfig, SecondFactorConfig
from secondfactor.domain.outcomes import Pass
from secondfactor.service_layer.exceptions import ConfigurationError, StorageFailure
from secondfactor.service_layer.totp_service import PyotpCodeVerifier, TokenHexRandom
from secondfactor.service_layer.two_factor_service import SecondaryAuthenticationProvider
from tests.fakes import FakeCodeVerifier

KEYS = AttributeKeys()


class TestConstruction:
    def test_defaults_to_pyotp_and_token_hex(self, store, scratchpad):
        provider = SecondaryAuthenticationProvider(store=store, scratchpad=scratchpad)

        assert isinstance(provider.enrollment.verifier, PyotpCodeVerifier)
        assert provider.enrollment.verifier.valid_window == 1
        assert isinstance(provider.enrollment.random, TokenHexRandom)

    def test_valid_window_comes_from_config(self, store, scratchpad):
        provider = SecondaryAuthenticationProvider(
            store=store, scratchpad=scratchpad, config=SecondFactorConfig(valid_window=2)
        )

        assert provider.enrollment.verifier.valid_window == 2

    def test_rejects_store_without_interface(self, scratchpad):
        with pytest.raises(ConfigurationError, match="store must be a UserAttributeStore"):
            SecondaryAuthenticationProvider(store={}, scratchpad=scratchpad)

    def test_rejects_scratchpad_without_interface(self, store):
        with pytest.raises(ConfigurationError, match="scratchpad must be a SessionScratchpad"):
            SecondaryAuthenticationProvider(store=store, scratchpad={})

    def test_rejects_verifier_without_interface(self, store, scratchpad):
        with pytest.raises(ConfigurationError, match="verifier must be a OneTimeCodeVerifier"):
            SecondaryAuthenticationProvider(store=store, scratchpad=scratchpad, verifier=object())

    def test_rejects_invalid_config(self, store, scratchpad):
        with pytest.raises(InvalidConfig):
            SecondaryAuthenticationProvider(
                store=store, scratchpad=scratchpad, config=SecondFactorConfig(rescue_code_bytes=8)
            )

    def test_invalid_config_is_a_configuration_error(self):
        assert issubclass(InvalidConfig, ConfigurationError)


class TestStorageFailure:
    @pytest.mark.parametrize("operation", ["get", "update", "persist"])
    def test_begin_propagates_storage_failure(self, provider, store, operation):
        store.fail_on.add(operation)

        with pytest.raises(StorageFailure) as exc_info:
            provider.begin_secondary_authentication("alice")

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.user_name == "alice"

    def test_failed_enrollment_write_leaves_nothing_persisted(self, provider, store):
        store.fail_on.add("update")

        with pytest.raises(StorageFailure):
            provider.begin_secondary_authentication("alice")

        assert "alice" not in store.persisted

    def test_failed_reset_leaves_previous_enrollment_intact(self, provider, store):
        challenge = provider.begin_secondary_authentication("alice")
        persisted_before = dict(store.persisted["alice"])
        store.fail_on.add("update")

        with pytest.raises(StorageFailure) as exc_info:
            provider.continue_secondary_authentication("alice", challenge.rescue_codes[0])

        assert exc_info.value.action == "reset"
        assert store.persisted["alice"] == persisted_before

    def test_failed_completion_write_propagates(self, provider, store, verifier):
        challenge = provider.begin_secondary_authentication("alice")
        store.fail_on.add("persist")

        with pytest.raises(StorageFailure):
            provider.continue_secondary_authentication("alice", verifier.code_for(challenge.secret))

        assert not store.persisted["alice"][KEYS.setup_complete]


class TestPerUserLocking:
    def test_concurrent_begin_for_new_user_enrolls_once_per_call(self, store, scratchpad, random_source):
        """Calls for one user run one at a time, so each sees the previous call's write."""
        verifier = FakeCodeVerifier()
        provider = SecondaryAuthenticationProvider(
            store=store, scratchpad=scratchpad, verifier=verifier, random=random_source
        )
        challenges = []

        def worker():
            challenges.append(provider.begin_secondary_authentication("alice"))

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(challenges) == 5
        assert store.persisted["alice"][KEYS.secret] == verifier.generated[-1]

    def test_locking_can_be_disabled(self, store, scratchpad, verifier, random_source):
        provider = SecondaryAuthenticationProvider(
            store=store,
            scratchpad=scratchpad,
            verifier=verifier,
            random=random_source,
            config=SecondFactorConfig(serialize_per_user=False),
        )

        challenge = provider.begin_secondary_authentication("alice")

        assert provider.continue_secondary_authentication("alice", verifier.code_for(challenge.secret)) == Pass()
