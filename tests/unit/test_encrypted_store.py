"""Unit tests for EncryptedAttributeStore."""

import base64
import secrets

import pytest

from secondfactor.adapters.encrypted_store import EncryptedAttributeStore
from secondfactor.config import AttributeKeys
from secondfactor.domain.outcomes import Pass, ReauthRequired
from secondfactor.service_layer.two_factor_service import SecondaryAuthenticationProvider

KEYS = AttributeKeys()


@pytest.fixture(autouse=True)
def encryption_key(temp_env_vars):
    temp_env_vars(TOTP_ENCRYPTION_KEY=base64.b64encode(secrets.token_bytes(32)).decode())


@pytest.fixture
def encrypted(store):
    return EncryptedAttributeStore(store)


class TestEncryptedAttributeStore:
    def test_secret_is_encrypted_in_inner_store(self, encrypted, store):
        encrypted.set("alice", KEYS.secret, "JBSWY3DPEHPK3PXP")
        encrypted.persist("alice")

        assert store.persisted["alice"][KEYS.secret] != "JBSWY3DPEHPK3PXP"
        assert encrypted.get("alice", KEYS.secret) == "JBSWY3DPEHPK3PXP"

    def test_rescue_codes_are_encrypted_by_update(self, encrypted, store):
        encrypted.update("alice", {KEYS.rescue_1: "aa", KEYS.rescue_2: "bb", KEYS.rescue_3: "cc"})
        encrypted.persist("alice")

        assert [store.persisted["alice"][key] for key in KEYS.rescue] != ["aa", "bb", "cc"]
        assert [encrypted.get("alice", key) for key in KEYS.rescue] == ["aa", "bb", "cc"]

    def test_setup_flag_and_unset_values_pass_through(self, encrypted, store):
        encrypted.update("alice", {KEYS.setup_complete: "1", KEYS.secret: False})
        encrypted.persist("alice")

        assert store.persisted["alice"] == {KEYS.setup_complete: "1", KEYS.secret: False}
        assert encrypted.get("alice", KEYS.secret) is False
        assert encrypted.get("alice", KEYS.rescue_1) is None

    def test_works_as_provider_store(self, encrypted, scratchpad, verifier, random_source, store):
        provider = SecondaryAuthenticationProvider(
            store=encrypted, scratchpad=scratchpad, verifier=verifier, random=random_source
        )

        challenge = provider.begin_secondary_authentication("alice")
        assert store.persisted["alice"][KEYS.secret] != challenge.secret
        assert provider.continue_secondary_authentication("alice", verifier.code_for(challenge.secret)) == Pass()

        outcome = provider.continue_secondary_authentication("alice", challenge.rescue_codes[0])

        assert isinstance(outcome, ReauthRequired)
        assert outcome.challenge.is_new_enrollment is True
