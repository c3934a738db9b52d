"""ABOUTME: Pytest configuration and fixtures for SecondFactor tests
ABOUTME: Provides environment helpers and a provider wired to in-memory fakes"""

import os

import pytest

from secondfactor.config import SecondFactorConfig
from secondfactor.service_layer.two_factor_service import SecondaryAuthenticationProvider
from tests.fakes import FakeCodeVerifier, FakeSessionScratchpad, FakeUserAttributeStore, SequenceRandom


@pytest.fixture(autouse=True)
def set_test_env():
    """Automatically set test environment for all tests."""
    original_env = os.environ.get("FLASK_ENV")
    os.environ["FLASK_ENV"] = "testing"
    yield
    if original_env is not None:
        os.environ["FLASK_ENV"] = original_env
    else:
        os.environ.pop("FLASK_ENV", None)


@pytest.fixture
def clear_env_vars():
    """Fixture to temporarily remove environment variables for testing."""
    original_vars = {}

    def _clear_env_vars(*args):
        for key in args:
            original_vars[key] = os.environ.get(key)
            os.environ.pop(key, None)

    yield _clear_env_vars

    for key, value in original_vars.items():
        if value is not None:
            os.environ[key] = value


@pytest.fixture
def temp_env_vars():
    """Fixture to temporarily set environment variables for testing."""
    original_vars = {}

    def _set_env_vars(**kwargs):
        for key, value in kwargs.items():
            original_vars.setdefault(key, os.environ.get(key))
            os.environ[key] = value

    yield _set_env_vars

    for key, value in original_vars.items():
        if value is not None:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)


@pytest.fixture
def store():
    return FakeUserAttributeStore()


@pytest.fixture
def scratchpad():
    return FakeSessionScratchpad()


@pytest.fixture
def verifier():
    return FakeCodeVerifier()


@pytest.fixture
def random_source():
    return SequenceRandom()


@pytest.fixture
def provider(store, scratchpad, verifier, random_source):
    return SecondaryAuthenticationProvider(
        store=store,
        scratchpad=scratchpad,
        verifier=verifier,
        random=random_source,
        config=SecondFactorConfig(),
    )
