"""ABOUTME: Two-factor authentication orchestration service
ABOUTME: Entry points the host login pipeline calls to begin and continue second-factor authentication"""

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from secondfactor.config import SecondFactorConfig
from secondfactor.domain.outcomes import Challenge, Outcome
from secondfactor.service_layer.enrollment import EnrollmentManager
from secondfactor.service_layer.exceptions import ConfigurationError
from secondfactor.service_layer.ports import (
    OneTimeCodeVerifier,
    SecureRandom,
    SessionScratchpad,
    UserAttributeStore,
)
from secondfactor.service_layer.profile_repository import ProfileRepository
from secondfactor.service_layer.totp_service import PyotpCodeVerifier, TokenHexRandom
from secondfactor.service_layer.verification import VerificationStateMachine


def _check_collaborator(value: Any, expected: type, name: str) -> None:
    if not isinstance(value, expected):
        raise ConfigurationError(f"{name} must be a {expected.__name__}, got {type(value).__name__}")


class SecondaryAuthenticationProvider:
    """Second-factor step of a login, run after the primary credential check.

    Collaborators are checked once here, so a misconfigured provider fails at
    start-up instead of part way through somebody's login.

    Read-modify-write sequences for one user are serialised within this process
    when config.serialize_per_user is on. Separate processes sharing a store
    still race, and the last writer wins.
    """

    def __init__(
        self,
        store: UserAttributeStore,
        scratchpad: SessionScratchpad,
        verifier: OneTimeCodeVerifier | None = None,
        random: SecureRandom | None = None,
        config: SecondFactorConfig | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.config = config or SecondFactorConfig()
        self.config.validate()
        verifier = verifier or PyotpCodeVerifier(valid_window=self.config.valid_window)
        random = random or TokenHexRandom()

        _check_collaborator(store, UserAttributeStore, "store")
        _check_collaborator(scratchpad, SessionScratchpad, "scratchpad")
        _check_collaborator(verifier, OneTimeCodeVerifier, "verifier")
        _check_collaborator(random, SecureRandom, "random")

        self.log = logger or structlog.get_logger("secondfactor")
        self.profiles = ProfileRepository(store, self.config.keys, self.log)
        self.enrollment = EnrollmentManager(self.profiles, verifier, random, self.config, self.log)
        self.verification = VerificationStateMachine(
            self.profiles, self.enrollment, verifier, scratchpad, self.config, self.log
        )

        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @contextmanager
    def _user_lock(self, user: Any) -> Iterator[None]:
        if not self.config.serialize_per_user:
            yield
            return
        key = self.profiles.user_name(user)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
        with lock:
            yield

    def begin_secondary_authentication(self, user: Any) -> Challenge:
        """Start the second factor: reuse a completed enrollment or provision a new one."""
        with self._user_lock(user):
            return self.enrollment.begin_enrollment_or_challenge(user)

    def continue_secondary_authentication(self, user: Any, submitted_code: str | None) -> Outcome:
        """Check one submitted code or rescue code.

        Returns Pass, ReauthRequired carrying the next challenge, or Deny once the
        session has used up its retries. After Deny the host must end the login
        session and accept no more codes in it.
        """
        with self._user_lock(user):
            return self.verification.continue_authentication(user, submitted_code)
