"""ABOUTME: Verification state machine driving one submitted second-factor code per call
ABOUTME: Handles rescue resets, the destructive setup-code reset, verification and retry accounting"""

import hmac
from typing import Any

import structlog

from secondfactor.config import SecondFactorConfig
from secondfactor.domain.outcomes import (
    MESSAGE_LOGIN_FAILURE,
    Challenge,
    Deny,
    DenyReason,
    Outcome,
    Pass,
    ReauthRequired,
)
from secondfactor.domain.profile import SecondFactorProfile
from secondfactor.service_layer.enrollment import EnrollmentManager
from secondfactor.service_layer.ports import OneTimeCodeVerifier, SessionScratchpad
from secondfactor.service_layer.profile_repository import ProfileRepository


def matches_rescue_code(profile: SecondFactorProfile, code: str) -> bool:
    """Constant-time comparison against every rescue slot that holds a value."""
    submitted = code.encode("utf-8", "surrogatepass")
    matched = False
    # no early exit, so timing does not reveal which slot matched
    for rescue_code in profile.active_rescue_codes():
        matched |= hmac.compare_digest(rescue_code.encode("utf-8"), submitted)
    return matched


def is_well_formed(code: str) -> bool:
    """False for text that is not valid unicode, e.g. a lone surrogate decoded from JSON."""
    try:
        code.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class VerificationStateMachine:
    def __init__(
        self,
        profiles: ProfileRepository,
        enrollment: EnrollmentManager,
        verifier: OneTimeCodeVerifier,
        scratchpad: SessionScratchpad,
        config: SecondFactorConfig,
        logger: structlog.stdlib.BoundLogger,
    ) -> None:
        self.profiles = profiles
        self.enrollment = enrollment
        self.verifier = verifier
        self.scratchpad = scratchpad
        self.config = config
        self.log = logger

    def continue_authentication(self, user: Any, submitted_code: str | None) -> Outcome:
        """Process one submitted code.

        None means no code was submitted at all; that only counts as a failed attempt.
        """
        profile = self.profiles.load(user)

        if submitted_code is not None:
            code = submitted_code.strip()

            if matches_rescue_code(profile, code):
                self.profiles.reset(user)
                self.log.info("reset_secret", user=self.profiles.user_name(user), reason="rescue_code")
                return ReauthRequired(self.enrollment.begin_enrollment_or_challenge(user))

            verified = (
                bool(profile.secret) and is_well_formed(code) and self.verifier.verify(profile.secret or "", code)
            )

            # A wrong code during setup throws the new secret away, same as a rescue code
            if not verified and not profile.setup_complete:
                self.profiles.reset(user)
                self.log.info("reset_secret", user=self.profiles.user_name(user), reason="invalid_setup_code")
                return ReauthRequired(self.enrollment.begin_enrollment_or_challenge(user))

            if verified:
                if not profile.setup_complete:
                    self.profiles.mark_setup_complete(user)
                    self.log.info("validated_new_secret", user=self.profiles.user_name(user))
                return Pass()

            self.log.info("invalid_token", user=self.profiles.user_name(user))

        return self._count_failure(user, profile)

    def failure_count(self) -> int:
        return int(self.scratchpad.get(self.config.failure_counter_key, 0) or 0)

    def _count_failure(self, user: Any, profile: SecondFactorProfile) -> Outcome:
        failures = self.failure_count()
        if failures >= self.config.max_retries:
            self.log.info("retry_limit_exceeded", user=self.profiles.user_name(user), failures=failures)
            return Deny(DenyReason.RETRY_LIMIT_EXCEEDED)

        self.scratchpad.set(self.config.failure_counter_key, failures + 1)
        return ReauthRequired(
            Challenge(secret=profile.secret or "", is_new_enrollment=False),
            message=MESSAGE_LOGIN_FAILURE,
            is_error=True,
        )
