"""ABOUTME: Enrollment manager deciding between a fresh TOTP secret and the existing one
ABOUTME: Generates the secret and its three rescue codes as a single stored unit"""

from typing import Any

import structlog

from secondfactor.config import SecondFactorConfig
from secondfactor.domain.outcomes import Challenge
from secondfactor.service_layer.exceptions import ConfigurationError
from secondfactor.service_layer.ports import OneTimeCodeVerifier, SecureRandom
from secondfactor.service_layer.profile_repository import ProfileRepository


class EnrollmentManager:
    def __init__(
        self,
        profiles: ProfileRepository,
        verifier: OneTimeCodeVerifier,
        random: SecureRandom,
        config: SecondFactorConfig,
        logger: structlog.stdlib.BoundLogger,
    ) -> None:
        self.profiles = profiles
        self.verifier = verifier
        self.random = random
        self.config = config
        self.log = logger

    def begin_enrollment_or_challenge(self, user: Any) -> Challenge:
        """Reuse the secret of a completed enrollment, otherwise enroll from scratch.

        A secret left behind by an abandoned setup is not trusted: without the
        setup flag a new secret and new rescue codes are always generated.
        """
        profile = self.profiles.load(user)
        if profile.setup_complete and profile.secret:
            return Challenge(secret=profile.secret, is_new_enrollment=False)

        secret, rescue_codes = self._enroll(user)
        self.log.info("generated_new_secret", user=self.profiles.user_name(user))
        return Challenge(secret=secret, is_new_enrollment=True, rescue_codes=rescue_codes)

    def generate_secrets(self, user: Any) -> str:
        """Generate and store a new secret with three rescue codes, returning the secret."""
        secret, _ = self._enroll(user)
        return secret

    def _enroll(self, user: Any) -> tuple[str, tuple[str, str, str]]:
        secret, rescue_codes = self._new_secrets()
        self.profiles.save_new_enrollment(user, secret, rescue_codes)
        return secret, rescue_codes

    def _new_secrets(self) -> tuple[str, tuple[str, str, str]]:
        try:
            secret = self.verifier.generate_secret()
        except Exception as e:
            raise ConfigurationError(f"TOTP secret generator failed: {e}") from e
        if not secret:
            raise ConfigurationError("TOTP secret generator returned an empty secret")

        size = self.config.rescue_code_bytes
        rescue_codes = (self.random.hex(size), self.random.hex(size), self.random.hex(size))
        if len(set(rescue_codes)) != len(rescue_codes) or not all(rescue_codes):
            raise ConfigurationError("Secure random source returned empty or repeated rescue codes")
        return secret, rescue_codes
