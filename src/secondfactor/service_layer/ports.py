"""ABOUTME: Abstract collaborator interfaces used by the second-factor core
ABOUTME: Defines the attribute store, code verifier, random source and session scratchpad contracts"""

from __future__ import annotations

import abc
from collections.abc import Mapping
from typing import Any


class UserAttributeStore(abc.ABC):
    """Named attributes on a host-owned user identity."""

    @abc.abstractmethod
    def get(self, user: Any, key: str) -> Any | None:
        """Get an attribute value, or None if it is unset."""
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, user: Any, key: str, value: Any) -> None:
        """Set an attribute value. Not durable until persist() is called."""
        raise NotImplementedError

    @abc.abstractmethod
    def persist(self, user: Any) -> None:
        """Make the pending attribute changes for user durable."""
        raise NotImplementedError

    def update(self, user: Any, values: Mapping[str, Any]) -> None:
        """Set several attributes as one logical change.

        Implementations backed by real storage should override this so that either
        every value is applied or none is.
        """
        for key, value in values.items():
            self.set(user, key, value)

    def user_name(self, user: Any) -> str:
        """Name of the user for log messages."""
        return str(user)


class OneTimeCodeVerifier(abc.ABC):
    """The TOTP primitive: secret generation and code verification."""

    @abc.abstractmethod
    def generate_secret(self) -> str:
        """Generate a new shared secret."""
        raise NotImplementedError

    @abc.abstractmethod
    def verify(self, secret: str, code: str) -> bool:
        """Check code against secret, allowing for some clock skew."""
        raise NotImplementedError


class SecureRandom(abc.ABC):
    @abc.abstractmethod
    def hex(self, byte_len: int) -> str:
        """Return byte_len cryptographically secure random bytes, hex encoded."""
        raise NotImplementedError


class SessionScratchpad(abc.ABC):
    """Key/value storage that lives as long as one login session."""

    @abc.abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def remove(self, key: str) -> None:
        raise NotImplementedError
