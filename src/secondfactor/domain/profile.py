"""ABOUTME: Second-factor profile domain model and enrollment states
ABOUTME: Plain Python view over the five stored user attributes"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EnrollmentState(Enum):
    UNENROLLED = "unenrolled"
    ENROLLING = "enrolling"
    ENROLLED = "enrolled"


def is_set(value: Any) -> bool:
    """Stores report unset attributes as None, False or an empty string."""
    return value is not None and value is not False and value != ""


def flag_is_set(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return value is True or value == 1


@dataclass(slots=True, frozen=True)
class SecondFactorProfile:
    """Snapshot of a user's stored second-factor attributes."""

    secret: str | None = None
    setup_complete: bool = False
    rescue_codes: tuple[str | None, str | None, str | None] = (None, None, None)

    @property
    def state(self) -> EnrollmentState:
        if self.setup_complete:
            return EnrollmentState.ENROLLED
        if self.secret:
            return EnrollmentState.ENROLLING
        return EnrollmentState.UNENROLLED

    def active_rescue_codes(self) -> list[str]:
        """Rescue slots that currently hold a value; cleared slots never match anything."""
        return [code for code in self.rescue_codes if code]

    def is_empty(self) -> bool:
        return not self.secret and not self.setup_complete and not self.active_rescue_codes()

    @classmethod
    def from_attributes(
        cls,
        secret: Any,
        setup_complete: Any,
        rescue_codes: tuple[Any, Any, Any],
    ) -> "SecondFactorProfile":
        return cls(
            secret=str(secret) if is_set(secret) else None,
            setup_complete=flag_is_set(setup_complete),
            rescue_codes=tuple(str(code) if is_set(code) else None for code in rescue_codes),  # type: ignore[arg-type]
        )
