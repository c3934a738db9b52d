"""ABOUTME: Challenge and outcome value objects returned by the second-factor entry points
ABOUTME: Pass, ReauthRequired and Deny model every branch of a verification attempt"""

from dataclasses import dataclass
from enum import Enum

# Message tags, rendered by the host
MESSAGE_INFO = "secondfactor-info"
MESSAGE_LOGIN_FAILURE = "secondfactor-login-failure"
MESSAGE_RETRY_LIMIT = "secondfactor-login-retry-limit"


class DenyReason(Enum):
    RETRY_LIMIT_EXCEEDED = "retry-limit-exceeded"


@dataclass(slots=True, frozen=True)
class Challenge:
    """Instruction to present a secret (when new) and ask for a code."""

    secret: str
    is_new_enrollment: bool
    rescue_codes: tuple[str, ...] = ()

    def __repr__(self) -> str:
        # keep secrets out of logs and tracebacks
        return f"Challenge(is_new_enrollment={self.is_new_enrollment}, rescue_codes={len(self.rescue_codes)})"


@dataclass(slots=True, frozen=True)
class Pass:
    pass


@dataclass(slots=True, frozen=True)
class ReauthRequired:
    challenge: Challenge
    message: str = MESSAGE_INFO
    is_error: bool = False


@dataclass(slots=True, frozen=True)
class Deny:
    reason: DenyReason
    message: str = MESSAGE_RETRY_LIMIT


Outcome = Pass | ReauthRequired | Deny
