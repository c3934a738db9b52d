"""Domain models for the second-factor authentication core."""

from .outcomes import Challenge, Deny, DenyReason, Outcome, Pass, ReauthRequired
from .profile import EnrollmentState, SecondFactorProfile

__all__ = [
    "Challenge",
    "Deny",
    "DenyReason",
    "EnrollmentState",
    "Outcome",
    "Pass",
    "ReauthRequired",
    "SecondFactorProfile",
]
