"""ABOUTME: Custom exceptions for second-factor service operations
ABOUTME: Defines the fatal error taxonomy; mismatches and retry limits are outcomes, not exceptions"""

from secondfactor.translations import gettext as _


class SecondFactorError(Exception):
    """Base exception for all our custom errors."""


class ConfigurationError(SecondFactorError):
    """Raised when the configuration or a collaborator is unusable. Not retryable."""

    def __init__(self, message: str = "") -> None:
        if not message:
            message = _("Two-factor authentication is not configured correctly")
        super().__init__(message)


class StorageFailure(SecondFactorError):
    """Raised when reading, writing or persisting user attributes fails."""

    def __init__(self, action: str = "", user_name: str = "") -> None:
        if action and user_name:
            message = _(
                "Could not %(action)s two-factor settings for %(user)s",
                action=action,
                user=user_name,
            )
        elif action:
            message = _("Could not %(action)s two-factor settings", action=action)
        else:
            message = _("Could not access two-factor settings")
        super().__init__(message)
        self.action = action
        self.user_name = user_name
