"""ABOUTME: Translation utilities for user-facing messages
ABOUTME: Provides gettext that uses Flask-Babel inside an app and plain gettext catalogues outside one"""

import os
from gettext import GNUTranslations
from typing import Any

from flask import current_app, has_app_context
from flask_babel import gettext as flask_gettext

# Global translation objects for fallback
_translations: dict[str, GNUTranslations] = {}
_default_locale = "en"


def _get_text_fallback(message: str, **kwargs: Any) -> str:
    """Fallback gettext that works without Flask context."""
    locale = os.environ.get("SECONDFACTOR_LOCALE", _default_locale)

    translated = _translations[locale].gettext(message) if locale in _translations else message

    if kwargs:
        try:
            return translated % kwargs
        except (KeyError, ValueError, TypeError):
            # A broken catalogue entry should not hide the message itself
            return message % kwargs

    return translated


def gettext(message: str, **kwargs: Any) -> str:
    """Get translated string - works both in Flask context and standalone."""
    if has_app_context() and "babel" in current_app.extensions:
        return str(flask_gettext(message, **kwargs))

    return _get_text_fallback(message, **kwargs)


_ = gettext


def load_translations(locale_dir: str, locales: list[str]) -> None:
    """Load compiled catalogues from locale_dir for use outside a Flask app."""
    for locale in locales:
        locale_path = os.path.join(locale_dir, locale, "LC_MESSAGES", "messages.mo")
        if os.path.exists(locale_path):
            with open(locale_path, "rb") as fp:
                _translations[locale] = GNUTranslations(fp)
