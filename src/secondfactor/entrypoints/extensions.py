"""ABOUTME: Flask extensions initialization and configuration
ABOUTME: Sets up Flask-Session for server side login sessions and Flask-Babel for messages"""

from flask import Flask, request
from flask_babel import Babel
from flask_session import Session

session_store = Session()
babel = Babel()


def init_extensions(app: Flask) -> None:
    """Initialize Flask extensions with app instance."""

    # Server side sessions hold the per-login failure counter
    session_store.init_app(app)

    babel.init_app(app, locale_selector=get_locale)


def get_locale() -> str:
    """Get the best language match for the request."""
    from flask import current_app

    supported_languages = current_app.config.get("LANGUAGES", ["en"])
    return request.accept_languages.best_match(supported_languages) or supported_languages[0]
