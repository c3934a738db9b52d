"""ABOUTME: Flask application factory for the second-factor JSON API
ABOUTME: Wires configuration, extensions, the authentication provider and its blueprint together"""

from collections.abc import Callable
from typing import Any

from flask import Flask

import secondfactor.logging
from secondfactor import config
from secondfactor.adapters.flask_session import FlaskSessionScratchpad
from secondfactor.entrypoints.extensions import init_extensions
from secondfactor.service_layer.ports import OneTimeCodeVerifier, SecureRandom, UserAttributeStore
from secondfactor.service_layer.two_factor_service import SecondaryAuthenticationProvider


def create_app(
    store: UserAttributeStore,
    config_name: str = "",
    user_loader: Callable[[str], Any] | None = None,
    verifier: OneTimeCodeVerifier | None = None,
    random: SecureRandom | None = None,
) -> Flask:
    """
    Flask application factory.

    Args:
        store: Where the host keeps user attributes
        config_name: Configuration name (development, testing, production)
        user_loader: Turns the pending user id from the session into the object the store expects.
            Defaults to passing the id through.

    Returns:
        Configured Flask application instance
    """
    secondfactor.logging.logging_setup(config.get_log_level())

    app = Flask(__name__)

    flask_config = config.get_config(config_name)
    app.config.from_object(flask_config)

    init_extensions(app)

    app.extensions["secondfactor"] = SecondaryAuthenticationProvider(
        store=store,
        scratchpad=FlaskSessionScratchpad(),
        verifier=verifier,
        random=random,
        config=flask_config.SECOND_FACTOR,
    )
    app.extensions["secondfactor_user_loader"] = user_loader or (lambda user_id: user_id)

    register_blueprints(app)

    app.logger.info("SecondFactor application startup")

    return app


def register_blueprints(app: Flask) -> None:
    """Register application blueprints."""
    from .api_two_factor import api_two_factor_bp

    app.register_blueprint(api_two_factor_bp)
