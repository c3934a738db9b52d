"""ABOUTME: JSON API endpoints for the second-factor login step
ABOUTME: Begins and continues second-factor authentication for the user pending after primary login"""

from typing import Any

from flask import Blueprint, current_app, jsonify, request, session
from flask.typing import ResponseReturnValue

from secondfactor.domain.outcomes import (
    MESSAGE_INFO,
    MESSAGE_LOGIN_FAILURE,
    MESSAGE_RETRY_LIMIT,
    Challenge,
    Deny,
    Pass,
    ReauthRequired,
)
from secondfactor.service_layer import totp_service
from secondfactor.service_layer.exceptions import ConfigurationError, StorageFailure
from secondfactor.service_layer.two_factor_service import SecondaryAuthenticationProvider
from secondfactor.translations import _

PENDING_USER_SESSION_KEY = "pending_2fa_user"
VERIFIED_USER_SESSION_KEY = "verified_2fa_user"

api_two_factor_bp = Blueprint("api_two_factor", __name__, url_prefix="/api/2fa")


def start_pending_login(user_id: str) -> None:
    """Called by the host once the primary credential check passed."""
    session.pop(VERIFIED_USER_SESSION_KEY, None)
    session[PENDING_USER_SESSION_KEY] = user_id
    _clear_failures()


def _provider() -> SecondaryAuthenticationProvider:
    provider = current_app.extensions["secondfactor"]
    assert isinstance(provider, SecondaryAuthenticationProvider)
    return provider


def _clear_failures() -> None:
    provider: SecondaryAuthenticationProvider | None = current_app.extensions.get("secondfactor")
    if provider is not None:
        provider.verification.scratchpad.remove(provider.config.failure_counter_key)


def _end_login_session() -> None:
    _clear_failures()
    session.pop(PENDING_USER_SESSION_KEY, None)


def _pending_user() -> Any | None:
    user_id = session.get(PENDING_USER_SESSION_KEY)
    if not user_id:
        return None
    return current_app.extensions["secondfactor_user_loader"](user_id)


def _message(tag: str) -> str:
    messages = {
        MESSAGE_INFO: _("Enter the code from your authenticator app"),
        MESSAGE_LOGIN_FAILURE: _("The code is not valid, please try again"),
        MESSAGE_RETRY_LIMIT: _("Too many invalid codes, please log in again"),
    }
    return messages.get(tag, tag)


def _challenge_json(provider: SecondaryAuthenticationProvider, user: Any, challenge: Challenge) -> dict[str, Any]:
    data: dict[str, Any] = {"is_new_enrollment": challenge.is_new_enrollment}
    # an enrolled user's secret never leaves the server
    if challenge.is_new_enrollment:
        name = provider.profiles.user_name(user)
        issuer = provider.config.issuer
        data["secret"] = challenge.secret
        data["provisioning_uri"] = totp_service.provisioning_uri(challenge.secret, name, issuer)
        data["qr_code"] = totp_service.generate_qr_code_data_url(challenge.secret, name, issuer)
        data["rescue_codes"] = list(challenge.rescue_codes)
    return data


@api_two_factor_bp.route("/begin", methods=["POST"])
def begin() -> ResponseReturnValue:
    """Start the second factor for the pending user."""
    user = _pending_user()
    if user is None:
        return jsonify({"error": _("No login in progress")}), 401

    provider = _provider()
    try:
        # the failure counter belongs to the login session, only start_pending_login resets it
        challenge = provider.begin_secondary_authentication(user)
    except StorageFailure as e:
        current_app.logger.error(f"2FA begin storage error: {e}")
        return jsonify({"error": _("Two-factor authentication is temporarily unavailable")}), 503
    except ConfigurationError as e:
        current_app.logger.error(f"2FA begin configuration error: {e}")
        _end_login_session()
        return jsonify({"error": _("An error occurred during login")}), 500

    return jsonify({
        "status": "challenge",
        "message": _message(MESSAGE_INFO),
        **_challenge_json(provider, user, challenge),
    })


@api_two_factor_bp.route("/continue", methods=["POST"])
def continue_() -> ResponseReturnValue:
    """Submit a one-time code or a rescue code."""
    user = _pending_user()
    if user is None:
        return jsonify({"error": _("No login in progress")}), 401

    data = request.get_json(silent=True) or {}
    code = data.get("code")
    if code is not None and not isinstance(code, str):
        return jsonify({"error": _("Code must be a string")}), 400

    provider = _provider()
    try:
        outcome = provider.continue_secondary_authentication(user, code)
    except StorageFailure as e:
        current_app.logger.error(f"2FA continue storage error: {e}")
        return jsonify({"error": _("Two-factor authentication is temporarily unavailable")}), 503
    except ConfigurationError as e:
        current_app.logger.error(f"2FA continue configuration error: {e}")
        _end_login_session()
        return jsonify({"error": _("An error occurred during login")}), 500

    match outcome:
        case Pass():
            user_id = session[PENDING_USER_SESSION_KEY]
            _end_login_session()
            session[VERIFIED_USER_SESSION_KEY] = user_id
            return jsonify({"status": "pass"})
        case ReauthRequired(challenge=challenge, message=message, is_error=is_error):
            return jsonify({
                "status": "reauth",
                "message": _message(message),
                "is_error": is_error,
                **_challenge_json(provider, user, challenge),
            })
        case Deny(reason=reason, message=message):
            _end_login_session()
            return jsonify({"status": "deny", "reason": reason.value, "message": _message(message)}), 403

    raise AssertionError(f"Unhandled outcome {outcome!r}")  # pragma: no cover
