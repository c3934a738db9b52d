"""ABOUTME: Session scratchpad backed by the Flask session
ABOUTME: Keys are namespaced so they cannot collide with the host application's session data"""

from typing import Any

from flask import session

from secondfactor.service_layer.ports import SessionScratchpad


class FlaskSessionScratchpad(SessionScratchpad):
    """Scratchpad over flask.session; only usable inside a request."""

    def __init__(self, namespace: str = "secondfactor") -> None:
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}.{key}"

    def get(self, key: str, default: Any = None) -> Any:
        return session.get(self._key(key), default)

    def set(self, key: str, value: Any) -> None:
        session[self._key(key)] = value

    def remove(self, key: str) -> None:
        session.pop(self._key(key), None)
