"""ABOUTME: Attribute store wrapper that encrypts TOTP secrets and rescue codes at rest
ABOUTME: Uses per-user Fernet keys derived from TOTP_ENCRYPTION_KEY; attribute names are unchanged"""

from collections.abc import Callable, Mapping
from typing import Any

from secondfactor.config import AttributeKeys
from secondfactor.domain.profile import is_set
from secondfactor.service_layer import totp_service
from secondfactor.service_layer.ports import UserAttributeStore


class EncryptedAttributeStore(UserAttributeStore):
    """Encrypts the secret and rescue code attributes before they reach the inner store.

    The setup flag and any other attribute pass through untouched. Unset values
    (None, False, "") are stored as they are, so a reset still reads as unset.

    user_key must return something stable for the user (an id, not a display name):
    it is mixed into the key derivation, and changing it makes old values unreadable.
    """

    def __init__(
        self,
        inner: UserAttributeStore,
        keys: AttributeKeys | None = None,
        user_key: Callable[[Any], str] = str,
    ) -> None:
        self.inner = inner
        self.user_key = user_key
        keys = keys or AttributeKeys()
        self._encrypted_keys = frozenset((keys.secret, *keys.rescue))

    def _encode(self, user: Any, key: str, value: Any) -> Any:
        if key in self._encrypted_keys and is_set(value):
            return totp_service.encrypt_value(str(value), self.user_key(user))
        return value

    def get(self, user: Any, key: str) -> Any | None:
        value = self.inner.get(user, key)
        if key in self._encrypted_keys and is_set(value):
            return totp_service.decrypt_value(str(value), self.user_key(user))
        return value

    def set(self, user: Any, key: str, value: Any) -> None:
        self.inner.set(user, key, self._encode(user, key, value))

    def update(self, user: Any, values: Mapping[str, Any]) -> None:
        self.inner.update(user, {key: self._encode(user, key, value) for key, value in values.items()})

    def persist(self, user: Any) -> None:
        self.inner.persist(user)

    def user_name(self, user: Any) -> str:
        return self.inner.user_name(user)
