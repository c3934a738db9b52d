"""ABOUTME: Repository mapping the second-factor profile onto named user attributes
ABOUTME: Every multi-field change goes through one store update followed by persist"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import structlog

from secondfactor.config import AttributeKeys
from secondfactor.domain.profile import SecondFactorProfile
from secondfactor.service_layer.exceptions import StorageFailure
from secondfactor.service_layer.ports import UserAttributeStore

SETUP_COMPLETE_VALUE = "1"


class ProfileRepository:
    def __init__(
        self,
        store: UserAttributeStore,
        keys: AttributeKeys,
        logger: structlog.stdlib.BoundLogger,
    ) -> None:
        self.store = store
        self.keys = keys
        self.log = logger

    def user_name(self, user: Any) -> str:
        return self.store.user_name(user)

    @contextmanager
    def _guard(self, user: Any, action: str) -> Iterator[None]:
        try:
            yield
        except StorageFailure:
            raise
        except Exception as e:
            user_name = self.user_name(user)
            self.log.error("storage_failure", action=action, user=user_name, error=str(e))
            raise StorageFailure(action, user_name) from e

    def load(self, user: Any) -> SecondFactorProfile:
        with self._guard(user, "read"):
            return SecondFactorProfile.from_attributes(
                secret=self.store.get(user, self.keys.secret),
                setup_complete=self.store.get(user, self.keys.setup_complete),
                rescue_codes=(
                    self.store.get(user, self.keys.rescue_1),
                    self.store.get(user, self.keys.rescue_2),
                    self.store.get(user, self.keys.rescue_3),
                ),
            )

    def _write(self, user: Any, action: str, values: Mapping[str, Any]) -> None:
        with self._guard(user, action):
            self.store.update(user, values)
            self.store.persist(user)

    def save_new_enrollment(self, user: Any, secret: str, rescue_codes: tuple[str, str, str]) -> None:
        """Store a fresh secret and its rescue codes. The setup flag is cleared in the same write."""
        values: dict[str, Any] = {self.keys.secret: secret, self.keys.setup_complete: False}
        values.update(zip(self.keys.rescue, rescue_codes, strict=True))
        self._write(user, "save", values)

    def mark_setup_complete(self, user: Any) -> None:
        self._write(user, "update", {self.keys.setup_complete: SETUP_COMPLETE_VALUE})

    def reset(self, user: Any) -> None:
        """Clear all five attributes together."""
        self._write(user, "reset", dict.fromkeys(self.keys.all(), False))
