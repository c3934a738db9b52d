"""ABOUTME: Configuration management for the second-factor authentication core
ABOUTME: Loads environment variables and provides the state machine and Flask configuration objects"""

import base64
import binascii
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from cachelib.file import FileSystemCache
from dotenv import load_dotenv
from redis import Redis

from secondfactor.service_layer.exceptions import ConfigurationError

load_dotenv()


class InvalidConfig(ConfigurationError):
    """Error for when the config is not valid"""


# Rescue codes below this size are rejected: 16 bytes = 128 bits of randomness
MIN_RESCUE_CODE_BYTES = 16


def to_bool(value: str | None, context_str: str = "") -> bool:
    """
    Convert string to boolean. Valid options (after stripping whitespace and making lower-case)
    - False: "false", "no", "off", "0", None, ""
    - True: "true", "yes", "on", "1"

    The `context_str` is there for the error message, to help find the issue.
    """
    if value is None:
        return False
    value = value.lower().strip()
    if value in ("false", "no", "off", "0", ""):
        return False
    if value in ("true", "yes", "on", "1"):
        return True
    raise ValueError(
        f"Cannot convert '{context_str}{value}' to boolean. Valid values are: true/false, 1/0, yes/no, on/off (case-insensitive)"
    )


def _to_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidConfig(f"{name} must be an integer, got '{raw}'") from e


@dataclass(slots=True, kw_only=True, frozen=True)
class AttributeKeys:
    """Names of the user attributes that make up the stored second-factor profile.

    These five names are the whole persisted schema. Changing them orphans every
    existing enrollment, so only change them together with a data migration.
    """

    secret: str = "Google2FA_Secret"
    setup_complete: str = "Google2FA_Secret_SetupComplete"
    rescue_1: str = "Google2FA_SecretRescue1"
    rescue_2: str = "Google2FA_SecretRescue2"
    rescue_3: str = "Google2FA_SecretRescue3"

    @property
    def rescue(self) -> tuple[str, str, str]:
        return (self.rescue_1, self.rescue_2, self.rescue_3)

    def all(self) -> tuple[str, ...]:
        return (self.secret, self.setup_complete, *self.rescue)

    @classmethod
    def with_prefix(cls, prefix: str) -> "AttributeKeys":
        return AttributeKeys(
            secret=f"{prefix}_Secret",
            setup_complete=f"{prefix}_Secret_SetupComplete",
            rescue_1=f"{prefix}_SecretRescue1",
            rescue_2=f"{prefix}_SecretRescue2",
            rescue_3=f"{prefix}_SecretRescue3",
        )


@dataclass(slots=True, kw_only=True, frozen=True)
class SecondFactorConfig:
    max_retries: int = 4
    rescue_code_bytes: int = MIN_RESCUE_CODE_BYTES
    # number of 30 second steps either side of now that still verify
    valid_window: int = 1
    issuer: str = "SecondFactor"
    failure_counter_key: str = "AuthFailures"
    serialize_per_user: bool = True
    keys: AttributeKeys = field(default_factory=AttributeKeys)

    def validate(self) -> None:
        if self.max_retries < 0:
            raise InvalidConfig(f"max_retries must not be negative, got {self.max_retries}")
        if self.rescue_code_bytes < MIN_RESCUE_CODE_BYTES:
            raise InvalidConfig(
                f"rescue_code_bytes must be at least {MIN_RESCUE_CODE_BYTES}, got {self.rescue_code_bytes}"
            )
        if self.valid_window < 0:
            raise InvalidConfig(f"valid_window must not be negative, got {self.valid_window}")
        if not self.failure_counter_key:
            raise InvalidConfig("failure_counter_key must not be empty")
        names = self.keys.all()
        if not all(names):
            raise InvalidConfig("Attribute key names must not be empty")
        if len(set(names)) != len(names):
            raise InvalidConfig(f"Attribute key names must be distinct, got {', '.join(names)}")

    @classmethod
    def from_env(cls) -> "SecondFactorConfig":
        key_prefix = os.environ.get("SECONDFACTOR_KEY_PREFIX", "").strip()
        cfg = SecondFactorConfig(
            max_retries=_to_int("SECONDFACTOR_MAX_RETRIES", 4),
            rescue_code_bytes=_to_int("SECONDFACTOR_RESCUE_CODE_BYTES", MIN_RESCUE_CODE_BYTES),
            valid_window=_to_int("SECONDFACTOR_VALID_WINDOW", 1),
            issuer=os.environ.get("SECONDFACTOR_ISSUER", "SecondFactor"),
            serialize_per_user=to_bool(
                os.environ.get("SECONDFACTOR_SERIALIZE_PER_USER", "true"),
                context_str="SECONDFACTOR_SERIALIZE_PER_USER=",
            ),
            keys=AttributeKeys.with_prefix(key_prefix) if key_prefix else AttributeKeys(),
        )
        cfg.validate()
        return cfg


def is_development() -> bool:
    return os.environ.get("FLASK_ENV", "development").lower().strip() == "development"


def get_log_level() -> int:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper().strip()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise InvalidConfig(f"LOG_LEVEL '{level_name}' is not a valid logging level")
    return level


def get_totp_encryption_key() -> bytes:
    """Get the master key used to encrypt stored secrets, from TOTP_ENCRYPTION_KEY.

    The variable holds 32 random bytes, base64 encoded.
    """
    raw = os.environ.get("TOTP_ENCRYPTION_KEY", "")
    if not raw:
        raise ValueError("TOTP_ENCRYPTION_KEY environment variable must be set")
    try:
        key = base64.b64decode(raw, validate=True)
    except binascii.Error as e:
        raise ValueError("TOTP_ENCRYPTION_KEY must be base64 encoded") from e
    if len(key) != 32:
        raise ValueError(f"TOTP_ENCRYPTION_KEY must decode to 32 bytes, got {len(key)}")
    return key


@dataclass(slots=True, kw_only=True)
class RedisCfg:
    host: str
    port: int
    db: str = ""

    def to_url(self) -> str:
        if self.db:
            return f"redis://{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}"

    @classmethod
    def from_env(cls) -> "RedisCfg":
        host = os.environ.get("REDIS_HOST", "localhost")
        default_port = 63791 if host == "localhost" else 6379
        port = int(os.environ.get("REDIS_PORT", default_port))
        return RedisCfg(host=host, port=port)


class FlaskBaseConfig:
    """Base configuration class that loads from environment variables."""

    TESTING = False

    def __init__(self) -> None:
        self.SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
        self.FLASK_ENV: str = os.environ.get("FLASK_ENV", "development")
        self.DEBUG: bool = to_bool(os.environ.get("DEBUG", "False"), context_str="DEBUG=")

        self.BABEL_DEFAULT_LOCALE = os.environ.get("BABEL_DEFAULT_LOCALE", "en")
        self.SESSION_PERMANENT = False

        self.SECOND_FACTOR = SecondFactorConfig.from_env()


class FlaskConfig(FlaskBaseConfig):
    def __init__(self) -> None:
        super().__init__()
        # Server side sessions, so a client cannot replay an older failure counter
        redis_cfg = RedisCfg.from_env()
        self.SESSION_TYPE = "redis"
        self.SESSION_REDIS = Redis(host=redis_cfg.host, port=redis_cfg.port)


class FlaskTestConfig(FlaskBaseConfig):
    """Test configuration that keeps sessions on the local filesystem."""

    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.SECRET_KEY = "test-secret-key-aockgn298zx081238"  # noqa: S105
        self.FLASK_ENV = "testing"

        self.SESSION_TYPE = "cachelib"
        session_file_dir = Path(tempfile.gettempdir()) / "secondfactor_session"
        session_file_dir.mkdir(exist_ok=True)
        self.SESSION_CACHELIB = FileSystemCache(str(session_file_dir))


class FlaskProductionConfig(FlaskConfig):
    """Production configuration with stricter defaults."""

    def __init__(self) -> None:
        super().__init__()
        self.FLASK_ENV = "production"

        if self.SECRET_KEY == "dev-secret-key-change-in-production":  # noqa: S105
            raise InvalidConfig("SECRET_KEY must be set in production")


def get_config(config_name: str = "") -> FlaskBaseConfig:
    """Return the appropriate configuration based on FLASK_ENV or config_name."""
    env = config_name.strip() or os.environ.get("FLASK_ENV", "development")
    env = env.lower().strip()

    config_classes = {
        "development": FlaskConfig,
        "testing": FlaskTestConfig,
        "production": FlaskProductionConfig,
    }

    # Fall back to development if unknown config
    config_cls = config_classes.get(env, FlaskConfig)
    return config_cls()
