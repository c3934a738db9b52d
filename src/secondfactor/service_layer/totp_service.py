"""ABOUTME: TOTP service for two-factor authentication core functions
ABOUTME: Handles TOTP secret generation, code verification, rescue randomness, QR codes and secret encryption"""

import base64
import io
import secrets

import pyotp
import qrcode
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from secondfactor.config import get_totp_encryption_key
from secondfactor.service_layer.ports import OneTimeCodeVerifier, SecureRandom


class PyotpCodeVerifier(OneTimeCodeVerifier):
    """OneTimeCodeVerifier backed by pyotp."""

    def __init__(self, valid_window: int = 1) -> None:
        self.valid_window = valid_window

    def generate_secret(self) -> str:
        """Generate a new random TOTP secret (base32 encoded)."""
        return pyotp.random_base32()

    def verify(self, secret: str, code: str) -> bool:
        """Verify a TOTP code against a secret.

        valid_window=1 accepts codes from the previous and next 30-second window,
        which covers clock drift between server and authenticator app.
        """
        if not secret or not code:
            return False
        totp = pyotp.TOTP(secret)
        return totp.verify(code, valid_window=self.valid_window)


class TokenHexRandom(SecureRandom):
    def hex(self, byte_len: int) -> str:
        return secrets.token_hex(byte_len)


def provisioning_uri(secret: str, name: str, issuer: str) -> str:
    """otpauth:// URI that authenticator apps import."""
    return pyotp.TOTP(secret).provisioning_uri(name=name, issuer_name=issuer)


def generate_qr_code_data_url(secret: str, name: str, issuer: str) -> str:
    """Generate a QR code as a data URL for the authenticator app.

    Args:
        secret: The TOTP secret
        name: Account name shown in the app, usually the user name or email
        issuer: The application name

    Returns:
        Data URL string (data:image/png;base64,...)
    """
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(provisioning_uri(secret, name, issuer))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer)
    buffer.seek(0)
    img_base64 = base64.b64encode(buffer.getvalue()).decode("ascii")

    return f"data:image/png;base64,{img_base64}"


def derive_user_encryption_key(master_key: bytes, user_key: str) -> bytes:
    """Derive a user-specific encryption key from the master key using HKDF.

    This ensures each user has a different encryption key even with the same master key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"secondfactor-totp-encryption",
        info=user_key.encode("utf-8"),
    )
    return hkdf.derive(master_key)


def _fernet_for(user_key: str) -> Fernet:
    user_encryption_key = derive_user_encryption_key(get_totp_encryption_key(), user_key)
    # Fernet requires a base64-encoded 32-byte key
    return Fernet(base64.urlsafe_b64encode(user_encryption_key))


def encrypt_value(value: str, user_key: str) -> str:
    """Encrypt a secret or rescue code for storage.

    Args:
        value: The plaintext value
        user_key: Stable identifier of the user, used for key derivation

    Returns:
        Fernet token as an ascii string
    """
    return _fernet_for(user_key).encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_value(encrypted_value: str, user_key: str) -> str:
    """Decrypt a value written by encrypt_value(). Raises cryptography.fernet.InvalidToken on tampering."""
    return _fernet_for(user_key).decrypt(encrypted_value.encode("ascii")).decode("utf-8")
