"""RSA password encryption for the login handshake."""

from __future__ import annotations

import base64
import textwrap

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from capitalcom.engine.errors import EncryptionError


def pemFromKey(encryptionKey: str) -> bytes:
    """Wrap a bare base64 public key into PEM form (64 character lines)."""
    body = "\n".join(textwrap.wrap(encryptionKey.strip(), 64))
    return f"-----BEGIN PUBLIC KEY-----\n{body}\n-----END PUBLIC KEY-----\n".encode()


def encryptPassword(encryptionKey: str, timestamp: int, password: str) -> str:
    """Encrypt 'password|timestamp' with the server's RSA public key.

    The plaintext is base64 encoded before encryption and the ciphertext is
    returned base64 encoded. Padding is PKCS#1 v1.5.
    """
    payload = base64.b64encode(f"{password}|{timestamp}".encode())

    try:
        publicKey = serialization.load_pem_public_key(pemFromKey(encryptionKey))
    except (ValueError, UnsupportedAlgorithm) as e:
        raise EncryptionError(f"Invalid encryption key: {e}") from e

    if not isinstance(publicKey, rsa.RSAPublicKey):
        raise EncryptionError("Invalid encryption key: not an RSA public key")

    try:
        encrypted = publicKey.encrypt(payload, padding.PKCS1v15())
    except ValueError as e:
        # plaintext too long for the key size
        raise EncryptionError(f"Password encryption failed: {e}") from e

    return base64.b64encode(encrypted).decode()
