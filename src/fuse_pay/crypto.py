"""
Cryptographic primitives for the session handshake and payload sealing.

- Symmetric key: 32 random bytes (AES-256).
- Key wrapping: RSA-OAEP with SHA-256 against the backend's PEM public key.
- Payload sealing: AES-256-GCM, wire format base64([nonce 12B][ciphertext + tag 16B]).

Security Note:
    Never log key material, plaintext or ciphertext values.
"""

import base64
import binascii
import logging
import secrets
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from fuse_pay.errors import DecryptionError

_LOGGER = logging.getLogger(__name__)

KEY_LENGTH: Final = 32  # AES-256
NONCE_SIZE: Final = 12  # 96-bit nonce
TAG_SIZE: Final = 16


def generate_symmetric_key() -> bytes:
    """Generate a fresh 256-bit session key."""
    return secrets.token_bytes(KEY_LENGTH)


def load_public_key(public_key: str) -> rsa.RSAPublicKey:
    """Load the backend's RSA public key.

    Args:
        public_key: PEM SubjectPublicKeyInfo text. A bare base64 body without
            the BEGIN/END armor is accepted too.

    Returns:
        The RSA public key object.
    """
    pem = public_key.strip()
    if not pem.startswith("-----BEGIN"):
        pem = f"-----BEGIN PUBLIC KEY-----\n{pem}\n-----END PUBLIC KEY-----"
    key = serialization.load_pem_public_key(pem.encode("ascii"))
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError(f"Unsupported public key type: {type(key).__name__}")
    return key


def wrap_key(public_key: str, key: bytes) -> str:
    """Encrypt the session key for the backend.

    Args:
        public_key: The backend's PEM public key.
        key: The raw symmetric key.

    Returns:
        Base64 RSA-OAEP ciphertext of the key.
    """
    rsa_key = load_public_key(public_key)
    wrapped = rsa_key.encrypt(
        key,
        padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=None),
    )
    return base64.b64encode(wrapped).decode("ascii")


def seal_payload(plaintext: bytes, key: bytes) -> str:
    """Encrypt bytes with AES-256-GCM under a fresh random nonce.

    Args:
        plaintext: Data to encrypt.
        key: 32-byte session key.

    Returns:
        Base64 of nonce followed by ciphertext and tag.
    """
    nonce = secrets.token_bytes(NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext, None)
    return base64.b64encode(nonce + ct).decode("ascii")


def open_payload(ciphertext: str, key: bytes) -> bytes:
    """Decrypt a sealed payload.

    Args:
        ciphertext: Base64 text produced by seal_payload.
        key: 32-byte session key.

    Returns:
        The decrypted plaintext.

    Raises:
        DecryptionError: On bad encoding, a truncated buffer, a wrong key or tampering.
    """
    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Ciphertext is not valid base64: {e}") from e

    _min = NONCE_SIZE + TAG_SIZE
    if len(raw) < _min:
        raise DecryptionError(f"Ciphertext too short: {len(raw)} bytes (minimum {_min})")

    try:
        return AESGCM(key).decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], None)
    except InvalidTag as e:
        _LOGGER.debug("Payload authentication failed")
        raise DecryptionError("Payload failed authentication (wrong key or tampered data)") from e


class Primitives:
    """Default primitive set. Pass a replacement to SessionManager or EnvelopeCodec to swap it."""

    generate_symmetric_key = staticmethod(generate_symmetric_key)
    wrap_key = staticmethod(wrap_key)
    seal_payload = staticmethod(seal_payload)
    open_payload = staticmethod(open_payload)


DEFAULT_PRIMITIVES: Final = Primitives()
