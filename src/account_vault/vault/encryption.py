# Vault - Envelope Encryption
#
# Password → key (PBKDF2-HMAC-SHA512, 100k iterations, per-envelope salt)
# Profile blob encryption (AES-256-GCM, per-envelope IV, detached auth tag)
# Envelope wire shape: {encrypted, version, salt, iv, authTag, ciphertext} (hex)

import os
from dataclasses import dataclass
from typing import Any, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptFailure

ENVELOPE_VERSION = 1
SUPPORTED_VERSIONS = (1,)
ENVELOPE_FIELDS = ("version", "salt", "iv", "authTag", "ciphertext")

_DECRYPT_ERROR = "Unable to decrypt data (wrong password or corrupted file)"


@dataclass(frozen=True)
class Envelope:
    """Encrypted-at-rest wrapper around one profile blob."""

    version: int
    salt: str
    iv: str
    auth_tag: str
    ciphertext: str

    def to_dict(self) -> dict:
        return {
            "encrypted": True,
            "version": self.version,
            "salt": self.salt,
            "iv": self.iv,
            "authTag": self.auth_tag,
            "ciphertext": self.ciphertext,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Envelope":
        """Parse a tagged envelope, rejecting unknown versions and bad field sizes."""
        if not is_envelope(data):
            raise DecryptFailure("Malformed encrypted envelope")
        version = data["version"]
        if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
            raise DecryptFailure(f"Unsupported envelope version: {version!r}")

        envelope = cls(
            version=version,
            salt=data["salt"],
            iv=data["iv"],
            auth_tag=data["authTag"],
            ciphertext=data["ciphertext"],
        )
        expected = {
            "salt": EnvelopeCodec.SALT_LENGTH,
            "iv": EnvelopeCodec.IV_LENGTH,
            "auth_tag": EnvelopeCodec.AUTH_TAG_LENGTH,
        }
        try:
            for name, length in expected.items():
                if len(bytes.fromhex(getattr(envelope, name))) != length:
                    raise DecryptFailure("Malformed encrypted envelope")
            bytes.fromhex(envelope.ciphertext)
        except (TypeError, ValueError):
            raise DecryptFailure("Malformed encrypted envelope")
        return envelope


@dataclass(frozen=True)
class PlaintextBlob:
    """A stored profile blob that is not encrypted."""

    value: Any


StoredBlob = Union[PlaintextBlob, Envelope]


def is_envelope(value: Any) -> bool:
    """Structural check: ``encrypted`` is true and all five fields are present."""
    if not isinstance(value, dict) or value.get("encrypted") is not True:
        return False
    return all(value.get(name) is not None for name in ENVELOPE_FIELDS)


def classify_blob(value: Any) -> StoredBlob:
    """
    Decide whether a stored JSON value is plaintext or an envelope.

    The ``encrypted`` tag decides. A tagged value that does not parse as a
    supported envelope raises DecryptFailure instead of falling back to
    plaintext.
    """
    if isinstance(value, dict) and value.get("encrypted") is True:
        return Envelope.from_dict(value)
    return PlaintextBlob(value)


class EnvelopeCodec:
    """
    Encrypts and decrypts profile blobs under the vault password.

    Flow:
    1. A fresh 256-bit salt and 96-bit IV are generated for every envelope
    2. PBKDF2-HMAC-SHA512 derives a 256-bit key from password + salt
    3. AES-256-GCM encrypts; the 128-bit tag is stored beside the ciphertext
    """

    PBKDF2_ITERATIONS = 100_000
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 32  # 256-bit salt
    IV_LENGTH = 12  # 96-bit IV for GCM
    AUTH_TAG_LENGTH = 16  # 128-bit tag

    @staticmethod
    def derive_key(password: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
        """
        Derive a 256-bit key from a password using PBKDF2-HMAC-SHA512.

        Args:
            password: Vault password
            salt: Random salt (stored with the envelope or PasswordConfig)
            iterations: PBKDF2 iteration count

        Returns:
            32-byte key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=EnvelopeCodec.KEY_LENGTH,
            salt=salt,
            iterations=iterations,
            backend=default_backend()
        )
        return kdf.derive(password.encode('utf-8'))

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(EnvelopeCodec.SALT_LENGTH)

    @staticmethod
    def encrypt(plaintext: str, password: str) -> Envelope:
        """
        Encrypt a profile blob.

        Args:
            plaintext: Serialized JSON text
            password: Vault password

        Returns:
            Envelope with hex-encoded salt, iv, authTag and ciphertext
        """
        salt = EnvelopeCodec.generate_salt()
        iv = os.urandom(EnvelopeCodec.IV_LENGTH)
        key = EnvelopeCodec.derive_key(password, salt)

        sealed = AESGCM(key).encrypt(iv, plaintext.encode('utf-8'), None)
        ciphertext = sealed[:-EnvelopeCodec.AUTH_TAG_LENGTH]
        auth_tag = sealed[-EnvelopeCodec.AUTH_TAG_LENGTH:]

        return Envelope(
            version=ENVELOPE_VERSION,
            salt=salt.hex(),
            iv=iv.hex(),
            auth_tag=auth_tag.hex(),
            ciphertext=ciphertext.hex(),
        )

    @staticmethod
    def decrypt(envelope: Union[Envelope, dict], password: str) -> str:
        """
        Decrypt an envelope back to its JSON text.

        Raises:
            DecryptFailure: Wrong password, tampered data or malformed envelope.
                The message does not say which.
        """
        if isinstance(envelope, dict):
            envelope = Envelope.from_dict(envelope)

        try:
            salt = bytes.fromhex(envelope.salt)
            iv = bytes.fromhex(envelope.iv)
            sealed = bytes.fromhex(envelope.ciphertext) + bytes.fromhex(envelope.auth_tag)
            key = EnvelopeCodec.derive_key(password, salt)
            plaintext = AESGCM(key).decrypt(iv, sealed, None)
            return plaintext.decode('utf-8')
        except (InvalidTag, ValueError, TypeError):
            raise DecryptFailure(_DECRYPT_ERROR) from None
