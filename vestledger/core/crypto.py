"""
vestledger/core/crypto.py

Operator key: the Ed25519 key that signs disbursement journal records.

    OperatorKey.generate()                   → new random key (not persisted)
    OperatorKey.load(path)                   → PEM private key from disk
    OperatorKey.load_or_create(path)         → load, or create and save with 0600
    key.public_key_hex                       → 64-char lowercase hex
    key.sign(data)                           → base64url signature, no padding
    OperatorKey.verify(data, sig, pubkey)    → bool, never raises

Verification needs only the public key embedded in the record, so an
auditor can check a journal without access to the operator's key file.
"""

import base64
import binascii
import os
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from vestledger.core.exceptions import JournalError

SIGNATURE_BYTES  = 64
PUBLIC_KEY_BYTES = 32


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class OperatorKey:
    """Ed25519 signing key for one vestledger home directory."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "OperatorKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def load(cls, path: Path) -> "OperatorKey":
        """Raises JournalError if the file is missing or is not an Ed25519 PEM key."""
        path = Path(path)
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except (OSError, ValueError, TypeError) as exc:
            raise JournalError(f"cannot load operator key: {exc}", {"path": str(path)}) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise JournalError("operator key is not Ed25519", {"path": str(path)})
        return cls(private_key)

    @classmethod
    def load_or_create(cls, path: Path) -> "OperatorKey":
        path = Path(path)
        if path.exists():
            return cls.load(path)
        key = cls.generate()
        key.save(path)
        return key

    # ── Signing ───────────────────────────────────────────────

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign(self, data: bytes) -> str:
        return _b64url_encode(self._private_key.sign(data))

    @staticmethod
    def verify(data: bytes, signature: str, public_key_hex: str) -> bool:
        """
        True only if `signature` is a valid Ed25519 signature over `data` by
        `public_key_hex`. Malformed keys or signatures count as invalid.
        """
        if not isinstance(signature, str) or not isinstance(public_key_hex, str):
            return False
        try:
            raw_key = bytes.fromhex(public_key_hex)
            raw_sig = _b64url_decode(signature)
        except (ValueError, binascii.Error):
            return False
        if len(raw_key) != PUBLIC_KEY_BYTES or len(raw_sig) != SIGNATURE_BYTES:
            return False
        try:
            Ed25519PublicKey.from_public_bytes(raw_key).verify(raw_sig, data)
        except InvalidSignature:
            return False
        return True

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """Write the private key as unencrypted PKCS8 PEM, readable by the owner only."""
        path = Path(path)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(pem)
        except OSError as exc:
            raise JournalError(f"cannot save operator key: {exc}", {"path": str(path)}) from exc

    def __repr__(self) -> str:
        return f"OperatorKey(public_key_hex={self._public_key_hex[:16]}...)"
