"""Symmetric encryption for stored quiz data."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken

from src.config import settings

log = logging.getLogger(__name__)


def _fernet(passphrase: Optional[str] = None) -> Fernet:
    # Fernet wants 32 url-safe base64 bytes; derive them from the passphrase.
    secret = (passphrase or settings.ENCRYPTION_KEY).encode("utf-8")
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret).digest()))


def encrypt(data: Any, passphrase: Optional[str] = None) -> Optional[str]:
    """Serialize `data` to JSON and encrypt it. Returns None on failure."""
    try:
        raw = json.dumps(data).encode("utf-8")
        return _fernet(passphrase).encrypt(raw).decode("ascii")
    except (TypeError, ValueError) as e:
        log.error(f"Encryption error: {e}")
        return None


def decrypt(token: Optional[str], passphrase: Optional[str] = None) -> Any:
    """Reverse `encrypt`. Returns None for empty input or a bad token."""
    if not token:
        return None
    try:
        raw = _fernet(passphrase).decrypt(token.encode("ascii"))
        return json.loads(raw.decode("utf-8"))
    except (InvalidToken, UnicodeError, ValueError) as e:
        log.error(f"Decryption error: {e!r}")
        return None
