"""Map message identities to stable on-disk file names."""

from __future__ import annotations

import hashlib
from pathlib import Path

# Existing message corpora were written with 31-byte prefixes; changing this
# renames every file and defeats deduplication against them.
FINGERPRINT_BYTES = 31
MESSAGE_SUFFIX = ".eml"


def _identity_bytes(message_id: str | bytes) -> bytes:
    if isinstance(message_id, bytes):
        return message_id
    return message_id.encode("utf-8", errors="surrogateescape")


def fingerprint(message_id: str | bytes) -> str:
    """Return the lowercase hex of a truncated SHA-512 digest of the message ID.

    Args:
        message_id: Server-assigned Message-ID. Strings carrying undecodable
            bytes as surrogates hash to the same value as the raw bytes.

    Returns:
        A 62-character hex string (31 digest bytes).
    """
    digest = hashlib.sha512(_identity_bytes(message_id)).digest()
    return digest[:FINGERPRINT_BYTES].hex()


def message_filename(message_id: str | bytes) -> str:
    return f"{fingerprint(message_id)}{MESSAGE_SUFFIX}"


def message_path(base_dir: Path | str, message_id: str | bytes) -> Path:
    """Return the file path a message with this ID is stored at under base_dir."""
    return Path(base_dir) / message_filename(message_id)
