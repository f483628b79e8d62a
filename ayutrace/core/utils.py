"""
Utility functions for AyuTrace.

This module provides the hashing and canonical serialization primitives used
by blocks and the ledger, identifier helpers and timestamp formatting.
"""

import hashlib
import json
import secrets
import time
import uuid
from typing import Any
from datetime import datetime


def compute_hash_standalone(data_string: str) -> str:
    """Pure function to compute a SHA-256 hex digest of a string."""
    return hashlib.sha256(data_string.encode()).hexdigest()


def canonical_serialize(data: Any) -> str:
    """
    Serialize JSON-compatible data deterministically.

    Keys are sorted and separators compacted so that equal payloads always
    produce the same string (and therefore the same digest).

    Args:
        data: JSON-compatible data (dicts, lists, strings, numbers, booleans, None)

    Returns:
        Canonical JSON string
    """
    return json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


def has_leading_zeros(digest: str, difficulty: int) -> bool:
    """Check whether a hex digest starts with ``difficulty`` zero characters."""
    return digest[:difficulty] == "0" * difficulty


def current_millis() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def short_uuid(length: int = 8) -> str:
    """Upper-case hex prefix of a random UUID."""
    return uuid.uuid4().hex[:length].upper()


def random_suffix(length: int = 6) -> str:
    """Random lowercase alphanumeric suffix."""
    alphabet = "abcdefghijklmnopqrstuvwxyz0123456789"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def format_timestamp(timestamp: float) -> str:
    """
    Format timestamp for human-readable display.

    Args:
        timestamp: Unix timestamp in seconds

    Returns:
        Formatted timestamp string
    """
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")
