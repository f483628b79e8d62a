"""
Secure Logging Utilities for AyuTrace

Identifiers logged by the ledger (batch ids, product ids, QR codes) arrive
from outside callers. They are rendered through ``sanitize_for_log`` so that a
crafted value cannot forge extra log lines or terminal escape sequences.
"""

import json
from typing import Any

# Characters that can be used for log injection
LOG_INJECTION_CHARS = {
    "\n": "\\n",
    "\r": "\\r",
    "\x00": "\\x00",
    "\x1b": "\\x1b",  # ANSI escape
    "\t": "\\t",
}

MAX_LOGGED_LENGTH = 200


def sanitize_for_log(value: Any) -> str:
    """
    Sanitize a value before logging to prevent log injection.

    Args:
        value: Value to sanitize (string, mapping, sequence or scalar)

    Returns:
        Safe single-line string representation
    """
    if value is None:
        return "null"

    if isinstance(value, (int, float, bool)):
        return str(value)

    if isinstance(value, str):
        result = value
        for char, replacement in LOG_INJECTION_CHARS.items():
            result = result.replace(char, replacement)
        if len(result) > MAX_LOGGED_LENGTH:
            result = result[:MAX_LOGGED_LENGTH] + "...[truncated]"
        return result

    if isinstance(value, dict):
        return json.dumps({str(k): sanitize_for_log(v) for k, v in value.items()}, ensure_ascii=True)

    if isinstance(value, (list, tuple)):
        return json.dumps([sanitize_for_log(item) for item in value], ensure_ascii=True)

    return sanitize_for_log(str(value))
