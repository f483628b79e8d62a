"""
Test suite for Utility Functions

This module contains unit tests for the hashing, canonical serialization and
identifier helpers.
"""

import hashlib
import re

from ayutrace.core.utils import (
    canonical_serialize,
    compute_hash_standalone,
    has_leading_zeros,
    random_suffix,
    short_uuid,
)
from ayutrace.security.secure_logging import sanitize_for_log


def test_compute_hash_standalone():
    assert compute_hash_standalone("abc") == hashlib.sha256(b"abc").hexdigest()
    assert len(compute_hash_standalone("")) == 64


def test_canonical_serialize_is_order_independent():
    """Key order must not change the canonical form"""
    first = canonical_serialize({"b": 1, "a": {"y": 2, "x": 3}})
    second = canonical_serialize({"a": {"x": 3, "y": 2}, "b": 1})
    assert first == second
    assert first == '{"a":{"x":3,"y":2},"b":1}'


def test_canonical_serialize_keeps_unicode():
    assert canonical_serialize({"name": "अश्वगंधा"}) == '{"name":"अश्वगंधा"}'


def test_has_leading_zeros():
    assert has_leading_zeros("00ab", 2)
    assert not has_leading_zeros("0a0b", 2)
    assert has_leading_zeros("ffff", 0)


def test_identifier_helpers():
    assert re.fullmatch(r"[0-9A-F]{8}", short_uuid())
    assert re.fullmatch(r"[0-9A-F]{12}", short_uuid(12))
    assert re.fullmatch(r"[a-z0-9]{6}", random_suffix())
    assert short_uuid() != short_uuid()


def test_sanitize_for_log_escapes_control_characters():
    assert sanitize_for_log("BATCH-1\nFAKE LOG LINE") == "BATCH-1\\nFAKE LOG LINE"
    assert sanitize_for_log(None) == "null"
    assert sanitize_for_log(42) == "42"
    assert sanitize_for_log("x" * 500).endswith("...[truncated]")
