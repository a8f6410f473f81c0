from __future__ import annotations

import os
import time
import uuid


def generate_uuid7() -> str:
    """
    Generate a time-ordered UUIDv7 string for primary keys.

    48-bit millisecond timestamp, then version/variant bits, then randomness,
    so ids created later in the same warehouse day sort after earlier ones.
    """
    ts_ms = int(time.time() * 1000) & ((1 << 48) - 1)
    rand = int.from_bytes(os.urandom(10), "big")
    value = (ts_ms << 80) | rand
    value = (value & ~(0xF << 76)) | (0x7 << 76)
    value = (value & ~(0x3 << 62)) | (0x2 << 62)
    return str(uuid.UUID(int=value))


def normalize_code(value: str) -> str:
    """Item codes, warehouse codes and number prefixes are stored upper-cased."""
    return (value or "").strip().upper()
