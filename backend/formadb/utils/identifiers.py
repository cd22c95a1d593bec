# backend/formadb/utils/identifiers.py
"""
Identifier helpers.

Entity ids are short and human-readable ("FRM-7K2Q9D1B"); certificate
codes embed the issue date plus a time-ordered random suffix.
"""

from __future__ import annotations

import secrets
import string
import time
import uuid
from datetime import datetime
from typing import Callable

ID_ALPHABET = string.ascii_uppercase + string.digits
ID_BLOCK_LENGTH = 8


def generate_entity_id(prefix: str = "ID") -> str:
    """
    'PREFIX-XXXXXXXX' with an 8 character uppercase alphanumeric block.

    Usable directly as a column default: SQLAlchemy calls it without
    arguments.
    """
    block = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_BLOCK_LENGTH))
    return f"{prefix}-{block}" if prefix else block


def prefixed_id_factory(prefix: str) -> Callable[[], str]:
    """Column default bound to one entity prefix (USR, FRM, LVL, SES, ATT, CRT)."""

    def _factory() -> str:
        return generate_entity_id(prefix)

    return _factory


def generate_uuid7() -> str:
    """Time-ordered UUID: 48-bit millisecond timestamp, version 7, random tail."""
    value = (int(time.time() * 1000) & ((1 << 48) - 1)) << 80
    value |= secrets.randbits(80)
    # Version nibble (bits 76-79) and RFC 4122 variant (bits 62-63).
    value = (value & ~(0xF << 76)) | (0x7 << 76)
    value = (value & ~(0x3 << 62)) | (0x2 << 62)
    return str(uuid.UUID(int=value))


def generate_certificate_code(now: datetime | None = None) -> str:
    """
    CERT-<yyyymmdd>-<12 hex chars>, e.g. CERT-20260303-0193A7F2C41B.

    The suffix is the tail of a UUIDv7, so codes stay unique across
    processes and sort roughly by issuance time.
    """
    stamp = (now or datetime.utcnow()).strftime("%Y%m%d")
    suffix = generate_uuid7().replace("-", "")[-12:].upper()
    return f"CERT-{stamp}-{suffix}"
