from __future__ import annotations

import os
import secrets
import string
import time
import uuid

TEMPORARY_PASSWORD_LENGTH = 14


def generate_uuid7() -> str:
    """
    Generate a time-ordered UUIDv7 string.

    Used as the column default for every string primary key, so it must be
    callable with zero arguments.

    Layout:
    - 48-bit Unix timestamp in milliseconds
    - 4-bit version (0b0111)
    - 2-bit variant (0b10)
    - remaining bits random
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """
    Return a random password for accounts provisioned in bulk.

    Always contains at least one lowercase letter, one uppercase letter and
    one digit.
    """
    alphabet = string.ascii_letters + string.digits
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if (
            any(c.islower() for c in candidate)
            and any(c.isupper() for c in candidate)
            and any(c.isdigit() for c in candidate)
        ):
            return candidate
