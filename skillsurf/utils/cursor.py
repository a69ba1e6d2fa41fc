"""Opaque pagination cursors for the (stars desc, id asc) skill ordering."""

from __future__ import annotations

import base64
import binascii

CURSOR_VERSION = "v1"


def encode_cursor(stars: int, skill_id: str) -> str:
    raw = f"{CURSOR_VERSION}|{stars}|{skill_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def decode_cursor(cursor: str | None) -> tuple[int, str] | None:
    """Return (stars, skill_id), or None for anything that does not decode.

    Accepts the legacy unversioned ``stars|skillId`` payload as well.
    """
    if not cursor:
        return None
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        decoded = base64.urlsafe_b64decode(padded.encode()).decode()
    except (binascii.Error, UnicodeError, ValueError):
        return None

    parts = decoded.split("|", 2)
    if parts[0] == CURSOR_VERSION and len(parts) == 3:
        stars_str, skill_id = parts[1], parts[2]
    elif len(parts) >= 2 and not parts[0].startswith("v"):
        stars_str, skill_id = decoded.split("|", 1)
    else:
        return None

    try:
        stars = int(stars_str)
    except ValueError:
        return None
    if not skill_id:
        return None
    return stars, skill_id
