"""Session identifiers."""

from __future__ import annotations

import uuid

NIL_ID = uuid.UUID(int=0)


def new_id() -> uuid.UUID:
    """Return a fresh random identifier."""
    return uuid.uuid4()


def parse_id(text: str) -> uuid.UUID | None:
    """Parse an identifier from text, returning None when it is not one."""
    try:
        return uuid.UUID(text)
    except (ValueError, TypeError, AttributeError):
        return None