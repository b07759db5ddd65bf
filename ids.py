"""Identifier generation for new rows."""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Return a fresh, collision-resistant identifier."""
    return uuid.uuid4().hex
