from __future__ import annotations

import uuid


def new_id() -> str:
    """Opaque 32-char hex identifier used as primary key for every document."""
    return uuid.uuid4().hex
