from __future__ import annotations

import hashlib


def assign_posting_id(url: str) -> str:
    """Return the stable identifier for a posting: sha256 hex of its absolute URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()
