"""Prefixed identifiers for rows the pipeline creates."""

import uuid


def generate_id(prefix: str) -> str:
    """Return *prefix* followed by 16 random hex chars, e.g. ``inc_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"
