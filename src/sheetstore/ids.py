"""
Row identifier generation.

IDs are a short prefix naming the sheet, a dash, and a fixed-length random
hex suffix. There is no counter and no shared state, so IDs stay distinct
across sheets and process restarts without coordination. Collisions are an
accepted, vanishingly rare risk rather than a handled error.
"""

import uuid

ID_SEPARATOR = "-"
DEFAULT_ID_LENGTH = 16
MAX_ID_LENGTH = 32


def generate_id(prefix: str, length: int = DEFAULT_ID_LENGTH) -> str:
    """
    Generate a new row ID.

    Args:
        prefix: Identifying prefix, usually derived from the sheet name
        length: Number of random hex characters (1-32)

    Returns:
        The generated ID, e.g. ``"c-3f9a0c1d5e7b2a46"``
    """
    if not 0 < length <= MAX_ID_LENGTH:
        msg = f"ID length must be between 1 and {MAX_ID_LENGTH}, got {length}"
        raise ValueError(msg)
    return f"{prefix}{ID_SEPARATOR}{uuid.uuid4().hex[:length]}"


def default_prefix(sheet_name: str) -> str:
    """Default ID prefix for a sheet: its first character."""
    return sheet_name[:1] or "x"
