"""Helpers for TestRail case id tokens.

A case id token is the id as written in local results: an optional
single-letter prefix followed by decimal digits, e.g. ``C1234`` or ``1234``.
"""

import re
from typing import Optional

CASE_ID_PATTERN = re.compile(r"[A-Za-z]?[0-9]+", re.ASCII)


def validate_case_id(token: Optional[str]) -> bool:
    """Check whether a token is a well-formed case id."""
    if token is None:
        return False
    return CASE_ID_PATTERN.fullmatch(token) is not None


def extract_case_id(token: str) -> int:
    """Convert a case id token to its numeric id.

    Args:
        token: A well-formed case id token (``C1234`` or ``1234``).

    Returns:
        The numeric case id, without the letter prefix.

    Raises:
        ValueError: If the token is not a well-formed case id.
    """
    if not validate_case_id(token):
        raise ValueError(f"Invalid TestRail case id: {token!r}")
    if token[0].isalpha():
        token = token[1:]
    return int(token)
