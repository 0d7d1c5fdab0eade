"""
Auth security helpers.
"""

from __future__ import annotations

import secrets


def token_matches(provided: str, expected: str) -> bool:
    """
    Constant-time comparison of a presented token against the configured one.
    """
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
