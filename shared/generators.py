"""
Random code generators — pure, side-effect-free functions.

All generators draw from the ``secrets`` CSPRNG.
"""

from __future__ import annotations

import secrets


def generate_otp_code(length: int = 6) -> str:
    """Generate a numeric one-time code with no leading zero.

    The value is uniform over ``10**(length-1)`` .. ``10**length - 1``
    (100000–999999 for the default length).

    Args:
        length: Number of digits (default 6).

    Returns:
        String of decimal digits of exactly *length* characters.
    """
    if length < 1:
        raise ValueError("length must be positive")
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(10**length - low))

