"""Account address helpers."""

from __future__ import annotations

import re

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(address: str | None) -> bool:
    """Return True if ``address`` is 0x followed by exactly 40 hex digits.

    Only the shape is checked; mixed-case checksums are not enforced.

    Examples:
        >>> is_valid_address("0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0")
        True
        >>> is_valid_address("0x123")
        False
    """
    if not isinstance(address, str):
        return False
    return ADDRESS_PATTERN.fullmatch(address) is not None


def normalize_address(address: str) -> str:
    """Lower-case form used for counter keys."""
    return address.lower()
