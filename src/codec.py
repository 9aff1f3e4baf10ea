"""Reddit identifier decoding for Reddit IRC Bot."""

import re

# Fullname prefix for links ("t3_" + base36 id)
LINK_PREFIX = "t3_"

UINT64_MAX = 2**64 - 1

_BASE36_RE = re.compile(r"^[0-9A-Za-z]+$")


class IdentifierError(ValueError):
    """Raised when an identifier suffix cannot be decoded."""


def split_identifier(raw_id: str | None) -> str | None:
    """Return the encoded suffix of a link fullname.

    Args:
        raw_id: Raw identifier as found in the feed, e.g. ``t3_1abcd``

    Returns:
        The suffix after the prefix tag, or None when the prefix is missing
    """
    if not raw_id or not raw_id.startswith(LINK_PREFIX):
        return None
    return raw_id[len(LINK_PREFIX) :]


def decode(suffix: str) -> int:
    """Decode a base36 suffix into an unsigned 64-bit integer.

    Args:
        suffix: Encoded identifier without the prefix tag

    Returns:
        Decoded numeric identifier

    Raises:
        IdentifierError: If the suffix is empty, not base36 or overflows 64 bits
    """
    if not suffix or not _BASE36_RE.match(suffix):
        raise IdentifierError(f"Invalid base36 identifier: {suffix!r}")

    value = int(suffix, 36)
    if value > UINT64_MAX:
        raise IdentifierError(f"Identifier out of range: {suffix!r}")
    return value


def encode(value: int) -> str:
    """Encode a numeric identifier back into lowercase base36."""
    if value < 0 or value > UINT64_MAX:
        raise IdentifierError(f"Identifier out of range: {value}")

    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    chars = []
    while value:
        value, rem = divmod(value, 36)
        chars.append(digits[rem])
    return "".join(reversed(chars))
