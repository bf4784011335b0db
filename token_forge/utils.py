import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(address: str) -> bool:
    """Checks the 0x + 40 hex character account format (no checksum check)."""
    return bool(ADDRESS_PATTERN.match(address))


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address comparison."""
    return a.lower() == b.lower()


def parse_positive_decimal(value: str) -> Optional[Decimal]:
    """Parses a decimal string, returning None unless it is a finite number > 0."""
    try:
        parsed = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not parsed.is_finite() or parsed <= 0:
        return None
    return parsed


def percent_to_bps(percent: Decimal) -> int:
    """Converts a percentage to basis points, rounding half up (6.255% -> 626)."""
    return int((percent * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
