"""General-purpose helper utilities for the LocalRank toolkit."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

DEFAULT_SHARE_BASE = "https://app.localrank.so"


def round_rank(value: Optional[float], places: int = 1) -> Optional[float]:
    """Round a rank value, halves away from zero.

    Args:
        value: Rank or delta to round. ``None`` passes through.
        places: Number of decimal places.

    Returns:
        Rounded float, or ``None`` when *value* is ``None``.

    Examples:
        >>> round_rank(4.25)
        4.3
        >>> round_rank(-4.25)
        -4.3
        >>> round_rank(None) is None
        True
    """
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded)


def share_url(token: Optional[str], base: str = DEFAULT_SHARE_BASE) -> Optional[str]:
    """Build the public view URL for a scan share token."""
    if not token:
        return None
    return base.rstrip("/") + "/share/" + token


def matches_search(name: Optional[str], search: Optional[str]) -> bool:
    """Case-insensitive substring match used for user-supplied search terms."""
    if not search:
        return True
    if not name:
        return False
    return search.lower() in name.lower()


def mask_secret(secret: Optional[str], visible: int = 8) -> Optional[str]:
    """Mask a secret, keeping only its first *visible* characters.

    Examples:
        >>> mask_secret("lr_abcdefghijkl")
        'lr_abcde...'
    """
    if not secret:
        return None
    return secret[:visible] + "..."


def format_rank(value: Optional[float]) -> str:
    """Render a rank for messages: rounded to 0.1, no trailing ``.0``.

    Examples:
        >>> format_rank(12.0)
        '12'
        >>> format_rank(6.24)
        '6.2'
        >>> format_rank(None)
        'N/A'
    """
    rounded = round_rank(value)
    if rounded is None:
        return "N/A"
    return f"{rounded:g}"
