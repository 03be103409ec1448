"""
Price derivations over a dress's size variants.

Prices are never stored on the dress itself; they are derived from its
sizes every time they are needed.
"""
from typing import Optional, Sequence, Tuple

from .exceptions import EmptyVariantSetError

CURRENCY_SUFFIX = "tk"


def price_range(sizes: Sequence) -> Tuple[float, float]:
    """
    Return the (lowest, highest) price across the given sizes.
    
    Raises:
        EmptyVariantSetError: if ``sizes`` is empty. Persisted dresses always
            have at least one size, so this only fires on unvalidated input.
    """
    if not sizes:
        raise EmptyVariantSetError()
    prices = [size.price for size in sizes]
    return min(prices), max(prices)


def min_price(sizes: Sequence) -> Optional[float]:
    """Lowest price, or None when the price is unknown (no sizes)."""
    if not sizes:
        return None
    return price_range(sizes)[0]


def max_price(sizes: Sequence) -> Optional[float]:
    if not sizes:
        return None
    return price_range(sizes)[1]


def format_price(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}".rstrip("0")


def format_price_range(sizes: Sequence) -> Optional[str]:
    """
    Human readable price label: ``"500tk"`` when every size costs the same,
    ``"500-800tk"`` otherwise.
    """
    if not sizes:
        return None
    low, high = price_range(sizes)
    if low == high:
        return f"{format_price(low)}{CURRENCY_SUFFIX}"
    return f"{format_price(low)}-{format_price(high)}{CURRENCY_SUFFIX}"
