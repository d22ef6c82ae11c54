"""Display formatting for amounts."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union


def _group_indian(digits: str) -> str:
    """Group digits the Indian way: 12,34,56,789."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(value: Union[Decimal, int, float, str], prefix: str = "Rs.") -> str:
    """
    Format an amount for display, e.g. 'Rs. 1,23,456.78'.

    Always two decimals, rounded half up. Negative amounts keep their
    sign after the prefix.
    """
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):f}".partition(".")
    return f"{prefix} {sign}{_group_indian(whole)}.{fraction or '00'}"
