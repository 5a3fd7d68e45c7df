"""
Display helpers for subscription plans
"""

from typing import Union

Number = Union[int, float]


def _group_indian(digits: str) -> str:
    """Group an integer string the Indian way: 12,34,567"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_price(amount: Number) -> str:
    """
    Format a rupee amount for display

    Whole amounts carry no decimals (``1000 -> "₹1,000"``); fractional
    amounts keep up to two (``999.5 -> "₹999.5"``).
    """
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):.2f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{sign}₹{text}"


def duration_text(months: int) -> str:
    """Human readable plan duration: 6 -> "6 months", 14 -> "1 year 2 months" """
    years, remainder = divmod(months, 12)
    parts = []
    if years:
        parts.append(f"{years} year" + ("s" if years > 1 else ""))
    if remainder or not years:
        parts.append(f"{remainder} month" + ("s" if remainder != 1 else ""))
    return " ".join(parts)


def monthly_price(price: Number, months: int) -> int:
    """Effective price per month, rounded to whole rupees"""
    if months <= 0:
        return int(round(price))
    return int(round(price / months))
