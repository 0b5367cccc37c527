"""
Input validation for conversation steps.

All checks are local: nothing here talks to the payments API.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# 1-6 digits, optionally split into space separated groups ("12 34 56")
OTP_REGEX = re.compile(r"^\s*\d{1,6}(?:\s+\d{1,6})*\s*$")

AMOUNT_REGEX = re.compile(r"^\d+(\.\d{1,6})?$")

MIN_ADDRESS_LENGTH = 32

SKIP_KEYWORD = "skip"


def is_valid_email(text: Optional[str]) -> bool:
    """Full email syntax check used by the login flow."""
    if not text:
        return False
    return EMAIL_REGEX.match(text.strip()) is not None


def normalize_otp(text: Optional[str]) -> Optional[str]:
    """
    Validate an OTP and strip its whitespace.

    Returns:
        The digits without whitespace (``"12 34 56"`` -> ``"123456"``), or
        None if the text is not an OTP.
    """
    if not text or not OTP_REGEX.match(text):
        return None
    return re.sub(r"\s+", "", text)


def parse_amount(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse a transfer amount.

    Accepts plain decimals with at most 6 fractional digits that are
    strictly greater than zero. ``"0"``, ``"-1"``, ``"abc"`` and
    ``"1.1234567"`` are rejected.

    Returns:
        The amount as Decimal, or None if invalid.
    """
    if not text:
        return None
    text = text.strip()
    if not AMOUNT_REGEX.match(text):
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if amount <= 0:
        return None
    return amount


def is_valid_recipient(text: Optional[str]) -> bool:
    """Recipients of email transfers only need to look like an address."""
    return bool(text and text.strip() and "@" in text)


def is_valid_wallet_address(text: Optional[str]) -> bool:
    return bool(text) and len(text.strip()) >= MIN_ADDRESS_LENGTH


def normalize_description(text: Optional[str]) -> str:
    """``skip`` (any case) means no description."""
    description = (text or "").strip()
    if description.lower() == SKIP_KEYWORD:
        return ""
    return description
