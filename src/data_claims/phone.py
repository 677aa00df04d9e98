"""Phone number masking and validation.

Raw keystrokes are reduced to digits and re-masked as ``(XXX) XXX-XXXX``.
Only the mask shape is validated; area codes and exchanges are not checked.
"""

from __future__ import annotations

import re

COUNTRY_CODE = "+94"
MAX_DIGITS = 10

PHONE_MASK_RE = re.compile(r"\(\d{3}\) \d{3}-\d{4}", re.ASCII)
_NON_DIGIT_RE = re.compile(r"\D", re.ASCII)


def format_phone_number(value: str) -> str:
    """Mask raw input as ``(XXX) XXX-XXXX``, tolerating partial entry.

    Examples:
        >>> format_phone_number("55")
        '(55'
        >>> format_phone_number("55512")
        '(555) 12'
        >>> format_phone_number("555-123-45678")
        '(555) 123-4567'
    """
    digits = _NON_DIGIT_RE.sub("", value or "")
    if len(digits) >= 6:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:MAX_DIGITS]}"
    if len(digits) >= 3:
        return f"({digits[:3]}) {digits[3:]}"
    if digits:
        return f"({digits}"
    return ""


def is_valid_phone_number(value: str) -> bool:
    return bool(value) and PHONE_MASK_RE.fullmatch(value) is not None


def canonical_phone_number(masked: str, country_code: str = COUNTRY_CODE) -> str:
    """Prefix a masked number with its country code, e.g. ``+94 (555) 123-4567``."""
    return f"{country_code} {masked}"
