"""ABA routing number check digits."""
from __future__ import annotations

from typing import Union

CHECK_DIGIT_WEIGHTS = (3, 7, 1, 3, 7, 1, 3, 7)


def compute_check_digit(routing8: Union[str, int]) -> int:
    """Return the check digit for the first eight digits of a routing number."""

    digits = str(routing8).rjust(8, "0") if isinstance(routing8, int) else routing8
    if len(digits) != 8 or not (digits.isascii() and digits.isdigit()):
        raise ValueError(f"routing prefix must be 8 digits, got {routing8!r}")
    total = sum(int(digit) * weight for digit, weight in zip(digits, CHECK_DIGIT_WEIGHTS))
    return (10 - total % 10) % 10


def is_valid_routing(routing9: str) -> bool:
    """True when ``routing9`` is nine digits ending in the right check digit."""

    if len(routing9) != 9 or not (routing9.isascii() and routing9.isdigit()):
        return False
    return compute_check_digit(routing9[:8]) == int(routing9[8])


def routing_token_error(token: str) -> str | None:
    """Describe what is wrong with a file header routing token, if anything.

    The token is the decoded ``bTTTTAAAAC`` field with its leading blank
    removed. Some operators place a tenth digit in front of the routing
    number; only the trailing nine digits are checked.
    """

    if not (token.isascii() and token.isdigit()) or len(token) not in (9, 10):
        return f"expected 9 or 10 digits, got {token!r}"
    if not is_valid_routing(token[-9:]):
        return f"check digit mismatch in {token!r}"
    return None


__all__ = ["CHECK_DIGIT_WEIGHTS", "compute_check_digit", "is_valid_routing", "routing_token_error"]
