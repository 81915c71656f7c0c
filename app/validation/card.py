"""Card number validation: issuer prefix, length and Luhn checksum."""

import re
from typing import Optional

from app.validation.base import ValidationResult, Validator, is_blank

CARD_PATTERN = re.compile(r"^603799[0-9]{10}$")


def luhn_checksum_ok(digits: str) -> bool:
    """
    Luhn mod-10 check.

    From the rightmost digit, double every second digit, subtract 9 when the
    doubled value exceeds 9, sum everything; valid iff the sum is a multiple
    of 10.
    """
    total = 0
    for i, ch in enumerate(reversed(digits)):
        n = int(ch)
        if i % 2 == 1:
            n *= 2
            if n > 9:
                n -= 9
        total += n
    return total % 10 == 0


class CardNumberValidator(Validator):
    """16-digit cards carrying the 603799 issuer prefix."""

    name = "card"

    def validate(self, raw: Optional[str]) -> ValidationResult:
        if is_blank(raw):
            return ValidationResult(False, "Input is null or empty.")
        if not CARD_PATTERN.fullmatch(raw):
            return ValidationResult(False, "Card number must start with 603799 and be 16 digits long.")
        if not luhn_checksum_ok(raw):
            return ValidationResult(False, "Card number does not pass Luhn checksum validation.")
        return ValidationResult(True, "Card number is valid.")
