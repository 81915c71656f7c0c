"""Iranian IBAN validation (``IR`` + 24 digits, ISO 13616 MOD-97)."""

import re
from typing import Optional

from app.validation.base import ValidationResult, Validator, is_blank

IRANIAN_IBAN_PATTERN = re.compile(r"^IR[0-9]{24}$")


def mod97(iban: str) -> int:
    """
    Move the first four characters to the end, replace letters with their
    two-digit values (A=10 .. Z=35) and reduce the resulting integer mod 97.
    """
    rearranged = iban[4:] + iban[:4]
    numeric = "".join(str(int(ch, 36)) for ch in rearranged.upper())
    return int(numeric) % 97


class IbanValidator(Validator):
    name = "iban"

    def validate(self, raw: Optional[str]) -> ValidationResult:
        if is_blank(raw):
            return ValidationResult(False, "IBAN cannot be null or blank.")
        if not IRANIAN_IBAN_PATTERN.fullmatch(raw):
            return ValidationResult(
                False, "IBAN must start with 'IR' followed by 24 digits (total 26 characters)."
            )
        if mod97(raw) != 1:
            return ValidationResult(False, "IBAN checksum validation failed.")
        return ValidationResult(True, "IBAN is valid.")
