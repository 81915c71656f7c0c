"""Iranian national ID (code melli) validation."""

import re
from typing import Optional

from app.validation.base import ValidationResult, Validator, is_blank

ID_PATTERN = re.compile(r"^[0-9]{10}$")

DISALLOWED_SEQUENCES = frozenset(
    [str(d) * 10 for d in range(10)] + ["0123456789", "9876543210"]
)


def national_id_checksum_ok(code: str) -> bool:
    """Weights 10..2 over the first nine digits, remainder mod 11 against the tenth."""
    total = sum(int(code[i]) * (10 - i) for i in range(9))
    remainder = total % 11
    check = int(code[9])
    if remainder < 2:
        return check == remainder
    return check == 11 - remainder


class NationalIdValidator(Validator):
    name = "national_id"

    def validate(self, raw: Optional[str]) -> ValidationResult:
        if is_blank(raw):
            return ValidationResult(False, "Input cannot be null or blank.")
        if not ID_PATTERN.fullmatch(raw):
            return ValidationResult(False, "Input must be exactly 10 numeric digits.")
        if raw in DISALLOWED_SEQUENCES:
            return ValidationResult(False, "Input matches a disallowed repetitive or sequential pattern.")
        if not national_id_checksum_ok(raw):
            return ValidationResult(False, "Checksum verification failed.")
        return ValidationResult(True, "National ID is valid.")
