"""Iranian cellphone number validation (``+989`` or ``00989`` prefix)."""

import re
from typing import Optional

from app.validation.base import ValidationResult, Validator, is_blank

CELLPHONE_PATTERN = re.compile(r"^(\+989|00989)[0-9]{9}$")


class CellphoneValidator(Validator):
    name = "cellphone"

    def validate(self, raw: Optional[str]) -> ValidationResult:
        if is_blank(raw):
            return ValidationResult(False, "Cellphone number cannot be null or empty.")
        if not CELLPHONE_PATTERN.fullmatch(raw):
            return ValidationResult(
                False,
                "Cellphone number must start with '+989' or '00989' and be followed by exactly 9 digits.",
            )
        return ValidationResult(True, "Valid Iranian cellphone number.")
