from app.validation.base import ValidationResult, Validator
from app.validation.card import CardNumberValidator
from app.validation.cellphone import CellphoneValidator
from app.validation.iban import IbanValidator
from app.validation.national_id import NationalIdValidator

VALIDATORS: dict[str, Validator] = {
    "card": CardNumberValidator(),
    "iban": IbanValidator(),
    "national-id": NationalIdValidator(),
    "cellphone": CellphoneValidator(),
}

__all__ = [
    "VALIDATORS",
    "ValidationResult",
    "Validator",
    "CardNumberValidator",
    "CellphoneValidator",
    "IbanValidator",
    "NationalIdValidator",
]
