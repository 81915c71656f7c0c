"""Tests for the card / IBAN / national ID / cellphone validators."""

import pytest

from app.validation import (
    VALIDATORS,
    CardNumberValidator,
    CellphoneValidator,
    IbanValidator,
    NationalIdValidator,
)

VALID_CARD = "6037991234567893"
VALID_IBAN = "IR062960000000100324200001"
VALID_NATIONAL_ID = "0499370899"


class TestCardNumber:
    validator = CardNumberValidator()

    def test_valid_card(self):
        result = self.validator.validate(VALID_CARD)
        assert result.valid
        assert result.reason == "Card number is valid."

    def test_sample_with_bad_check_digit(self):
        # Luhn sum of 6037991234567890 is 77
        result = self.validator.validate("6037991234567890")
        assert not result.valid
        assert "Luhn" in result.reason

    def test_every_single_digit_mutation_is_rejected(self):
        for position in range(len(VALID_CARD)):
            for digit in "0123456789":
                if digit == VALID_CARD[position]:
                    continue
                mutated = VALID_CARD[:position] + digit + VALID_CARD[position + 1:]
                assert not self.validator.validate(mutated).valid, mutated

    @pytest.mark.parametrize("raw", ["603799123456789", "60379912345678933", "5022291234567890", "60379912345678a3"])
    def test_pattern_rejected(self, raw):
        result = self.validator.validate(raw)
        assert not result.valid
        assert "603799" in result.reason

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank_is_invalid_not_error(self, raw):
        result = self.validator.validate(raw)
        assert result.valid is False
        assert result.reason

    def test_non_ascii_digits_rejected(self):
        assert not self.validator.validate("۶۰۳۷۹۹1234567893").valid


class TestIban:
    validator = IbanValidator()

    def test_valid_iban(self):
        result = self.validator.validate(VALID_IBAN)
        assert result.valid
        assert result.reason == "IBAN is valid."

    def test_second_valid_iban(self):
        assert self.validator.validate("IR820540102680020817909002").valid

    def test_truncated(self):
        result = self.validator.validate(VALID_IBAN[:-1])
        assert not result.valid
        assert "24 digits" in result.reason

    def test_digit_replacements_break_checksum(self):
        for position in range(2, len(VALID_IBAN)):
            original = VALID_IBAN[position]
            replacement = "1" if original != "1" else "2"
            mutated = VALID_IBAN[:position] + replacement + VALID_IBAN[position + 1:]
            result = self.validator.validate(mutated)
            assert not result.valid, mutated
            assert result.reason == "IBAN checksum validation failed."

    @pytest.mark.parametrize("raw", ["DE89370400440532013000", "ir062960000000100324200001", "IR06296000000010032420000X"])
    def test_wrong_shape(self, raw):
        assert not self.validator.validate(raw).valid

    @pytest.mark.parametrize("raw", [None, "", " "])
    def test_blank(self, raw):
        assert not self.validator.validate(raw).valid


class TestNationalId:
    validator = NationalIdValidator()

    def test_valid_id(self):
        result = self.validator.validate(VALID_NATIONAL_ID)
        assert result.valid
        assert result.reason == "National ID is valid."

    def test_another_valid_id(self):
        assert self.validator.validate("0013542419").valid

    @pytest.mark.parametrize("raw", ["0000000000", "1111111111", "9999999999", "0123456789", "9876543210"])
    def test_disallowed_sequences(self, raw):
        result = self.validator.validate(raw)
        assert not result.valid
        assert "disallowed" in result.reason

    def test_mutated_check_digit(self):
        for digit in "0123456789":
            if digit == VALID_NATIONAL_ID[9]:
                continue
            result = self.validator.validate(VALID_NATIONAL_ID[:9] + digit)
            assert not result.valid
            assert result.reason == "Checksum verification failed."

    @pytest.mark.parametrize("raw", ["123456789", "12345678901", "04993708a9"])
    def test_wrong_length_or_chars(self, raw):
        result = self.validator.validate(raw)
        assert not result.valid
        assert "10 numeric digits" in result.reason

    @pytest.mark.parametrize("raw", [None, ""])
    def test_blank(self, raw):
        assert not self.validator.validate(raw).valid


class TestCellphone:
    validator = CellphoneValidator()

    @pytest.mark.parametrize("raw", ["+989121234567", "00989351234567"])
    def test_valid_prefixes(self, raw):
        result = self.validator.validate(raw)
        assert result.valid
        assert result.reason == "Valid Iranian cellphone number."

    @pytest.mark.parametrize("raw", [
        "09121234567",
        "+98912123456",
        "+9891212345678",
        "+989121234a67",
        "+979121234567",
        " +989121234567",
    ])
    def test_wrong_shape(self, raw):
        result = self.validator.validate(raw)
        assert not result.valid
        assert result.reason == (
            "Cellphone number must start with '+989' or '00989' and be followed by exactly 9 digits."
        )

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank(self, raw):
        result = self.validator.validate(raw)
        assert not result.valid
        assert result.reason == "Cellphone number cannot be null or empty."


class TestRegistry:
    def test_registry_kinds(self):
        assert set(VALIDATORS) == {"card", "iban", "national-id", "cellphone"}

    def test_shared_instance_has_no_state(self):
        validator = VALIDATORS["card"]
        bad = validator.validate("123")
        good = validator.validate(VALID_CARD)
        assert not bad.valid and good.valid
        assert bad.reason != good.reason

    def test_result_truthiness(self):
        assert VALIDATORS["iban"].validate(VALID_IBAN)
        assert not VALIDATORS["iban"].validate("IR00")
