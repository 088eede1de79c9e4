"""Testes para payments.normalizer (CPF, telefone, cartão, validade e valor)."""

from datetime import date

import pytest

from src.payments import normalizer
from src.payments.errors import ValidationError


class TestDocument:
    """CPF: normalização e dígitos verificadores."""

    @pytest.mark.parametrize("cpf", ["52998224725", "11144477735", "529.982.247-25"])
    def test_valid_cpf(self, cpf: str) -> None:
        assert normalizer.validate_document(normalizer.normalize_document(cpf)) is True

    @pytest.mark.parametrize("digit", "0123456789")
    def test_repeated_digits_rejected(self, digit: str) -> None:
        assert normalizer.validate_document(digit * 11) is False

    def test_wrong_check_digit_rejected(self) -> None:
        assert normalizer.validate_document("52998224726") is False
        assert normalizer.validate_document("52998224735") is False

    def test_wrong_length_rejected(self) -> None:
        assert normalizer.validate_document("5299822472") is False
        assert normalizer.validate_document("529982247250") is False
        assert normalizer.validate_document("") is False

    def test_normalize_strips_punctuation(self) -> None:
        assert normalizer.normalize_document(" 529.982.247-25 ") == "52998224725"
        assert normalizer.normalize_document(None) == ""

    def test_format_document(self) -> None:
        assert normalizer.format_document("52998224725") == "529.982.247-25"
        assert normalizer.format_document("529982") == "529.982"
        assert normalizer.format_document("52998224") == "529.982.24"

    def test_mask_document_keeps_last_two(self) -> None:
        assert normalizer.mask_document("52998224725") == "*********25"


class TestPhone:
    def test_normalize_phone(self) -> None:
        assert normalizer.normalize_phone("(11) 91234-5678") == "11912345678"

    def test_validate_phone(self) -> None:
        assert normalizer.validate_phone("11912345678") is True
        assert normalizer.validate_phone("1132345678") is True
        assert normalizer.validate_phone("912345678") is False

    def test_format_phone(self) -> None:
        assert normalizer.format_phone("11912345678") == "(11) 91234-5678"
        assert normalizer.format_phone("1132345678") == "(11) 3234-5678"


class TestCard:
    """Número, validade, CVV e bandeira do cartão."""

    def test_card_number_length_bounds(self) -> None:
        assert normalizer.validate_card_number("4" * 13) is True
        assert normalizer.validate_card_number("4" * 19) is True
        assert normalizer.validate_card_number("4" * 12) is False
        assert normalizer.validate_card_number("4" * 20) is False

    def test_normalize_card_number(self) -> None:
        assert normalizer.normalize_card_number("4111 1111-1111 1111") == "4111111111111111"

    def test_expiry_in_the_past_is_invalid(self) -> None:
        assert normalizer.validate_expiry(1, 2020, date(2024, 6, 1)) is False

    def test_expiry_in_the_future_is_valid(self) -> None:
        assert normalizer.validate_expiry(12, 2030, date(2024, 6, 1)) is True

    def test_expiry_current_month_is_valid(self) -> None:
        """Limite inclusivo: cartão vale até o fim do mês de validade."""
        assert normalizer.validate_expiry(6, 2024, date(2024, 6, 30)) is True
        assert normalizer.validate_expiry(5, 2024, date(2024, 6, 1)) is False

    def test_expiry_month_out_of_range(self) -> None:
        assert normalizer.validate_expiry(0, 2030, date(2024, 6, 1)) is False
        assert normalizer.validate_expiry(13, 2030, date(2024, 6, 1)) is False

    def test_parse_expiry(self) -> None:
        assert normalizer.parse_expiry("12/30") == (12, 2030)
        assert normalizer.parse_expiry("06/2024") == (6, 2024)
        assert normalizer.parse_expiry(" 1 / 27 ") == (1, 2027)

    def test_parse_expiry_rejects_garbage(self) -> None:
        with pytest.raises(ValidationError) as exc:
            normalizer.parse_expiry("1230")
        assert exc.value.field == "card_expiry"

    def test_security_code(self) -> None:
        assert normalizer.validate_security_code("123") is True
        assert normalizer.validate_security_code("1234") is True
        assert normalizer.validate_security_code("12") is False
        assert normalizer.validate_security_code("abc") is False

    @pytest.mark.parametrize(
        "number, brand",
        [
            ("4111111111111111", "visa"),
            ("5500000000000004", "mastercard"),
            ("378282246310005", "amex"),
            ("4011788888888888", "elo"),
            ("6062825624254001", "hipercard"),
            ("30569309025904", "diners"),
            ("6011111111111117", "discover"),
            ("3530111333300000", "jcb"),
            ("9999999999999999", None),
            ("41", None),
        ],
    )
    def test_detect_card_brand(self, number: str, brand) -> None:
        assert normalizer.detect_card_brand(number) == brand


class TestAmount:
    """Conversão de reais para centavos."""

    @pytest.mark.parametrize(
        "raw, cents",
        [
            ("10.00", 1000),
            ("10,00", 1000),
            ("R$ 1.000,50", 100050),
            ("1,000.50", 100050),
            ("0.005", 1),
            ("1", 100),
            (25, 2500),
            (10.5, 1050),
        ],
    )
    def test_to_minor_units(self, raw, cents: int) -> None:
        assert normalizer.to_minor_units(raw) == cents

    @pytest.mark.parametrize(
        "raw", [None, "", "abc", "NaN", True, [10], {"value": 10}, object(), "1e400000000", "1e40"]
    )
    def test_invalid_amount(self, raw) -> None:
        with pytest.raises(ValidationError) as exc:
            normalizer.to_minor_units(raw)
        assert exc.value.field == "amount"


class TestEmail:
    def test_validate_email(self) -> None:
        assert normalizer.validate_email("maria@example.org") is True
        assert normalizer.validate_email("maria@example") is False
        assert normalizer.validate_email("") is False
        assert normalizer.validate_email(None) is False
