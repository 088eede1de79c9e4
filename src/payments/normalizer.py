"""Normalização e validação dos campos digitados no formulário de doação.

Funções puras: recebem o valor bruto e devolvem a forma canônica (somente
dígitos, centavos, mês/ano) ou um booleano. Falhas de parse levantam
ValidationError com o nome do campo.
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from src.payments.errors import ValidationError

DOCUMENT_LENGTH = 11
CARD_NUMBER_MIN_LENGTH = 13
CARD_NUMBER_MAX_LENGTH = 19

_NON_DIGITS = re.compile(r"\D")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_EXPIRY_RE = re.compile(r"^\s*(\d{1,2})\s*/\s*(\d{2}|\d{4})\s*$")

# Ordem importa: prefixos mais específicos (elo, hipercard) antes de visa/discover.
_CARD_BRANDS: tuple[tuple[str, re.Pattern], ...] = (
    (
        "elo",
        re.compile(
            r"^(401178|401179|431274|438935|451416|457393|457631|457632"
            r"|504175|627780|636297|636368|636369)"
        ),
    ),
    ("hipercard", re.compile(r"^(606282|3841)")),
    ("visa", re.compile(r"^4")),
    ("mastercard", re.compile(r"^5[1-5]")),
    ("amex", re.compile(r"^3[47]")),
    ("diners", re.compile(r"^3(?:0[0-5]|[68][0-9])")),
    ("discover", re.compile(r"^6(?:011|5|4[4-9]|22)")),
    ("jcb", re.compile(r"^(?:2131|1800|35)")),
)


def only_digits(raw: Optional[str]) -> str:
    return _NON_DIGITS.sub("", raw or "")


def normalize_document(raw: Optional[str]) -> str:
    """CPF: remove pontuação ("529.982.247-25" -> "52998224725")."""
    return only_digits(raw)


def normalize_phone(raw: Optional[str]) -> str:
    return only_digits(raw)


def normalize_card_number(raw: Optional[str]) -> str:
    return only_digits(raw)


def validate_document(digits: str) -> bool:
    """
    Valida CPF: 11 dígitos, não repetidos, e os dois dígitos verificadores.
    Cada verificador é ((10 * soma(d[i] * peso[i])) % 11) % 10, com pesos
    decrescendo de (posição + 1) até 2.
    """
    if len(digits) != DOCUMENT_LENGTH or not digits.isdigit():
        return False
    if digits == digits[0] * DOCUMENT_LENGTH:
        return False
    for check_pos in (9, 10):
        total = sum(int(digits[i]) * ((check_pos + 1) - i) for i in range(check_pos))
        if ((10 * total) % 11) % 10 != int(digits[check_pos]):
            return False
    return True


def validate_phone(digits: str) -> bool:
    """DDD + número: 10 (fixo) ou 11 (celular) dígitos."""
    return digits.isdigit() and len(digits) in (10, 11)


def validate_email(raw: Optional[str]) -> bool:
    return bool(raw) and _EMAIL_RE.match(raw.strip()) is not None


def validate_card_number(digits: str) -> bool:
    return digits.isdigit() and CARD_NUMBER_MIN_LENGTH <= len(digits) <= CARD_NUMBER_MAX_LENGTH


def validate_security_code(raw: Optional[str]) -> bool:
    code = (raw or "").strip()
    return code.isdigit() and len(code) in (3, 4)


def validate_expiry(month: int, year: int, now: Union[date, datetime, None] = None) -> bool:
    """Válido se o mês existe e o cartão não venceu (mês corrente ainda vale)."""
    now = now or date.today()
    if not 1 <= month <= 12:
        return False
    return year > now.year or (year == now.year and month >= now.month)


def parse_expiry(raw: Optional[str]) -> tuple[int, int]:
    """Aceita "MM/AA" ou "MM/AAAA"; ano com dois dígitos vira 20AA."""
    match = _EXPIRY_RE.match(raw or "")
    if not match:
        raise ValidationError("card_expiry", "Validade deve estar no formato MM/AA")
    month = int(match.group(1))
    year = int(match.group(2))
    if year < 100:
        year += 2000
    return month, year


def to_minor_units(raw: Union[str, int, float, Decimal, None]) -> int:
    """
    Converte valor em reais para centavos (arredondamento half-up).
    Aceita "10.00", "10,00", "R$ 1.000,50" e números.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError("amount", "Informe o valor da doação")
    if isinstance(raw, bool):
        raise ValidationError("amount", "Valor inválido")
    if isinstance(raw, (int, float, Decimal)):
        text = str(raw)
    elif not isinstance(raw, str):
        raise ValidationError("amount", "Valor inválido")
    else:
        text = raw.replace("R$", "").replace(" ", "").strip()
        if "," in text and "." in text and text.rfind(".") > text.rfind(","):
            text = text.replace(",", "")
        elif "," in text:
            # formato brasileiro: ponto é separador de milhar
            text = text.replace(".", "").replace(",", ".")
    try:
        value = Decimal(text)
        if not value.is_finite():
            raise ValidationError("amount", "Valor inválido")
        return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except ArithmeticError:
        raise ValidationError("amount", "Valor inválido")


def format_document(digits: str) -> str:
    """"52998224725" -> "529.982.247-25" (parcial enquanto incompleto)."""
    digits = only_digits(digits)[:DOCUMENT_LENGTH]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"{digits[:3]}.{digits[3:]}"
    if len(digits) <= 9:
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:]}"
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(digits: str) -> str:
    """"11912345678" -> "(11) 91234-5678"; fixo "1132345678" -> "(11) 3234-5678"."""
    digits = only_digits(digits)[:11]
    if len(digits) <= 2:
        return digits
    ddd, number = digits[:2], digits[2:]
    if len(number) <= 4:
        return f"({ddd}) {number}"
    split = 5 if len(number) == 9 else 4
    return f"({ddd}) {number[:split]}-{number[split:]}"


def mask_document(digits: str) -> str:
    """Para logs: mantém só os dois últimos dígitos."""
    if len(digits) <= 2:
        return "*" * len(digits)
    return "*" * (len(digits) - 2) + digits[-2:]


def detect_card_brand(digits: str) -> Optional[str]:
    if len(digits) < 4:
        return None
    for brand, pattern in _CARD_BRANDS:
        if pattern.match(digits):
            return brand
    return None
