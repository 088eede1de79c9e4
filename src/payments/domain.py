"""Tipos do fluxo de doação: doador, intenção de pagamento e resultado da cobrança."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from src.payments.errors import ValidationError


class Instrument(str, Enum):
    """Meio de pagamento escolhido no formulário."""

    CARD = "credit_card"
    PIX = "pix"
    BOLETO = "boleto"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Instrument":
        """Aceita o valor do formulário ("credit_card") ou o nome ("CARD", "CREDIT_CARD")."""
        key = (raw or "").strip()
        for instrument in cls:
            if key.lower() == instrument.value or key.upper() == instrument.name:
                return instrument
        if key.upper() == "CREDIT_CARD":
            return cls.CARD
        raise ValidationError("instrument", "Método de pagamento não especificado")


class ChargeStatus(str, Enum):
    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    PAID = "PAID"
    REFUSED = "REFUSED"
    REFUNDED = "REFUNDED"
    PROCESSING = "PROCESSING"


@dataclass(frozen=True)
class Customer:
    """Doador; identificado pelo CPF (tax_id, 11 dígitos)."""

    name: str
    email: str
    tax_id: str
    phone: str = ""


@dataclass(frozen=True)
class CardDetails:
    holder_name: str
    number: str
    expiry_month: int
    expiry_year: int
    security_code: str
    holder_tax_id: str

    def __repr__(self) -> str:
        # nunca expor número completo/CVV em logs
        return (
            f"CardDetails(holder_name={self.holder_name!r}, "
            f"last4={self.number[-4:]!r}, expiry={self.expiry_month:02d}/{self.expiry_year})"
        )


@dataclass(frozen=True)
class PaymentIntent:
    """Pedido de cobrança normalizado, válido para uma única tentativa."""

    customer: Customer
    instrument: Instrument
    amount_minor_units: int
    due_date: date
    description: str
    external_reference: str
    installment_count: int = 1
    card: Optional[CardDetails] = None
    remote_ip: Optional[str] = None


@dataclass(frozen=True)
class CustomerRef:
    """Cliente no gateway (id do provedor)."""

    id: str
    created: bool = False


@dataclass(frozen=True)
class CardToken:
    """Credencial de cartão de curta duração emitida pelo gateway."""

    token: str
    brand: Optional[str] = None
    last4: Optional[str] = None


@dataclass
class ChargeResult:
    """
    Resultado da criação de uma cobrança.
    instrument_payload: copia-e-cola do PIX, linha digitável do boleto ou
    código de autorização do cartão.
    """

    provider_id: str
    status: ChargeStatus
    instrument: Instrument
    amount_minor_units: int
    instrument_payload: str
    qr_code_base64: Optional[str] = None
    link: Optional[str] = None
    due_date: Optional[date] = None
    expires_at: Optional[datetime] = None
    card_brand: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "charge_id": self.provider_id,
            "status": self.status.value,
            "payment_method": self.instrument.value,
            "amount_cents": self.amount_minor_units,
            "instrument_payload": self.instrument_payload,
            "qr_code_base64": self.qr_code_base64,
            "link": self.link,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "card_brand": self.card_brand,
        }
