"""Gateway fictício para desenvolver o fluxo de doação sem o Asaas (sem estado)."""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.payments.domain import (
    CardDetails,
    CardToken,
    ChargeResult,
    ChargeStatus,
    Customer,
    CustomerRef,
    Instrument,
    PaymentIntent,
)
from src.payments.gateway.base import BaseGateway
from src.payments.normalizer import detect_card_brand


class ExampleGateway(BaseGateway):
    """
    Gateway stub: retorna dados fictícios para desenvolver/testar o fluxo.
    Não guarda nada entre chamadas; o id do cliente é derivado do CPF, então
    o mesmo doador recebe sempre o mesmo id.
    """

    name = "example"

    def find_customer(self, tax_id: str) -> Optional[CustomerRef]:
        return None

    def create_customer(self, customer: Customer) -> CustomerRef:
        return CustomerRef(id=_customer_id(customer.tax_id), created=True)

    def tokenize_card(
        self, card: CardDetails, customer: Customer, customer_ref: CustomerRef
    ) -> CardToken:
        return CardToken(
            token=f"tok_example_{uuid.uuid4().hex[:16]}",
            brand=detect_card_brand(card.number),
            last4=card.number[-4:],
        )

    def submit_charge(
        self,
        intent: PaymentIntent,
        customer_ref: CustomerRef,
        card_token: Optional[CardToken] = None,
    ) -> ChargeResult:
        charge_id = f"example-{uuid.uuid4().hex[:16]}"
        if intent.instrument is Instrument.PIX:
            return ChargeResult(
                provider_id=charge_id,
                status=ChargeStatus.PENDING,
                instrument=intent.instrument,
                amount_minor_units=intent.amount_minor_units,
                instrument_payload=f"00020126580014br.gov.bcb.pix0136{charge_id}",
                link=f"https://example.com/pay/{charge_id}",
                due_date=intent.due_date,
                expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            )
        if intent.instrument is Instrument.BOLETO:
            return ChargeResult(
                provider_id=charge_id,
                status=ChargeStatus.PENDING,
                instrument=intent.instrument,
                amount_minor_units=intent.amount_minor_units,
                instrument_payload="23790" + str(intent.amount_minor_units).zfill(42),
                link=f"https://example.com/boleto/{charge_id}",
                due_date=intent.due_date,
            )
        return ChargeResult(
            provider_id=charge_id,
            status=ChargeStatus.PAID,
            instrument=intent.instrument,
            amount_minor_units=intent.amount_minor_units,
            instrument_payload=uuid.uuid4().hex[:6].upper(),
            link=f"https://example.com/receipt/{charge_id}",
            card_brand=card_token.brand if card_token else None,
        )


def _customer_id(tax_id: str) -> str:
    return f"cus_example_{hashlib.sha256(tax_id.encode()).hexdigest()[:12]}"
