"""Interface base do gateway de pagamento (cliente, token de cartão e cobrança)."""

import logging
from typing import Optional, Protocol

from src.payments.domain import (
    CardDetails,
    CardToken,
    ChargeResult,
    Customer,
    CustomerRef,
    Instrument,
    PaymentIntent,
)
from src.payments.normalizer import mask_document

logger = logging.getLogger(__name__)


class PaymentGatewayProtocol(Protocol):
    """Protocolo do gateway de pagamento (uma implementação por provedor)."""

    name: str

    def find_customer(self, tax_id: str) -> Optional[CustomerRef]:
        """Busca cliente pelo CPF; None se não existir."""
        ...

    def create_customer(self, customer: Customer) -> CustomerRef:
        ...

    def tokenize_card(
        self, card: CardDetails, customer: Customer, customer_ref: CustomerRef
    ) -> CardToken:
        """Troca os dados brutos do cartão por um token de curta duração."""
        ...

    def find_or_create_customer(self, customer: Customer) -> CustomerRef:
        ...

    def create_charge(self, intent: PaymentIntent, customer_ref: CustomerRef) -> ChargeResult:
        """Cria a cobrança; para cartão tokeniza antes e envia só o token."""
        ...


class BaseGateway:
    """
    Fluxo comum aos provedores. Subclasses implementam as chamadas primitivas
    (find_customer, create_customer, tokenize_card, submit_charge); nenhuma
    guarda estado entre submissões.
    """

    name = "base"

    def find_customer(self, tax_id: str) -> Optional[CustomerRef]:
        raise NotImplementedError

    def create_customer(self, customer: Customer) -> CustomerRef:
        raise NotImplementedError

    def tokenize_card(
        self, card: CardDetails, customer: Customer, customer_ref: CustomerRef
    ) -> CardToken:
        raise NotImplementedError

    def submit_charge(
        self,
        intent: PaymentIntent,
        customer_ref: CustomerRef,
        card_token: Optional[CardToken] = None,
    ) -> ChargeResult:
        raise NotImplementedError

    def find_or_create_customer(self, customer: Customer) -> CustomerRef:
        existing = self.find_customer(customer.tax_id)
        if existing is not None:
            logger.info(
                "Cliente encontrado no %s: %s (CPF %s)",
                self.name, existing.id, mask_document(customer.tax_id),
            )
            return existing
        created = self.create_customer(customer)
        logger.info(
            "Cliente criado no %s: %s (CPF %s)",
            self.name, created.id, mask_document(customer.tax_id),
        )
        return created

    def create_charge(self, intent: PaymentIntent, customer_ref: CustomerRef) -> ChargeResult:
        card_token: Optional[CardToken] = None
        if intent.instrument is Instrument.CARD:
            if intent.card is None:
                raise ValueError("Cobrança no cartão sem dados do cartão")
            card_token = self.tokenize_card(intent.card, intent.customer, customer_ref)
        result = self.submit_charge(intent, customer_ref, card_token)
        logger.info(
            "Cobrança %s criada no %s: %s status=%s ref=%s",
            intent.instrument.value, self.name, result.provider_id,
            result.status.value, intent.external_reference,
        )
        return result
