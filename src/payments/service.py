"""Serviço de domínio: orquestra uma submissão de doação e aplica status do webhook.

Sequência por submissão: VALIDATING -> CUSTOMER_RESOLVING -> CHARGE_SUBMITTING
-> SUCCEEDED | FAILED. Não há retentativa automática; uma nova tentativa é
uma nova submissão com nova externalReference.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from src.config import Settings, get_settings
from src.db.models import Donation
from src.db.session import get_session
from src.payments.domain import ChargeResult, ChargeStatus, CustomerRef, PaymentIntent
from src.payments.errors import (
    GENERIC_FAILURE_MESSAGE,
    DonationError,
    InternalError,
    InvalidDonationError,
    ProviderError,
    ValidationError,
)
from src.payments.gateway.base import PaymentGatewayProtocol
from src.payments.intent import DonationRequest, IntentBuilder
from src.payments.normalizer import mask_document

logger = logging.getLogger(__name__)

VALIDATION_FAILURE_MESSAGE = "Por favor, preencha todos os campos corretamente."


class SubmissionState(str, Enum):
    VALIDATING = "VALIDATING"
    CUSTOMER_RESOLVING = "CUSTOMER_RESOLVING"
    CHARGE_SUBMITTING = "CHARGE_SUBMITTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class DonationOutcome:
    """Resultado de uma submissão: a cobrança criada ou o motivo da falha."""

    state: SubmissionState = SubmissionState.VALIDATING
    history: list[SubmissionState] = field(default_factory=lambda: [SubmissionState.VALIDATING])
    external_reference: Optional[str] = None
    charge: Optional[ChargeResult] = None
    validation_errors: list[ValidationError] = field(default_factory=list)
    error: Optional[DonationError] = None
    failed_at: Optional[SubmissionState] = None

    @property
    def succeeded(self) -> bool:
        return self.state is SubmissionState.SUCCEEDED

    def advance(self, state: SubmissionState) -> None:
        self.state = state
        self.history.append(state)

    def fail(
        self,
        error: Optional[DonationError] = None,
        errors: Optional[list[ValidationError]] = None,
    ) -> "DonationOutcome":
        self.failed_at = self.state
        self.error = error
        self.validation_errors = list(errors or [])
        self.advance(SubmissionState.FAILED)
        return self

    @property
    def message(self) -> str:
        """Mensagem para o doador (nunca inclui detalhes internos)."""
        if self.succeeded:
            return "Doação registrada. Obrigado!"
        if self.validation_errors:
            return VALIDATION_FAILURE_MESSAGE
        return GENERIC_FAILURE_MESSAGE

    def to_dict(self) -> dict:
        data: dict = {
            "success": self.succeeded,
            "state": self.state.value,
            "external_reference": self.external_reference,
            "message": self.message,
        }
        if self.charge is not None:
            data["charge"] = self.charge.to_dict()
        if self.validation_errors:
            data["error"] = "validation"
            data["errors"] = [e.to_dict() for e in self.validation_errors]
        elif isinstance(self.error, ProviderError):
            data["error"] = "provider"
        elif self.error is not None:
            data["error"] = "internal"
        if isinstance(self.error, ProviderError):
            data["retryable"] = self.error.retryable
            if self.error.http_status is not None and self.error.http_status < 500:
                data["detail"] = self.error.provider_message
        return data


class DonationService:
    """Serviço síncrono (rotas FastAPI síncronas; o gateway bloqueia em I/O)."""

    def __init__(
        self,
        gateway: Optional[PaymentGatewayProtocol] = None,
        settings: Optional[Settings] = None,
        builder: Optional[IntentBuilder] = None,
        persist: Optional[bool] = None,
    ):
        from src.payments.gateway.factory import get_gateway
        self._settings = settings or get_settings()
        self._gateway = gateway or get_gateway(self._settings)
        self._builder = builder or IntentBuilder(self._settings)
        self._persist = self._settings.persist_donations if persist is None else persist

    @property
    def gateway(self) -> PaymentGatewayProtocol:
        return self._gateway

    def submit(self, request: DonationRequest, now: Optional[datetime] = None) -> DonationOutcome:
        """Valida, resolve o cliente e cria a cobrança. Nunca levanta exceção."""
        outcome = DonationOutcome()
        try:
            intent = self._builder.build(request, now)
        except InvalidDonationError as e:
            logger.info(
                "Doação rejeitada na validação: %s",
                ", ".join(sorted({err.field for err in e.errors})),
            )
            return outcome.fail(errors=e.errors)
        except Exception as e:
            logger.exception("Erro inesperado na validação da doação")
            return outcome.fail(InternalError(str(e)))

        outcome.external_reference = intent.external_reference
        logger.info(
            "Doação %s: %s de %s centavos (CPF %s)",
            intent.external_reference, intent.instrument.value,
            intent.amount_minor_units, mask_document(intent.customer.tax_id),
        )
        try:
            outcome.advance(SubmissionState.CUSTOMER_RESOLVING)
            customer_ref = self._gateway.find_or_create_customer(intent.customer)
            outcome.advance(SubmissionState.CHARGE_SUBMITTING)
            charge = self._gateway.create_charge(intent, customer_ref)
        except ProviderError as e:
            logger.error(
                "Gateway falhou em %s (ref=%s): status=%s retryable=%s mensagem=%s",
                outcome.state.value, intent.external_reference,
                e.http_status, e.retryable, e.provider_message,
            )
            return outcome.fail(e)
        except Exception as e:
            logger.exception("Erro inesperado em %s (ref=%s)", outcome.state.value, intent.external_reference)
            return outcome.fail(InternalError(str(e)))

        outcome.charge = charge
        outcome.advance(SubmissionState.SUCCEEDED)
        if self._persist:
            self._record(intent, customer_ref, charge)
        return outcome

    def _record(self, intent: PaymentIntent, customer_ref: CustomerRef, charge: ChargeResult) -> None:
        """Grava a cobrança criada; falha no registro não desfaz a cobrança."""
        try:
            with get_session() as session:
                session.add(
                    Donation(
                        external_reference=intent.external_reference,
                        gateway=getattr(self._gateway, "name", "unknown"),
                        provider_id=charge.provider_id,
                        customer_id=customer_ref.id,
                        instrument=intent.instrument.value,
                        amount_cents=intent.amount_minor_units,
                        installments=intent.installment_count,
                        status=charge.status.value,
                        donor_email=intent.customer.email,
                        paid_at=datetime.utcnow() if charge.status is ChargeStatus.PAID else None,
                    )
                )
                session.commit()
        except SQLAlchemyError:
            logger.exception(
                "Falha ao registrar doação %s (cobrança %s)",
                intent.external_reference, charge.provider_id,
            )

    def apply_status(self, provider_id: str, status: ChargeStatus) -> bool:
        """
        Atualiza o status da doação pelo id do gateway (chamado pelo webhook).
        Idempotente: reaplicar o mesmo status não altera nada. Retorna True se
        encontrou o registro.
        """
        if not self._persist:
            return False
        with get_session() as session:
            donation = session.exec(
                select(Donation).where(Donation.provider_id == provider_id)
            ).first()
            if not donation:
                return False
            if donation.status == status.value:
                return True
            donation.status = status.value
            donation.updated_at = datetime.utcnow()
            if status is ChargeStatus.PAID and donation.paid_at is None:
                donation.paid_at = donation.updated_at
            session.add(donation)
            session.commit()
            return True

    def get_donation(self, external_reference: str) -> Optional[Donation]:
        with get_session() as session:
            return session.exec(
                select(Donation).where(Donation.external_reference == external_reference)
            ).first()
