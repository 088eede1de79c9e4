"""Reconciliação de webhooks: evento do gateway -> notificação.

Mapeamento puro e idempotente: o mesmo evento sempre gera a mesma
Notification (mesmo dedup_key). Deduplicação de envio fica com o sink.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from src.payments.domain import ChargeStatus

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    TRANSACTION_STATUS_CHANGED = "transaction_status_changed"
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    CHARGEBACK_CREATED = "chargeback_created"
    CHARGEBACK_UPDATED = "chargeback_updated"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "EventType":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


class NotificationKind(str, Enum):
    DONATION_CONFIRMED = "donation_confirmed"
    REFUND = "refund"
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    CHARGEBACK_ALERT = "chargeback_alert"
    NONE = "none"


_STATUS_MAP = {
    "paid": ChargeStatus.PAID,
    "refunded": ChargeStatus.REFUNDED,
    "refused": ChargeStatus.REFUSED,
    "processing": ChargeStatus.PROCESSING,
    "authorized": ChargeStatus.AUTHORIZED,
    "pending": ChargeStatus.PENDING,
    "waiting_payment": ChargeStatus.PENDING,
    "pending_refund": ChargeStatus.PROCESSING,
}

# Eventos de pagamento (formato {event, payment}) -> (evento, status) equivalentes.
_PAYMENT_EVENTS: dict[str, tuple[EventType, Optional[str]]] = {
    "PAYMENT_CREATED": (EventType.TRANSACTION_STATUS_CHANGED, "waiting_payment"),
    "PAYMENT_AUTHORIZED": (EventType.TRANSACTION_STATUS_CHANGED, "authorized"),
    "PAYMENT_AWAITING_RISK_ANALYSIS": (EventType.TRANSACTION_STATUS_CHANGED, "processing"),
    "PAYMENT_CONFIRMED": (EventType.TRANSACTION_STATUS_CHANGED, "paid"),
    "PAYMENT_RECEIVED": (EventType.TRANSACTION_STATUS_CHANGED, "paid"),
    "PAYMENT_REFUNDED": (EventType.TRANSACTION_STATUS_CHANGED, "refunded"),
    "PAYMENT_REFUND_IN_PROGRESS": (EventType.TRANSACTION_STATUS_CHANGED, "pending_refund"),
    "PAYMENT_CREDIT_CARD_CAPTURE_REFUSED": (EventType.TRANSACTION_STATUS_CHANGED, "refused"),
    "PAYMENT_REPROVED_BY_RISK_ANALYSIS": (EventType.TRANSACTION_STATUS_CHANGED, "refused"),
    "PAYMENT_CHARGEBACK_REQUESTED": (EventType.CHARGEBACK_CREATED, None),
    "PAYMENT_CHARGEBACK_DISPUTE": (EventType.CHARGEBACK_UPDATED, None),
    "PAYMENT_AWAITING_CHARGEBACK_REVERSAL": (EventType.CHARGEBACK_UPDATED, None),
}


def parse_status(raw: Optional[str]) -> Optional[ChargeStatus]:
    return _STATUS_MAP.get((raw or "").strip().lower())


class MalformedWebhookError(ValueError):
    """Corpo do webhook sem o id da transação."""


@dataclass(frozen=True)
class WebhookEvent:
    """Evento recebido do gateway; não é persistido."""

    event_type: str
    provider_transaction_id: str
    status: Optional[str] = None
    payload: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def kind(self) -> EventType:
        return EventType.parse(self.event_type)

    @classmethod
    def from_payload(cls, body: Any) -> "WebhookEvent":
        """
        Aceita {"event"|"eventType": ..., "transaction": {...}} ou
        {"event": "PAYMENT_...", "payment": {...}}; este último é traduzido.
        """
        if not isinstance(body, Mapping):
            raise MalformedWebhookError("Invalid webhook payload")
        raw_event = str(body.get("eventType") or body.get("event") or "")

        transaction = body.get("transaction")
        if isinstance(transaction, Mapping) and transaction.get("id"):
            return cls(
                event_type=raw_event,
                provider_transaction_id=str(transaction["id"]),
                status=transaction.get("status"),
                payload=dict(transaction),
            )

        payment = body.get("payment")
        if isinstance(payment, Mapping) and payment.get("id"):
            event_type, status = _PAYMENT_EVENTS.get(raw_event.upper(), (None, None))
            return cls(
                event_type=event_type.value if event_type else raw_event,
                provider_transaction_id=str(payment["id"]),
                status=status,
                payload={
                    "id": payment["id"],
                    "status": status,
                    "amount": _reais_to_cents(payment.get("value")),
                    "payment_method": payment.get("billingType"),
                    "external_reference": payment.get("externalReference"),
                    "source_event": raw_event,
                },
            )
        raise MalformedWebhookError("Invalid webhook payload")


def _reais_to_cents(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(Decimal(str(value)) * 100)
    except (ArithmeticError, ValueError):
        return None


@dataclass(frozen=True)
class Notification:
    """Ação de notificação derivada de um evento; audience 'donor' ou 'admin'."""

    kind: NotificationKind
    event_type: str
    transaction_id: str
    status: Optional[str] = None
    audience: Optional[str] = None
    subject: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_name: Optional[str] = None
    amount_cents: Optional[int] = None

    @property
    def actionable(self) -> bool:
        return self.kind is not NotificationKind.NONE

    @property
    def dedup_key(self) -> str:
        return f"{self.event_type}:{self.transaction_id}:{self.status or ''}"


_STATUS_NOTIFICATIONS = {
    ChargeStatus.PAID: (NotificationKind.DONATION_CONFIRMED, "Obrigado pela sua doação!"),
    ChargeStatus.REFUNDED: (NotificationKind.REFUND, "Sua doação foi estornada"),
    ChargeStatus.REFUSED: (
        NotificationKind.PAYMENT_FAILED,
        "Não foi possível processar sua doação",
    ),
}

_SUBSCRIPTION_NOTIFICATIONS = {
    EventType.SUBSCRIPTION_CREATED: (NotificationKind.SUBSCRIPTION_CREATED, "Doação recorrente confirmada"),
    EventType.SUBSCRIPTION_UPDATED: (NotificationKind.SUBSCRIPTION_UPDATED, "Doação recorrente atualizada"),
    EventType.SUBSCRIPTION_CANCELED: (NotificationKind.SUBSCRIPTION_CANCELED, "Doação recorrente cancelada"),
}


class WebhookReconciler:
    """Despacha o evento pelo tipo e devolve a notificação correspondente."""

    def handle(self, event: WebhookEvent) -> Notification:
        kind = event.kind
        if kind is EventType.TRANSACTION_STATUS_CHANGED:
            return self._status_changed(event)
        if kind in _SUBSCRIPTION_NOTIFICATIONS:
            return self._subscription(event, *_SUBSCRIPTION_NOTIFICATIONS[kind])
        if kind in (EventType.CHARGEBACK_CREATED, EventType.CHARGEBACK_UPDATED):
            return self._chargeback(event)
        logger.info("Evento de webhook não tratado: %s (tx %s)", event.event_type, event.provider_transaction_id)
        return self._none(event)

    def charge_status(self, event: WebhookEvent) -> Optional[ChargeStatus]:
        """Status interno a aplicar no registro (só para mudança de status)."""
        if event.kind is not EventType.TRANSACTION_STATUS_CHANGED:
            return None
        return parse_status(event.status)

    def _none(self, event: WebhookEvent) -> Notification:
        return Notification(
            kind=NotificationKind.NONE,
            event_type=event.event_type,
            transaction_id=event.provider_transaction_id,
            status=event.status,
        )

    def _status_changed(self, event: WebhookEvent) -> Notification:
        status = parse_status(event.status)
        logger.info("Transação %s mudou para status: %s", event.provider_transaction_id, event.status)
        if status not in _STATUS_NOTIFICATIONS:
            # PROCESSING/AUTHORIZED/PENDING: só atualização interna
            return self._none(event)
        kind, subject = _STATUS_NOTIFICATIONS[status]
        customer = event.payload.get("customer")
        customer = customer if isinstance(customer, Mapping) else {}
        return Notification(
            kind=kind,
            event_type=event.event_type,
            transaction_id=event.provider_transaction_id,
            status=status.value,
            audience="donor",
            subject=subject,
            recipient_email=customer.get("email"),
            recipient_name=customer.get("name"),
            amount_cents=_int_or_none(event.payload.get("amount")),
        )

    def _subscription(
        self, event: WebhookEvent, kind: NotificationKind, subject: str
    ) -> Notification:
        current = event.payload.get("current_transaction")
        current = current if isinstance(current, Mapping) else {}
        customer = current.get("customer")
        customer = customer if isinstance(customer, Mapping) else {}
        logger.info("Assinatura %s: %s", event.provider_transaction_id, event.event_type)
        return Notification(
            kind=kind,
            event_type=event.event_type,
            transaction_id=event.provider_transaction_id,
            status=event.status,
            audience="donor",
            subject=subject,
            recipient_email=customer.get("email"),
            recipient_name=customer.get("name"),
            amount_cents=_int_or_none(current.get("amount")),
        )

    def _chargeback(self, event: WebhookEvent) -> Notification:
        action = "created" if event.kind is EventType.CHARGEBACK_CREATED else "updated"
        logger.warning(
            "Chargeback %s para transação %s com status: %s",
            action, event.provider_transaction_id, event.status,
        )
        return Notification(
            kind=NotificationKind.CHARGEBACK_ALERT,
            event_type=event.event_type,
            transaction_id=event.provider_transaction_id,
            status=event.status,
            audience="admin",
            subject=f"Chargeback {action} na transação {event.provider_transaction_id}",
            amount_cents=_int_or_none(event.payload.get("amount")),
        )


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
