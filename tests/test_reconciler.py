"""Testes para payments.reconciler (evento de webhook -> notificação)."""

import logging

import pytest

from src.payments.domain import ChargeStatus
from src.payments.reconciler import (
    EventType,
    MalformedWebhookError,
    NotificationKind,
    WebhookEvent,
    WebhookReconciler,
    parse_status,
)

CUSTOMER = {"name": "Maria Silva", "email": "maria@example.org"}


def _status_event(status: str, **extra) -> WebhookEvent:
    body = {
        "event": "transaction_status_changed",
        "transaction": {"id": "tx_1", "status": status, "amount": 1000, "customer": CUSTOMER, **extra},
    }
    return WebhookEvent.from_payload(body)


class TestFromPayload:
    def test_event_and_transaction(self) -> None:
        event = _status_event("paid")
        assert event.event_type == "transaction_status_changed"
        assert event.provider_transaction_id == "tx_1"
        assert event.status == "paid"
        assert event.kind is EventType.TRANSACTION_STATUS_CHANGED

    def test_event_type_key_is_accepted(self) -> None:
        event = WebhookEvent.from_payload({"eventType": "chargeback_created", "transaction": {"id": 7}})
        assert event.kind is EventType.CHARGEBACK_CREATED
        assert event.provider_transaction_id == "7"

    def test_payment_event_is_translated(self) -> None:
        body = {
            "event": "PAYMENT_RECEIVED",
            "payment": {
                "id": "pay_1",
                "value": 10.0,
                "billingType": "PIX",
                "externalReference": "DONATION-1-abc",
            },
        }
        event = WebhookEvent.from_payload(body)

        assert event.kind is EventType.TRANSACTION_STATUS_CHANGED
        assert event.provider_transaction_id == "pay_1"
        assert event.status == "paid"
        assert event.payload["amount"] == 1000
        assert event.payload["source_event"] == "PAYMENT_RECEIVED"

    @pytest.mark.parametrize("value", [float("inf"), float("nan"), "1e400000000", "dez"])
    def test_payment_value_out_of_range_is_dropped(self, value) -> None:
        event = WebhookEvent.from_payload({"event": "PAYMENT_RECEIVED", "payment": {"id": "pay_1", "value": value}})
        assert event.payload["amount"] is None
        assert event.status == "paid"

    def test_unknown_payment_event_keeps_raw_name(self) -> None:
        event = WebhookEvent.from_payload({"event": "PAYMENT_DELETED", "payment": {"id": "pay_1"}})
        assert event.kind is EventType.UNKNOWN
        assert event.event_type == "PAYMENT_DELETED"

    @pytest.mark.parametrize(
        "body",
        [
            None,
            [],
            "texto",
            {},
            {"event": "transaction_status_changed"},
            {"event": "transaction_status_changed", "transaction": {"status": "paid"}},
            {"event": "transaction_status_changed", "transaction": "tx_1"},
            {"event": "PAYMENT_RECEIVED", "payment": {}},
        ],
    )
    def test_malformed(self, body) -> None:
        with pytest.raises(MalformedWebhookError):
            WebhookEvent.from_payload(body)


class TestStatusChanged:
    @pytest.fixture
    def reconciler(self) -> WebhookReconciler:
        return WebhookReconciler()

    def test_paid_confirms_donation(self, reconciler: WebhookReconciler) -> None:
        notification = reconciler.handle(_status_event("paid"))

        assert notification.kind is NotificationKind.DONATION_CONFIRMED
        assert notification.audience == "donor"
        assert notification.subject == "Obrigado pela sua doação!"
        assert notification.recipient_email == "maria@example.org"
        assert notification.recipient_name == "Maria Silva"
        assert notification.amount_cents == 1000
        assert notification.actionable

    def test_refunded(self, reconciler: WebhookReconciler) -> None:
        assert reconciler.handle(_status_event("refunded")).kind is NotificationKind.REFUND

    def test_refused(self, reconciler: WebhookReconciler) -> None:
        assert reconciler.handle(_status_event("refused")).kind is NotificationKind.PAYMENT_FAILED

    @pytest.mark.parametrize("status", ["processing", "authorized", "waiting_payment", "pending_refund", "???"])
    def test_intermediate_status_has_no_notification(self, reconciler: WebhookReconciler, status: str) -> None:
        notification = reconciler.handle(_status_event(status))
        assert notification.kind is NotificationKind.NONE
        assert not notification.actionable

    def test_missing_customer(self, reconciler: WebhookReconciler) -> None:
        event = WebhookEvent.from_payload(
            {"event": "transaction_status_changed", "transaction": {"id": "tx_2", "status": "paid"}}
        )
        notification = reconciler.handle(event)
        assert notification.kind is NotificationKind.DONATION_CONFIRMED
        assert notification.recipient_email is None

    def test_redelivery_yields_equal_notification(self, reconciler: WebhookReconciler) -> None:
        first = reconciler.handle(_status_event("paid"))
        second = reconciler.handle(_status_event("paid"))
        assert first == second
        assert first.dedup_key == second.dedup_key == "transaction_status_changed:tx_1:paid"

    def test_charge_status(self, reconciler: WebhookReconciler) -> None:
        assert reconciler.charge_status(_status_event("paid")) is ChargeStatus.PAID
        assert reconciler.charge_status(_status_event("???")) is None
        chargeback = WebhookEvent.from_payload({"event": "chargeback_created", "transaction": {"id": "tx_1"}})
        assert reconciler.charge_status(chargeback) is None


class TestOtherEvents:
    def test_subscription_uses_current_transaction_customer(self) -> None:
        body = {
            "event": "subscription_created",
            "transaction": {
                "id": "sub_1",
                "status": "paid",
                "current_transaction": {"amount": 2500, "customer": CUSTOMER},
            },
        }
        notification = WebhookReconciler().handle(WebhookEvent.from_payload(body))

        assert notification.kind is NotificationKind.SUBSCRIPTION_CREATED
        assert notification.recipient_email == "maria@example.org"
        assert notification.amount_cents == 2500

    @pytest.mark.parametrize(
        "event, kind",
        [
            ("subscription_updated", NotificationKind.SUBSCRIPTION_UPDATED),
            ("subscription_canceled", NotificationKind.SUBSCRIPTION_CANCELED),
        ],
    )
    def test_subscription_without_current_transaction(self, event: str, kind: NotificationKind) -> None:
        notification = WebhookReconciler().handle(
            WebhookEvent.from_payload({"event": event, "transaction": {"id": "sub_1"}})
        )
        assert notification.kind is kind
        assert notification.recipient_email is None

    @pytest.mark.parametrize("event", ["chargeback_created", "chargeback_updated"])
    def test_chargeback_alerts_admin(self, event: str) -> None:
        notification = WebhookReconciler().handle(
            WebhookEvent.from_payload({"event": event, "transaction": {"id": "tx_9", "status": "opened"}})
        )
        assert notification.kind is NotificationKind.CHARGEBACK_ALERT
        assert notification.audience == "admin"
        assert "tx_9" in notification.subject

    def test_asaas_chargeback(self) -> None:
        event = WebhookEvent.from_payload({"event": "PAYMENT_CHARGEBACK_REQUESTED", "payment": {"id": "pay_1"}})
        assert WebhookReconciler().handle(event).kind is NotificationKind.CHARGEBACK_ALERT

    def test_unknown_event_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        event = WebhookEvent.from_payload({"event": "order_created", "transaction": {"id": "tx_1"}})
        with caplog.at_level(logging.INFO, logger="src.payments.reconciler"):
            notification = WebhookReconciler().handle(event)

        assert notification.kind is NotificationKind.NONE
        assert "order_created" in caplog.text


class TestParseStatus:
    @pytest.mark.parametrize(
        "raw, status",
        [
            ("paid", ChargeStatus.PAID),
            ("PAID", ChargeStatus.PAID),
            ("waiting_payment", ChargeStatus.PENDING),
            ("pending_refund", ChargeStatus.PROCESSING),
            ("unknown", None),
            (None, None),
        ],
    )
    def test_parse_status(self, raw, status) -> None:
        assert parse_status(raw) is status
