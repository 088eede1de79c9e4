"""Destino das notificações do webhook (envio de e-mail fica fora deste serviço)."""

import logging
from typing import Protocol

from src.payments.reconciler import Notification

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def send(self, notification: Notification) -> None:
        """Entrega a notificação; deduplicar por notification.dedup_key."""
        ...


class LoggingNotificationSink:
    """Sink padrão: apenas registra a notificação no log."""

    def send(self, notification: Notification) -> None:
        logger.info(
            "Notificação %s (%s) para %s: %s [tx=%s key=%s]",
            notification.kind.value,
            notification.audience,
            notification.recipient_email or "-",
            notification.subject,
            notification.transaction_id,
            notification.dedup_key,
        )
