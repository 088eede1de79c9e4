"""App FastAPI: submissão de doações e webhook de pagamentos do gateway."""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.payments.errors import ProviderError
from src.payments.intent import DonationRequest
from src.payments.notifications import LoggingNotificationSink, NotificationSink
from src.payments.reconciler import (
    MalformedWebhookError,
    Notification,
    WebhookEvent,
    WebhookReconciler,
)
from src.payments.service import DonationService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_donation_service() -> DonationService:
    return DonationService()


def get_reconciler() -> WebhookReconciler:
    return WebhookReconciler()


@lru_cache(maxsize=1)
def get_notification_sink() -> NotificationSink:
    return LoggingNotificationSink()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_donation_service.cache_info().currsize:
        close = getattr(get_donation_service().gateway, "close", None)
        if close:
            close()


app = FastAPI(title="Vidas Sem Voz - Doações", lifespan=lifespan)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/donations")
def create_donation(
    request: Request,
    body: dict[str, Any] = Body(default={}),
    service: DonationService = Depends(get_donation_service),
) -> JSONResponse:
    """
    Recebe o formulário de doação e cria a cobrança.
    200 com os dados de pagamento (QR PIX, boleto ou confirmação do cartão);
    422 com erros por campo; 502 se o gateway recusar; 500 em erro interno.
    """
    remote_ip = request.client.host if request.client else None
    outcome = service.submit(DonationRequest.from_mapping(body, remote_ip=remote_ip))
    if outcome.succeeded:
        status_code = 200
    elif outcome.validation_errors:
        status_code = 422
    elif isinstance(outcome.error, ProviderError):
        status_code = 502
    else:
        status_code = 500
    return JSONResponse(outcome.to_dict(), status_code=status_code)


def process_webhook_event(
    event: WebhookEvent,
    reconciler: WebhookReconciler,
    sink: NotificationSink,
    service: DonationService,
) -> Notification:
    """Mapeia o evento, atualiza o registro da doação e envia a notificação."""
    notification = reconciler.handle(event)
    status = reconciler.charge_status(event)
    if status is not None and not service.apply_status(event.provider_transaction_id, status):
        logger.info("Nenhuma doação registrada para a transação %s", event.provider_transaction_id)
    if notification.actionable:
        sink.send(notification)
    return notification


@app.post("/payments/webhook")
async def payments_webhook(
    request: Request,
    reconciler: WebhookReconciler = Depends(get_reconciler),
    sink: NotificationSink = Depends(get_notification_sink),
    service: DonationService = Depends(get_donation_service),
) -> JSONResponse:
    """
    Recebe notificação do gateway.
    Body esperado: {"event": "transaction_status_changed", "transaction": {"id": ..., "status": "paid"}}
    ou {"event": "PAYMENT_RECEIVED", "payment": {"id": ...}}.
    """
    try:
        body = await request.json()
        event = WebhookEvent.from_payload(body)
    except (ValueError, MalformedWebhookError):
        logger.error("Payload de webhook inválido")
        return JSONResponse({"error": "Invalid webhook payload"}, status_code=400)

    logger.info(
        "Processando evento de webhook: %s para transação %s",
        event.event_type, event.provider_transaction_id,
    )
    try:
        notification = await run_in_threadpool(
            process_webhook_event, event, reconciler, sink, service
        )
    except Exception:
        logger.exception("Erro ao processar webhook da transação %s", event.provider_transaction_id)
        return JSONResponse({"error": "Error processing webhook"}, status_code=500)
    return JSONResponse({"received": True, "notification": notification.kind.value})

