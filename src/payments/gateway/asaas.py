"""Gateway Asaas (API v3): clientes, tokenização de cartão e cobranças PIX/boleto/cartão.

Único ponto que conhece o formato nativo do Asaas; tudo sai daqui já
convertido para CustomerRef / CardToken / ChargeResult ou ProviderError.
"""

import logging
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import httpx

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
from src.payments.errors import ProviderError
from src.payments.gateway.base import BaseGateway

logger = logging.getLogger(__name__)

_BILLING_TYPES = {
    Instrument.CARD: "CREDIT_CARD",
    Instrument.PIX: "PIX",
    Instrument.BOLETO: "BOLETO",
}

_STATUS_MAP = {
    "PENDING": ChargeStatus.PENDING,
    "OVERDUE": ChargeStatus.PENDING,
    "AUTHORIZED": ChargeStatus.AUTHORIZED,
    "CONFIRMED": ChargeStatus.PAID,
    "RECEIVED": ChargeStatus.PAID,
    "RECEIVED_IN_CASH": ChargeStatus.PAID,
    "REFUNDED": ChargeStatus.REFUNDED,
    "REFUND_REQUESTED": ChargeStatus.PROCESSING,
    "REFUND_IN_PROGRESS": ChargeStatus.PROCESSING,
    "AWAITING_RISK_ANALYSIS": ChargeStatus.PROCESSING,
    "REFUSED": ChargeStatus.REFUSED,
}

# Campos obrigatórios no Asaas que o formulário não coleta.
_PLACEHOLDER_POSTAL_CODE = "00000000"
_PLACEHOLDER_ADDRESS_NUMBER = "0"


def map_status(raw: Optional[str]) -> ChargeStatus:
    return _STATUS_MAP.get((raw or "").upper(), ChargeStatus.PROCESSING)


def _reais(amount_minor_units: int) -> float:
    return float(Decimal(amount_minor_units) / 100)


def _parse_date(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _parse_datetime(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    """Primeira descrição de {"errors": [{"description": ...}]} ou texto bruto."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        return str(errors[0].get("description") or errors[0].get("code") or "Erro no gateway")
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or "Erro no gateway"


class AsaasGateway(BaseGateway):
    """Cliente HTTP síncrono do Asaas (autenticado pelo header access_token)."""

    name = "asaas"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://sandbox.asaas.com/api/v3",
        timeout: float = 15.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key
        self._client = http_client or httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout
        )

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        headers = {"access_token": self._api_key, "Content-Type": "application/json"}
        try:
            response = self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Timeout no Asaas %s %s: %s", method, path, e)
            raise ProviderError(None, "Tempo de resposta do gateway esgotado", retryable=True) from e
        except httpx.TransportError as e:
            logger.warning("Falha de conexão com o Asaas %s %s: %s", method, path, e)
            raise ProviderError(None, "Falha de conexão com o gateway", retryable=True) from e

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "Asaas recusou %s %s: status=%s mensagem=%s",
                method, path, response.status_code, message,
            )
            raise ProviderError.from_status(response.status_code, message)
        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(response.status_code, "Resposta inválida do gateway") from e
        if not isinstance(body, dict):
            raise ProviderError(response.status_code, "Resposta inválida do gateway")
        return body

    def find_customer(self, tax_id: str) -> Optional[CustomerRef]:
        body = self._request("GET", "/customers", params={"cpfCnpj": tax_id})
        data = body.get("data") or []
        if not data:
            return None
        return CustomerRef(id=str(data[0]["id"]), created=False)

    def create_customer(self, customer: Customer) -> CustomerRef:
        body = self._request(
            "POST",
            "/customers",
            json={
                "name": customer.name,
                "cpfCnpj": customer.tax_id,
                "email": customer.email,
                "phone": customer.phone or None,
                "mobilePhone": customer.phone or None,
                "notificationDisabled": False,
                "externalReference": f"CUSTOMER-{int(time.time() * 1000)}",
            },
        )
        return CustomerRef(id=str(body["id"]), created=True)

    def _holder_info(self, card: CardDetails, customer: Customer) -> dict[str, Any]:
        return {
            "name": card.holder_name,
            "email": customer.email,
            "cpfCnpj": card.holder_tax_id,
            "postalCode": _PLACEHOLDER_POSTAL_CODE,
            "addressNumber": _PLACEHOLDER_ADDRESS_NUMBER,
            "phone": customer.phone or None,
            "mobilePhone": customer.phone or None,
        }

    def tokenize_card(
        self, card: CardDetails, customer: Customer, customer_ref: CustomerRef
    ) -> CardToken:
        body = self._request(
            "POST",
            "/creditCard/tokenize",
            json={
                "customer": customer_ref.id,
                "creditCard": {
                    "holderName": card.holder_name,
                    "number": card.number,
                    "expiryMonth": f"{card.expiry_month:02d}",
                    "expiryYear": str(card.expiry_year),
                    "ccv": card.security_code,
                },
                "creditCardHolderInfo": self._holder_info(card, customer),
            },
        )
        brand = body.get("creditCardBrand")
        return CardToken(
            token=str(body["creditCardToken"]),
            brand=brand.lower() if brand else None,
            last4=body.get("creditCardNumber"),
        )

    def submit_charge(
        self,
        intent: PaymentIntent,
        customer_ref: CustomerRef,
        card_token: Optional[CardToken] = None,
    ) -> ChargeResult:
        payload: dict[str, Any] = {
            "customer": customer_ref.id,
            "billingType": _BILLING_TYPES[intent.instrument],
            "value": _reais(intent.amount_minor_units),
            "dueDate": intent.due_date.isoformat(),
            "description": intent.description,
            "externalReference": intent.external_reference,
        }
        if intent.instrument is Instrument.CARD:
            if card_token is None:
                raise ValueError("Cobrança no cartão exige token")
            payload["creditCardToken"] = card_token.token
            if intent.installment_count > 1:
                del payload["value"]
                payload["installmentCount"] = intent.installment_count
                payload["totalValue"] = _reais(intent.amount_minor_units)
            if intent.remote_ip:
                payload["remoteIp"] = intent.remote_ip
        elif intent.instrument is Instrument.BOLETO:
            payload["postalService"] = False

        body = self._request("POST", "/payments", json=payload)
        charge_id = str(body["id"])
        result = ChargeResult(
            provider_id=charge_id,
            status=map_status(body.get("status")),
            instrument=intent.instrument,
            amount_minor_units=intent.amount_minor_units,
            instrument_payload="",
            link=body.get("invoiceUrl"),
            due_date=_parse_date(body.get("dueDate")) or intent.due_date,
        )

        try:
            self._complete(result, body, card_token)
        except ProviderError:
            logger.error(
                "Cobrança %s criada no Asaas (ref=%s) mas sem dados de pagamento; conciliar manualmente",
                charge_id, intent.external_reference,
            )
            raise
        return result

    def _complete(
        self, result: ChargeResult, body: dict[str, Any], card_token: Optional[CardToken]
    ) -> None:
        """Busca o QR PIX ou a linha digitável do boleto da cobrança já criada."""
        charge_id = result.provider_id
        if result.instrument is Instrument.PIX:
            qr = self._request("GET", f"/payments/{charge_id}/pixQrCode")
            result.instrument_payload = qr.get("payload") or ""
            result.qr_code_base64 = qr.get("encodedImage")
            result.expires_at = _parse_datetime(qr.get("expirationDate"))
        elif result.instrument is Instrument.BOLETO:
            field = self._request("GET", f"/payments/{charge_id}/identificationField")
            result.instrument_payload = field.get("identificationField") or field.get("barCode") or ""
            result.link = body.get("bankSlipUrl") or result.link
        else:
            result.instrument_payload = str(body.get("authorizationCode") or charge_id)
            result.link = body.get("transactionReceiptUrl") or result.link
            result.card_brand = card_token.brand if card_token else None
