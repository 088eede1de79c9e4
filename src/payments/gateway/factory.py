"""Factory do gateway de pagamento (retorna implementação conforme config)."""

import logging
from typing import Optional

from src.config import Settings, get_settings
from src.payments.gateway.asaas import AsaasGateway
from src.payments.gateway.base import PaymentGatewayProtocol
from src.payments.gateway.example import ExampleGateway

logger = logging.getLogger(__name__)


def get_gateway(settings: Optional[Settings] = None) -> PaymentGatewayProtocol:
    """
    Retorna a implementação do gateway conforme PAYMENT_GATEWAY.
    'asaas' exige ASAAS_API_KEY; qualquer outro valor usa o stub 'example'.
    """
    settings = settings or get_settings()
    if settings.gateway == "asaas":
        if not settings.asaas_api_key:
            raise SystemExit("Defina ASAAS_API_KEY no ambiente ou no .env para usar o gateway Asaas")
        return AsaasGateway(
            api_key=settings.asaas_api_key,
            base_url=settings.asaas_api_url,
            timeout=settings.provider_timeout_seconds,
        )
    if settings.gateway != "example":
        logger.warning("PAYMENT_GATEWAY=%s desconhecido; usando example", settings.gateway)
    return ExampleGateway()
