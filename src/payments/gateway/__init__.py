"""Gateway de pagamento (interface base + implementações)."""

from src.payments.gateway.asaas import AsaasGateway
from src.payments.gateway.base import BaseGateway, PaymentGatewayProtocol
from src.payments.gateway.example import ExampleGateway
from src.payments.gateway.factory import get_gateway

__all__ = [
    "AsaasGateway",
    "BaseGateway",
    "ExampleGateway",
    "PaymentGatewayProtocol",
    "get_gateway",
]
