"""Erros do fluxo de doação: entrada inválida, falha do gateway e erro interno."""

from typing import Optional

GENERIC_FAILURE_MESSAGE = (
    "Ocorreu um erro ao processar o pagamento. Por favor, tente novamente."
)


class DonationError(Exception):
    """Base dos erros do fluxo de doação."""


class ValidationError(DonationError):
    """Campo informado pelo doador está malformado ou ausente."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.field, self.reason) == (other.field, other.reason)

    def __hash__(self) -> int:
        return hash((self.field, self.reason))

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class InvalidDonationError(DonationError):
    """Uma ou mais validações falharam; carrega a lista completa de erros."""

    def __init__(self, errors: list[ValidationError]):
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = list(errors)


class ProviderError(DonationError):
    """
    O gateway recusou ou falhou a chamada.
    retryable só é True para 5xx, timeout e falha de transporte; 4xx nunca.
    """

    def __init__(
        self,
        http_status: Optional[int],
        provider_message: str,
        retryable: bool = False,
    ):
        super().__init__(f"[{http_status}] {provider_message}")
        self.http_status = http_status
        self.provider_message = provider_message
        self.retryable = retryable

    @classmethod
    def from_status(cls, http_status: int, provider_message: str) -> "ProviderError":
        return cls(http_status, provider_message, retryable=http_status >= 500)


class InternalError(DonationError):
    """Exceção inesperada na orquestração; nunca expõe detalhes ao doador."""

    user_message = GENERIC_FAILURE_MESSAGE
