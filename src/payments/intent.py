"""Montagem da PaymentIntent a partir dos campos brutos do formulário."""

import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from src.config import Settings
from src.payments import normalizer
from src.payments.domain import CardDetails, Customer, Instrument, PaymentIntent
from src.payments.errors import InvalidDonationError, ValidationError


@dataclass(frozen=True)
class DonationRequest:
    """Campos brutos de uma submissão (imutável, um por requisição)."""

    name: str = ""
    email: str = ""
    document: str = ""
    phone: str = ""
    amount: Any = None
    instrument: str = ""
    installments: Any = 1
    card_holder_name: Optional[str] = None
    card_number: Optional[str] = None
    card_expiry: Optional[str] = None
    card_cvv: Optional[str] = None
    card_holder_document: Optional[str] = None
    remote_ip: Optional[str] = None

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], remote_ip: Optional[str] = None
    ) -> "DonationRequest":
        """Aceita o corpo JSON da submissão; "cpf" e "payment_method" são aliases."""

        def text(*keys: str) -> Optional[str]:
            for key in keys:
                value = data.get(key)
                if value is not None:
                    return str(value)
            return None

        return cls(
            name=text("name") or "",
            email=text("email") or "",
            document=text("document", "cpf", "tax_id") or "",
            phone=text("phone") or "",
            amount=data.get("amount"),
            instrument=text("instrument", "payment_method") or "",
            installments=1 if data.get("installments") is None else data["installments"],
            card_holder_name=text("card_holder_name"),
            card_number=text("card_number"),
            card_expiry=text("card_expiry"),
            card_cvv=text("card_cvv"),
            card_holder_document=text("card_holder_document", "card_cpf"),
            remote_ip=remote_ip,
        )


def new_external_reference(prefix: str = "DONATION") -> str:
    """Referência única por tentativa: PREFIX-<epoch ms>-<hex aleatório>."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class IntentBuilder:
    """Valida os campos conforme o meio de pagamento e gera a PaymentIntent."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        reference_factory: Callable[[], str] = new_external_reference,
    ):
        self._settings = settings or Settings()
        self._new_reference = reference_factory

    def max_installments(self, amount_minor_units: int) -> int:
        """Parcelas sem juros com valor mínimo por parcela (até 12x)."""
        by_value = amount_minor_units // self._settings.min_installment_cents
        return max(1, min(by_value, self._settings.max_installments))

    def validate(
        self, request: DonationRequest, now: Optional[datetime] = None
    ) -> list[ValidationError]:
        return self._collect(request, now or datetime.now())[1]

    def build(self, request: DonationRequest, now: Optional[datetime] = None) -> PaymentIntent:
        """Retorna a PaymentIntent ou levanta InvalidDonationError com todos os erros."""
        now = now or datetime.now()
        parts, errors = self._collect(request, now)
        if errors:
            raise InvalidDonationError(errors)
        customer, instrument, amount, installments, card = parts
        return PaymentIntent(
            customer=customer,
            instrument=instrument,
            amount_minor_units=amount,
            due_date=now.date() + timedelta(days=self._settings.due_date_offset_days),
            description=f"{self._settings.donation_description} - {customer.name}",
            external_reference=self._new_reference(),
            installment_count=installments,
            card=card,
            remote_ip=request.remote_ip,
        )

    def _collect(self, request: DonationRequest, now: datetime) -> tuple[tuple, list[ValidationError]]:
        errors: list[ValidationError] = []

        customer = self._customer(request, errors)

        instrument: Optional[Instrument] = None
        try:
            instrument = Instrument.parse(request.instrument)
        except ValidationError as e:
            errors.append(e)

        amount = 0
        try:
            amount = normalizer.to_minor_units(request.amount)
            if amount < self._settings.min_donation_cents:
                reais = f"{self._settings.min_donation_cents / 100:.2f}".replace(".", ",")
                errors.append(
                    ValidationError("amount", f"O valor da doação deve ser de no mínimo R$ {reais}")
                )
        except ValidationError as e:
            errors.append(e)

        installments = 1
        card: Optional[CardDetails] = None
        if instrument is Instrument.CARD:
            installments = self._installments(request.installments, amount, errors)
            card = self._card(request, customer.tax_id, now, errors)

        return (customer, instrument, amount, installments, card), errors

    def _customer(self, request: DonationRequest, errors: list[ValidationError]) -> Customer:
        name = (request.name or "").strip()
        email = (request.email or "").strip()
        tax_id = normalizer.normalize_document(request.document)
        phone = normalizer.normalize_phone(request.phone)
        if not name:
            errors.append(ValidationError("name", "O campo nome é obrigatório"))
        if not normalizer.validate_email(email):
            errors.append(ValidationError("email", "Por favor, insira um e-mail válido"))
        if not normalizer.validate_document(tax_id):
            errors.append(ValidationError("document", "Por favor, insira um CPF válido"))
        if phone and not normalizer.validate_phone(phone):
            errors.append(ValidationError("phone", "Telefone deve ter DDD e número"))
        return Customer(name=name, email=email, tax_id=tax_id, phone=phone)

    def _installments(self, raw: Any, amount: int, errors: list[ValidationError]) -> int:
        count = _as_integer(raw)
        if count is None:
            errors.append(ValidationError("installments", "Número de parcelas inválido"))
            return 1
        if not 1 <= count <= self._settings.max_installments:
            errors.append(
                ValidationError(
                    "installments",
                    f"Número de parcelas deve ser entre 1 e {self._settings.max_installments}",
                )
            )
        elif amount and count > self.max_installments(amount):
            errors.append(
                ValidationError(
                    "installments",
                    f"Para este valor o máximo é {self.max_installments(amount)}x",
                )
            )
        return count

    def _card(
        self,
        request: DonationRequest,
        donor_tax_id: str,
        now: datetime,
        errors: list[ValidationError],
    ) -> Optional[CardDetails]:
        before = len(errors)
        holder_name = (request.card_holder_name or "").strip()
        number = normalizer.normalize_card_number(request.card_number)
        cvv = (request.card_cvv or "").strip()
        holder_tax_id = normalizer.normalize_document(request.card_holder_document) or donor_tax_id

        if not holder_name:
            errors.append(ValidationError("card_holder_name", "Informe o nome impresso no cartão"))
        if not normalizer.validate_card_number(number):
            errors.append(ValidationError("card_number", "Número do cartão inválido"))
        month = year = 0
        try:
            month, year = normalizer.parse_expiry(request.card_expiry)
            if not normalizer.validate_expiry(month, year, now):
                errors.append(ValidationError("card_expiry", "Cartão vencido ou validade inválida"))
        except ValidationError as e:
            errors.append(e)
        if not normalizer.validate_security_code(cvv):
            errors.append(ValidationError("card_cvv", "Código de segurança inválido"))
        if request.card_holder_document and not normalizer.validate_document(holder_tax_id):
            errors.append(ValidationError("card_holder_document", "CPF do titular inválido"))

        if len(errors) > before:
            return None
        return CardDetails(
            holder_name=holder_name,
            number=number,
            expiry_month=month,
            expiry_year=year,
            security_code=cvv,
            holder_tax_id=holder_tax_id,
        )


def _as_integer(raw: Any) -> Optional[int]:
    """Inteiro exato a partir de int, float integral ou texto ("3"); senão None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None
