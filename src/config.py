"""Configuração do processo (variáveis de ambiente, imutável após o start)."""

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_ASAAS_API_URL = "https://sandbox.asaas.com/api/v3"
DEFAULT_DATABASE_URL = "sqlite:///./data/doacoes.db"


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    """Lê inteiro do ambiente; valor ausente ou inválido usa o default."""
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name).lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on", "sim")


@dataclass(frozen=True)
class Settings:
    """Configuração das doações (gateway, limites de valor, prazos e porta HTTP)."""

    gateway: str = "example"
    asaas_api_url: str = DEFAULT_ASAAS_API_URL
    asaas_api_key: str = ""
    provider_timeout_seconds: float = 15.0
    min_donation_cents: int = 100
    min_installment_cents: int = 500
    max_installments: int = 12
    due_date_offset_days: int = 1
    donation_description: str = "Doação Vidas Sem Voz"
    database_url: str = DEFAULT_DATABASE_URL
    persist_donations: bool = True
    webhook_port: int = 8080
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Monta Settings a partir do ambiente (chamar depois de load_dotenv)."""
    return Settings(
        gateway=_env_str("PAYMENT_GATEWAY", "example").lower(),
        asaas_api_url=_env_str("ASAAS_API_URL", DEFAULT_ASAAS_API_URL).rstrip("/"),
        asaas_api_key=_env_str("ASAAS_API_KEY"),
        provider_timeout_seconds=_env_float("PROVIDER_TIMEOUT_SECONDS", 15.0),
        min_donation_cents=max(1, _env_int("MIN_DONATION_CENTS", 100)),
        min_installment_cents=max(1, _env_int("MIN_INSTALLMENT_CENTS", 500)),
        due_date_offset_days=max(0, _env_int("DUE_DATE_OFFSET_DAYS", 1)),
        donation_description=_env_str("DONATION_DESCRIPTION", "Doação Vidas Sem Voz"),
        database_url=_env_str("DATABASE_URL", DEFAULT_DATABASE_URL),
        persist_donations=_env_bool("PERSIST_DONATIONS", True),
        webhook_port=_env_int("WEBHOOK_PORT", 8080),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
