"""Testes para config (leitura do ambiente) e para a escolha do gateway."""

import dataclasses

import pytest

from src.config import DEFAULT_ASAAS_API_URL, Settings, load_settings
from src.payments.gateway import AsaasGateway, ExampleGateway, get_gateway

ENV_VARS = [
    "PAYMENT_GATEWAY",
    "ASAAS_API_URL",
    "ASAAS_API_KEY",
    "PROVIDER_TIMEOUT_SECONDS",
    "MIN_DONATION_CENTS",
    "MIN_INSTALLMENT_CENTS",
    "DUE_DATE_OFFSET_DAYS",
    "DONATION_DESCRIPTION",
    "DATABASE_URL",
    "PERSIST_DONATIONS",
    "WEBHOOK_PORT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings()
        assert settings.gateway == "example"
        assert settings.asaas_api_url == DEFAULT_ASAAS_API_URL
        assert settings.min_donation_cents == 100
        assert settings.min_installment_cents == 500
        assert settings.due_date_offset_days == 1
        assert settings.persist_donations is True
        assert settings.webhook_port == 8080

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAYMENT_GATEWAY", "Asaas")
        monkeypatch.setenv("ASAAS_API_URL", "https://api.asaas.com/v3/")
        monkeypatch.setenv("ASAAS_API_KEY", " $aact_prod ")
        monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "5.5")
        monkeypatch.setenv("MIN_DONATION_CENTS", "500")
        monkeypatch.setenv("PERSIST_DONATIONS", "false")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = load_settings()
        assert settings.gateway == "asaas"
        assert settings.asaas_api_url == "https://api.asaas.com/v3"
        assert settings.asaas_api_key == "$aact_prod"
        assert settings.provider_timeout_seconds == 5.5
        assert settings.min_donation_cents == 500
        assert settings.persist_donations is False
        assert settings.log_level == "DEBUG"

    def test_invalid_numbers_fall_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBHOOK_PORT", "oito mil")
        monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "abc")
        monkeypatch.setenv("MIN_DONATION_CENTS", "0")

        settings = load_settings()
        assert settings.webhook_port == 8080
        assert settings.provider_timeout_seconds == 15.0
        assert settings.min_donation_cents == 1

    def test_settings_are_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            Settings().gateway = "asaas"


class TestGetGateway:
    def test_example_by_default(self) -> None:
        assert isinstance(get_gateway(Settings()), ExampleGateway)

    def test_unknown_name_falls_back_to_example(self) -> None:
        assert isinstance(get_gateway(Settings(gateway="pagarme")), ExampleGateway)

    def test_asaas(self) -> None:
        gateway = get_gateway(Settings(gateway="asaas", asaas_api_key="k"))
        try:
            assert isinstance(gateway, AsaasGateway)
        finally:
            gateway.close()

    def test_asaas_without_key(self) -> None:
        with pytest.raises(SystemExit):
            get_gateway(Settings(gateway="asaas"))
