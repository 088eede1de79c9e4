"""Configuração do pytest para o serviço de doações."""

import sys
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

# Adiciona a raiz do projeto ao PYTHONPATH para os imports "src.*"
root_path = Path(__file__).parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

from src.config import Settings  # noqa: E402
from src.db.session import set_engine  # noqa: E402
from src.payments.intent import DonationRequest  # noqa: E402

VALID_CPF = "52998224725"
OTHER_VALID_CPF = "11144477735"


@pytest.fixture
def settings() -> Settings:
    return Settings(persist_donations=False)


@pytest.fixture
def memory_engine():
    """SQLite em memória compartilhado entre threads (TestClient usa threadpool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    set_engine(engine)
    yield engine
    set_engine(None)
    engine.dispose()


@pytest.fixture
def pix_request() -> DonationRequest:
    return DonationRequest(
        name="Maria Silva",
        email="maria@example.org",
        document="529.982.247-25",
        phone="(11) 91234-5678",
        amount="10.00",
        instrument="pix",
    )


@pytest.fixture
def card_request() -> DonationRequest:
    return DonationRequest(
        name="Maria Silva",
        email="maria@example.org",
        document=VALID_CPF,
        phone="11912345678",
        amount="50,00",
        instrument="credit_card",
        installments=2,
        card_holder_name="MARIA SILVA",
        card_number="4111 1111 1111 1111",
        card_expiry="12/30",
        card_cvv="123",
    )


class RecordingSink:
    """Sink de notificações que só guarda o que recebeu."""

    def __init__(self) -> None:
        self.sent = []

    def send(self, notification) -> None:
        self.sent.append(notification)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
