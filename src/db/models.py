"""Modelo SQLModel do registro de doações (cobrança criada + status vindo do webhook)."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Donation(SQLModel, table=True):
    """Uma tentativa de doação aceita pelo gateway."""

    __tablename__ = "donation"

    id: Optional[int] = Field(default=None, primary_key=True)
    external_reference: str = Field(unique=True, index=True, max_length=64)
    gateway: str = Field(max_length=32)
    provider_id: str = Field(index=True, max_length=128)
    customer_id: str = Field(max_length=128)
    instrument: str = Field(max_length=16)  # credit_card, pix, boleto
    amount_cents: int = Field()
    installments: int = Field(default=1)
    status: str = Field(max_length=16)  # PENDING, PAID, REFUNDED...
    donor_email: str = Field(max_length=256)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    paid_at: Optional[datetime] = Field(default=None)
