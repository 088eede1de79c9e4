"""Camada de persistência (SQLModel): registro de doações."""

from src.db.models import Donation
from src.db.session import create_all_tables, get_engine, get_session, set_engine

__all__ = [
    "Donation",
    "create_all_tables",
    "get_engine",
    "get_session",
    "set_engine",
]
