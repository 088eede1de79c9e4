"""Engine e sessão SQL para uso síncrono (rotas FastAPI síncronas rodam em threadpool)."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from src.config import get_settings
from src.db.models import Donation  # noqa: F401 (registra a tabela no metadata)

_engine: Optional[Engine] = None


def get_database_url() -> str:
    url = get_settings().database_url
    if url.startswith("sqlite:///") and ":memory:" not in url:
        Path(url.replace("sqlite:///", "").split("?")[0]).parent.mkdir(parents=True, exist_ok=True)
    return url


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = get_database_url()
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, connect_args=connect_args)
    return _engine


def set_engine(engine: Optional[Engine]) -> None:
    """Troca o engine global (testes usam SQLite em memória)."""
    global _engine
    _engine = engine


@contextmanager
def get_session() -> Generator[Session, None, None]:
    engine = get_engine()
    with Session(engine) as session:
        yield session


def create_all_tables() -> None:
    SQLModel.metadata.create_all(get_engine())
