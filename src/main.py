"""Entrypoint: carrega .env, configura logging, cria tabelas e sobe o servidor HTTP."""

import logging

from dotenv import load_dotenv

load_dotenv()

from src.config import get_settings  # noqa: E402
from src.db.session import create_all_tables  # noqa: E402
from src.webhook import app  # noqa: E402

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # Não emite logs de requisição HTTP do httpx (cada chamada ao gateway)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    if settings.gateway == "asaas" and not settings.asaas_api_key:
        raise SystemExit("Defina ASAAS_API_KEY no ambiente ou no .env para usar o gateway Asaas")
    if settings.persist_donations:
        create_all_tables()

    import uvicorn
    logger.info(
        "Servidor de doações iniciado (porta %s, gateway %s)",
        settings.webhook_port, settings.gateway,
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.webhook_port, log_level="warning")


if __name__ == "__main__":
    main()
