# finmemory/main.py
import logging

from flask import Flask

from finmemory.config import Config, load_config
from finmemory.core.ai import ReceiptReader
from finmemory.core.db import get_supabase_client
from finmemory.core.google_oauth import GoogleOAuthClient
from finmemory.utils.logging_setup import setup_logging
from finmemory.web.app_setup import setup_app

logger = logging.getLogger(__name__)


def create_app(
    config: Config = None,
    supabase_client=None,
    oauth: GoogleOAuthClient = None,
    receipt_reader=None,
) -> Flask:
    """Monta a aplicação WSGI.

    Sem argumentos, lê e valida o ambiente (falha no startup com ConfigError
    listando as variáveis ausentes). Testes podem injetar clientes falsos.
    Uso com Gunicorn: `gunicorn "finmemory.main:create_app()"`.
    """
    if config is None:
        config = load_config()
    setup_logging(config.log_level)

    if supabase_client is None:
        supabase_client = get_supabase_client(config)
        logger.info("Cliente Supabase inicializado.")
    if oauth is None:
        oauth = GoogleOAuthClient.from_config(config)
    if receipt_reader is None and config.google_api_key:
        receipt_reader = ReceiptReader(api_key=config.google_api_key, model=config.gemini_model)
    if receipt_reader is None:
        logger.warning("GOOGLE_API_KEY não configurada; leitura de notas fiscais desativada.")

    return setup_app(config, supabase_client, oauth, receipt_reader)


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8000)
