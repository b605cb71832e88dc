# finmemory/web/app_setup.py
import logging
import time

from flask import Flask

from finmemory.web.handlers import ALL_BLUEPRINTS

logger = logging.getLogger(__name__)


def setup_app(config, supabase_client, oauth, receipt_reader=None) -> Flask:
    """
    Configura a aplicação Flask (rotas e dependências).
    Os clientes ficam em app.config para que os handlers os acessem via current_app,
    sem estado global de módulo.
    """
    app = Flask(__name__)

    app.config["FINMEMORY_CONFIG"] = config
    app.config["SUPABASE_CLIENT"] = supabase_client
    app.config["GOOGLE_OAUTH"] = oauth
    app.config["RECEIPT_READER"] = receipt_reader
    app.config["STARTED_AT"] = time.monotonic()
    # Notas fiscais em base64 são maiores que o arquivo original
    app.config["MAX_CONTENT_LENGTH"] = 4 * 1024 * 1024

    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    logger.info("Aplicação Flask configurada com %d blueprints.", len(ALL_BLUEPRINTS))
    return app
