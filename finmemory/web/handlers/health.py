# finmemory/web/handlers/health.py
import os
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/api/health", methods=["GET"])
def health():
    """Health check: não expõe valores de configuração, só os nomes ausentes."""
    config = current_app.config["FINMEMORY_CONFIG"]
    missing = config.missing()

    body = {
        "status": "ok" if not missing else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - current_app.config["STARTED_AT"], 3),
        "environment": os.getenv("APP_ENV", "development"),
        "checks": {
            "server": "ok",
            "config": "ok" if not missing else "missing_variables",
            "receipt_ocr": "ok" if current_app.config.get("RECEIPT_READER") else "disabled",
        },
    }
    if missing:
        body["missingEnvVars"] = missing

    response = jsonify(body)
    response.status_code = 200 if not missing else 503
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response
