# finmemory/config.py
import math
import os
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

# Variáveis obrigatórias, na ordem em que aparecem no relatório de validação
REQUIRED_ENV_VARS: Dict[str, str] = {
    "SUPABASE_URL": "URL do projeto Supabase",
    "SUPABASE_SERVICE_ROLE_KEY": "Chave de serviço (service_role) do Supabase - SECRETA",
    "GOOGLE_CLIENT_ID": "Client ID do Google OAuth",
    "GOOGLE_CLIENT_SECRET": "Client Secret do Google OAuth - SECRETO",
    "GOOGLE_REDIRECT_URI": "URI de callback registrada no Google OAuth",
    "MAPBOX_ACCESS_TOKEN": "Token da API de geocodificação do Mapbox",
}

OPTIONAL_ENV_VARS: Dict[str, str] = {
    "GOOGLE_API_KEY": "Chave da API Gemini (leitura de notas fiscais)",
    "GEMINI_MODEL": "Modelo Gemini usado na leitura de notas",
    "HTTP_TIMEOUT_SECONDS": "Timeout das chamadas HTTP externas",
    "LOG_LEVEL": "Nível de log (DEBUG, INFO, WARNING...)",
}

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0


class ConfigError(Exception):
    """Configuração incompleta. Lista todas as variáveis ausentes de uma vez."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            "Variáveis de ambiente obrigatórias não configuradas: "
            + ", ".join(self.missing)
        )


class Config:
    """Configuração validada da aplicação, criada uma única vez no startup."""

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        google_client_id: str,
        google_client_secret: str,
        google_redirect_uri: str,
        mapbox_access_token: str,
        google_api_key: Optional[str] = None,
        gemini_model: str = DEFAULT_GEMINI_MODEL,
        http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        log_level: str = "INFO",
    ):
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self.google_client_id = google_client_id
        self.google_client_secret = google_client_secret
        self.google_redirect_uri = google_redirect_uri
        self.mapbox_access_token = mapbox_access_token
        self.google_api_key = google_api_key
        self.gemini_model = gemini_model
        self.http_timeout_seconds = http_timeout_seconds
        self.log_level = log_level

    def missing(self) -> List[str]:
        """Nomes das variáveis obrigatórias que estão vazias nesta configuração."""
        return [name for name, attr in _REQUIRED_ATTRIBUTES.items() if not getattr(self, attr)]


_REQUIRED_ATTRIBUTES = {
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_SERVICE_ROLE_KEY": "supabase_key",
    "GOOGLE_CLIENT_ID": "google_client_id",
    "GOOGLE_CLIENT_SECRET": "google_client_secret",
    "GOOGLE_REDIRECT_URI": "google_redirect_uri",
    "MAPBOX_ACCESS_TOKEN": "mapbox_access_token",
}


def missing_env_vars(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Retorna os nomes das variáveis obrigatórias ausentes ou vazias."""
    env = os.environ if environ is None else environ
    return [name for name in REQUIRED_ENV_VARS if not (env.get(name) or "").strip()]


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Lê e valida as variáveis de ambiente.

    Falha imediatamente com ConfigError se qualquer variável obrigatória estiver
    ausente, em vez de deixar o erro aparecer no meio de um handler.
    """
    env = os.environ if environ is None else environ
    missing = missing_env_vars(env)
    if missing:
        raise ConfigError(missing)

    timeout_raw = env.get("HTTP_TIMEOUT_SECONDS")
    try:
        http_timeout = float(timeout_raw) if timeout_raw else DEFAULT_HTTP_TIMEOUT_SECONDS
    except ValueError:
        raise ConfigError(["HTTP_TIMEOUT_SECONDS (valor numérico inválido)"])
    # Timeout finito e positivo
    if not math.isfinite(http_timeout) or http_timeout <= 0:
        raise ConfigError(["HTTP_TIMEOUT_SECONDS (deve ser um número positivo)"])

    return Config(
        supabase_url=env["SUPABASE_URL"].strip(),
        supabase_key=env["SUPABASE_SERVICE_ROLE_KEY"].strip(),
        google_client_id=env["GOOGLE_CLIENT_ID"].strip(),
        google_client_secret=env["GOOGLE_CLIENT_SECRET"].strip(),
        google_redirect_uri=env["GOOGLE_REDIRECT_URI"].strip(),
        mapbox_access_token=env["MAPBOX_ACCESS_TOKEN"].strip(),
        google_api_key=(env.get("GOOGLE_API_KEY") or "").strip() or None,
        gemini_model=env.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        http_timeout_seconds=http_timeout,
        log_level=env.get("LOG_LEVEL") or "INFO",
    )
