# finmemory/core/google_oauth.py
"""Cliente mínimo do OAuth2 do Google: URL de consentimento, troca do código e userinfo."""
import logging
from typing import Dict, Optional
from urllib.parse import urlencode

import requests

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


class OAuthError(Exception):
    """Falha na troca do código ou na consulta da identidade no provedor."""


class OAuthTokens:
    def __init__(self, access_token: str, refresh_token: Optional[str], expires_in: Optional[int] = None):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.expires_in = expires_in


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._http = session or requests

    @classmethod
    def from_config(cls, config) -> "GoogleOAuthClient":
        return cls(
            client_id=config.google_client_id,
            client_secret=config.google_client_secret,
            redirect_uri=config.google_redirect_uri,
            timeout=config.http_timeout_seconds,
        )

    def authorization_url(self, state: str, scopes=None) -> str:
        """URL de consentimento com acesso offline, para receber o refresh token."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes or DEFAULT_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> OAuthTokens:
        """Troca o código de autorização pelos tokens de acesso e de refresh."""
        try:
            response = self._http.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise OAuthError(f"Falha de rede na troca do código: {e}") from e

        payload = self._json_or_error(response, "troca do código")
        access_token = payload.get("access_token")
        if not access_token:
            raise OAuthError("Resposta do Google sem access_token")
        return OAuthTokens(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
        )

    def fetch_user_email(self, access_token: str) -> str:
        """Busca o e-mail da conta autenticada."""
        try:
            response = self._http.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise OAuthError(f"Falha de rede ao buscar userinfo: {e}") from e

        payload = self._json_or_error(response, "userinfo")
        email = payload.get("email")
        if not email:
            raise OAuthError("Resposta do userinfo sem e-mail")
        return email

    @staticmethod
    def _json_or_error(response, stage: str) -> Dict:
        if response.status_code >= 400:
            # O corpo pode conter detalhes do provedor; fica só no log do servidor.
            raise OAuthError(f"HTTP {response.status_code} na etapa '{stage}': {response.text}")
        try:
            payload = response.json()
        except ValueError as e:
            raise OAuthError(f"JSON inválido na etapa '{stage}'") from e
        if not isinstance(payload, dict):
            raise OAuthError(f"Payload inesperado na etapa '{stage}'")
        return payload
