# finmemory/core/account_linker.py
import logging
from typing import Optional

import requests
from supabase import Client

from finmemory.core import db
from finmemory.core.google_oauth import GoogleOAuthClient, OAuthError
from finmemory.core.models import AccountLink
from finmemory.utils.logging_setup import log_event
from finmemory.utils.text_utils import mask_email

logger = logging.getLogger(__name__)

SUCCESS_REDIRECT = "/?success=true"
FAILURE_REDIRECT = "/?error=auth_failed"

# Resultados possíveis do callback
LINK_SUCCESS = "success"
LINK_MISSING_CODE = "missing_code"
LINK_FAILED = "failed"


class LinkResult:
    def __init__(self, status: str, redirect_to: Optional[str] = None, email: Optional[str] = None):
        self.status = status
        self.redirect_to = redirect_to
        self.email = email

    @property
    def ok(self) -> bool:
        return self.status == LINK_SUCCESS


def _failed(stage: str, error: Exception) -> LinkResult:
    log_event(logger, logging.ERROR, "account_link.failed", stage=stage, error=str(error))
    return LinkResult(LINK_FAILED, FAILURE_REDIRECT)


def link_account(
    code: Optional[str],
    oauth: GoogleOAuthClient,
    supabase_client: Client,
    provider: str = "google",
) -> LinkResult:
    """Vincula a conta do provedor ao e-mail do usuário.

    Sequência: valida o código, troca por tokens, busca o e-mail e faz upsert do
    refresh token. Qualquer falha depois da validação termina em LINK_FAILED,
    sem nada gravado. Chamadas repetidas para o mesmo e-mail sobrescrevem o token.
    """
    if not code or not code.strip():
        return LinkResult(LINK_MISSING_CODE)

    try:
        tokens = oauth.exchange_code(code.strip())
    except (OAuthError, requests.RequestException) as e:
        return _failed("exchange", e)

    if not tokens.refresh_token:
        # Sem refresh token não há o que vincular (consentimento sem access_type=offline)
        return _failed("exchange", OAuthError("Google não retornou refresh_token"))

    try:
        email = oauth.fetch_user_email(tokens.access_token)
    except (OAuthError, requests.RequestException) as e:
        return _failed("identify", e)

    link = AccountLink(user_email=email, refresh_token=tokens.refresh_token, provider=provider)
    if not db.upsert_account_link(supabase_client, link):
        return _failed("persist", RuntimeError("upsert em user_connections falhou"))

    log_event(logger, logging.INFO, "account_link.saved", provider=provider, email=mask_email(email))
    return LinkResult(LINK_SUCCESS, SUCCESS_REDIRECT, email=email)
