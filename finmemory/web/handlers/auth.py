# finmemory/web/handlers/auth.py
import logging
import secrets

from flask import Blueprint, current_app, jsonify, redirect, request

from finmemory.core.account_linker import FAILURE_REDIRECT, LINK_MISSING_CODE, link_account

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

STATE_COOKIE = "oauth_state"
STATE_COOKIE_MAX_AGE = 600


@auth_bp.route("/api/auth/google", methods=["GET"])
def google_auth_start():
    """Gera o state anti-CSRF, guarda em cookie e redireciona para o consentimento do Google."""
    oauth = current_app.config["GOOGLE_OAUTH"]
    state = secrets.token_hex(32)
    response = redirect(oauth.authorization_url(state))
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=True,
        samesite="Lax",
        path="/",
    )
    return response


@auth_bp.route("/api/auth/callback/google", methods=["GET"])
def google_auth_callback():
    """Recebe o código do Google e vincula a conta (refresh token) ao e-mail do usuário."""
    code = request.args.get("code")
    if not code or not code.strip():
        return jsonify({"error": "Código não fornecido pelo Google"}), 400

    saved_state = request.cookies.get(STATE_COOKIE)
    # O state da URL precisa existir e bater com o cookie emitido em /api/auth/google
    if not saved_state or request.args.get("state") != saved_state:
        logger.error("State OAuth inválido no callback do Google. Possível ataque CSRF.")
        return _finish(FAILURE_REDIRECT, saved_state)

    try:
        result = link_account(
            code,
            oauth=current_app.config["GOOGLE_OAUTH"],
            supabase_client=current_app.config["SUPABASE_CLIENT"],
        )
    except Exception:
        logger.exception("Erro inesperado no callback do Google")
        return _finish(FAILURE_REDIRECT, saved_state)

    if result.status == LINK_MISSING_CODE:
        return jsonify({"error": "Código não fornecido pelo Google"}), 400
    return _finish(result.redirect_to, saved_state)


def _finish(location: str, saved_state):
    response = redirect(location)
    if saved_state is not None:
        response.delete_cookie(STATE_COOKIE, path="/", secure=True, httponly=True, samesite="Lax")
    return response
