# finmemory/core/db.py
import logging
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from finmemory.core.models import AccountLink, TransactionItem

logger = logging.getLogger(__name__)

ACCOUNT_LINKS_TABLE = "user_connections"
PRICE_POINTS_TABLE = "price_points"
TRANSACTIONS_TABLE = "transacoes"
PRODUCTS_TABLE = "produtos"
USERS_TABLE = "users"


def get_supabase_client(config) -> Client:
    """Retorna uma instância do cliente Supabase a partir da configuração validada."""
    return create_client(config.supabase_url, config.supabase_key)


# --- Vínculos de conta (OAuth) ---
def upsert_account_link(supabase_client: Client, link: AccountLink) -> bool:
    """Grava o refresh token do usuário, sobrescrevendo o anterior (chave: e-mail)."""
    try:
        supabase_client.table(ACCOUNT_LINKS_TABLE).upsert(
            link.to_row(), on_conflict="email_usuario"
        ).execute()
        return True
    except Exception as e:
        logger.error("Erro ao salvar vínculo de conta (%s) no Supabase: %s", link.provider, e)
        return False


# --- Usuários ---
def get_user_by_id(supabase_client: Client, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = (
            supabase_client.table(USERS_TABLE).select("id").eq("id", user_id).limit(1).execute()
        )
        return response.data[0] if response.data else None
    except Exception as e:
        logger.error("Erro ao buscar usuário '%s': %s", user_id, e)
        return None


# --- Transações ---
def insert_transaction(supabase_client: Client, transaction: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Insere uma transação e retorna a linha criada (com id), ou None em caso de erro."""
    try:
        response = supabase_client.table(TRANSACTIONS_TABLE).insert(transaction).execute()
        return response.data[0] if response.data else None
    except Exception as e:
        logger.error("Erro ao inserir transação no Supabase: %s", e)
        return None


def insert_products(supabase_client: Client, transaction_id: Any, items: List[TransactionItem]) -> bool:
    """Salva os itens da nota na tabela produtos. Falha aqui não é crítica."""
    rows = [
        {
            "transacao_id": transaction_id,
            "descricao": item.description,
            "quantidade": item.effective_quantity,
            "unidade": "UN",
            "valor_total": item.total_value or 0.0,
            "valor_unitario": item.unit_price,
        }
        for item in items
        if item.description
    ]
    if not rows:
        return False
    try:
        supabase_client.table(PRODUCTS_TABLE).insert(rows).execute()
        return True
    except Exception as e:
        logger.warning("Erro ao salvar produtos da transação %s (não crítico): %s", transaction_id, e)
        return False


# --- Pontos de preço ---
def insert_price_points(supabase_client: Client, rows: List[Dict[str, Any]]) -> bool:
    """Insere todos os pontos de preço em uma única escrita."""
    try:
        supabase_client.table(PRICE_POINTS_TABLE).insert(rows).execute()
        return True
    except Exception as e:
        logger.error("Erro ao inserir %d pontos de preço no Supabase: %s", len(rows), e)
        return False


def get_recent_price_points(supabase_client: Client, limit: int = 500) -> List[Dict[str, Any]]:
    """Obtém os pontos de preço mais recentes que têm coordenadas.

    Erros do Supabase são propagados para a rota responder 500.
    """
    response = (
        supabase_client.table(PRICE_POINTS_TABLE)
        .select("id,product_name,price,store_name,lat,lng,category,created_at,user_id")
        .not_.is_("lat", "null")
        .not_.is_("lng", "null")
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data or []
