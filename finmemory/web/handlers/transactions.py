# finmemory/web/handlers/transactions.py
import logging

from flask import Blueprint, current_app, jsonify, request

from finmemory.core import db
from finmemory.core.geolocation import ReportedLocationSource
from finmemory.core.models import TransactionItem, to_number
from finmemory.core.price_points import create_price_points_from_transaction

logger = logging.getLogger(__name__)

transactions_bp = Blueprint("transactions", __name__)


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


@transactions_bp.route("/api/transactions", methods=["POST"])
async def save_transaction():
    """Salva a transação confirmada pelo usuário e, em seguida, tenta gerar os pontos de preço.

    Body: {userId, date, merchant_name, merchant_cnpj, total_amount, items,
           category, payment_method, receipt_image_url, source,
           location: {lat, lng, timestamp} | {error} | null}
    """
    if not request.is_json:
        return _error("Request must be JSON", 400)
    body = request.get_json(silent=True) or {}
    supabase_client = current_app.config["SUPABASE_CLIENT"]

    user_id = body.get("userId")
    merchant_name = (body.get("merchant_name") or "").strip()
    total_amount = to_number(body.get("total_amount"))
    raw_items = body.get("items") or []

    if not user_id:
        return _error("userId é obrigatório", 400)
    if len(merchant_name) < 2:
        return _error("Nome do estabelecimento é obrigatório", 400)
    if total_amount is None or total_amount <= 0:
        return _error("Valor total inválido", 400)
    if not isinstance(raw_items, list) or not all(isinstance(i, dict) for i in raw_items):
        return _error("items deve ser uma lista de objetos", 400)

    if not db.get_user_by_id(supabase_client, user_id):
        return _error("Usuário não encontrado", 404)

    items = [TransactionItem.from_dict(raw) for raw in raw_items]
    category = body.get("category") or None

    transaction = db.insert_transaction(
        supabase_client,
        {
            "user_id": user_id,
            "estabelecimento": merchant_name,
            "cnpj": body.get("merchant_cnpj") or None,
            "data": body.get("date") or None,
            "total": total_amount,
            "forma_pagamento": body.get("payment_method") or None,
            "categoria": category,
            "items": [item.to_dict() for item in items] or None,
            "source": body.get("source") or "manual",
            "receipt_image_url": body.get("receipt_image_url") or None,
        },
    )
    if not transaction:
        return _error("Erro ao salvar transação", 500)

    logger.info("Transação %s salva para o usuário %s", transaction.get("id"), user_id)

    if items:
        db.insert_products(supabase_client, transaction.get("id"), items)

    # A transação já está salva; os pontos de preço são melhor esforço
    price_points_created = await create_price_points_from_transaction(
        supabase_client,
        user_id=user_id,
        store_name=merchant_name,
        category=category,
        items=items,
        location_source=ReportedLocationSource.from_payload(body.get("location")),
    )

    return jsonify(
        {
            "success": True,
            "transaction": {
                "id": transaction.get("id"),
                "estabelecimento": transaction.get("estabelecimento"),
                "total": transaction.get("total"),
                "data": transaction.get("data"),
                "source": transaction.get("source"),
            },
            "price_points_created": price_points_created,
        }
    ), 200
