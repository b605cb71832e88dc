# finmemory/web/handlers/price_map.py
import logging

from flask import Blueprint, current_app, jsonify, request

from finmemory.core import db
from finmemory.core.geocode import geocode_address
from finmemory.core.models import PricePoint, to_number
from finmemory.utils.text_utils import format_time_ago, mask_user_id

logger = logging.getLogger(__name__)

price_map_bp = Blueprint("price_map", __name__)

MAP_POINTS_LIMIT = 500


@price_map_bp.route("/api/map/points", methods=["GET"])
def map_points():
    """Pontos do mapa de preços, com o usuário mascarado como "Explorador #XXXX"."""
    try:
        rows = db.get_recent_price_points(current_app.config["SUPABASE_CLIENT"], limit=MAP_POINTS_LIMIT)
    except Exception as e:
        logger.error("Erro ao buscar price_points: %s", e)
        return jsonify({"error": "Erro ao buscar pontos do mapa"}), 500

    points = []
    for row in rows:
        lat, lng = to_number(row.get("lat")), to_number(row.get("lng"))
        if lat is None or lng is None:
            continue
        points.append(
            {
                "id": row.get("id"),
                "product_name": row.get("product_name"),
                "price": row.get("price"),
                "store_name": row.get("store_name"),
                "lat": lat,
                "lng": lng,
                "category": row.get("category"),
                "time_ago": format_time_ago(row.get("created_at")),
                "user_label": mask_user_id(row.get("user_id")),
            }
        )
    return jsonify({"points": points}), 200


@price_map_bp.route("/api/map/share-price", methods=["POST"])
def share_price():
    """Compartilha manualmente o preço de um produto no mapa."""
    body = request.get_json(silent=True) or {}
    user_id = body.get("userId")
    product_name = (body.get("product_name") or "").strip()
    store_name = (body.get("store_name") or "").strip()
    price = to_number(body.get("price"))
    lat, lng = to_number(body.get("lat")), to_number(body.get("lng"))

    if not user_id:
        return jsonify({"success": False, "error": "Faça login para compartilhar preços."}), 401
    if not product_name or not store_name or price is None or price <= 0:
        return jsonify({"success": False, "error": "Preencha produto, preço e loja."}), 400
    if lat is None or lng is None:
        return jsonify({"success": False, "error": "Ative a localização para compartilhar no mapa."}), 400

    point = PricePoint(
        user_id=user_id,
        store_name=store_name,
        product_name=product_name,
        price=price,
        lat=lat,
        lng=lng,
        category=body.get("category"),
    )
    if not db.insert_price_points(current_app.config["SUPABASE_CLIENT"], [point.to_row()]):
        return jsonify({"success": False, "error": "Erro ao compartilhar preço"}), 500
    return jsonify({"success": True, "point": point.to_row()}), 201


@price_map_bp.route("/api/geocode", methods=["GET"])
def geocode():
    """Converte "Loja, Cidade, Brasil" em coordenadas para posicionar no mapa."""
    config = current_app.config["FINMEMORY_CONFIG"]
    coordinate = geocode_address(
        request.args.get("q"),
        config.mapbox_access_token,
        timeout=config.http_timeout_seconds,
    )
    if coordinate is None:
        return jsonify({"error": "Endereço não encontrado"}), 404
    return jsonify(coordinate.to_dict()), 200
