# finmemory/web/handlers/ocr.py
import logging

from flask import Blueprint, current_app, jsonify, request

from finmemory.core.ai import InvalidReceiptError, ReceiptExtractionError, decode_receipt_image

logger = logging.getLogger(__name__)

ocr_bp = Blueprint("ocr", __name__)


@ocr_bp.route("/api/ocr/process-receipt", methods=["POST"])
def process_receipt():
    """Lê a foto da nota fiscal com o Gemini e devolve os dados para revisão.

    Nada é salvo aqui; o usuário confirma os dados e envia para /api/transactions.
    """
    reader = current_app.config.get("RECEIPT_READER")
    if reader is None:
        return jsonify({"success": False, "error": "Configuração do servidor incompleta (Gemini)"}), 503

    body = request.get_json(silent=True) or {}
    image_base64 = body.get("imageBase64")
    if not image_base64:
        return jsonify({"success": False, "error": "Imagem não enviada"}), 400

    try:
        image_bytes = decode_receipt_image(image_base64)
    except ReceiptExtractionError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        data = reader.extract_receipt(image_bytes)
    except InvalidReceiptError as e:
        logger.info("Imagem enviada não é uma nota fiscal válida")
        return jsonify({"success": False, "error": str(e), "isInvalidReceipt": True}), 400
    except ReceiptExtractionError as e:
        logger.error("Falha na leitura da nota fiscal: %s", e)
        return jsonify({"success": False, "error": "Não foi possível extrair dados da imagem."}), 500

    logger.info(
        "Nota fiscal lida: estabelecimento=%s itens=%d",
        data.get("merchant_name"),
        len(data.get("items") or []),
    )
    return jsonify({"success": True, "data": data}), 200
