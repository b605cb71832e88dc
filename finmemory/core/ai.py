# finmemory/core/ai.py
import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from finmemory.core.models import DEFAULT_CATEGORY, TransactionItem, to_number

logger = logging.getLogger(__name__)

MAX_IMAGE_MB = 2.5
_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")

RECEIPT_CATEGORIES = [
    "Supermercado",
    "Restaurante",
    "Farmácia",
    "Eletrônicos",
    "Vestuário",
    "Serviços",
    "Combustível",
    DEFAULT_CATEGORY,
]

# Notas fiscais podem conter qualquer texto; não bloquear por conteúdo
safety_settings = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
}

OCR_PROMPT = f"""
Você é um especialista em extrair informações de notas fiscais brasileiras (NFC-e, cupom fiscal, nota fiscal eletrônica).
Sua única tarefa é analisar a imagem e retornar APENAS um objeto JSON, sem markdown e sem texto explicativo.

Formato JSON:
{{
  "is_valid_receipt": true,
  "date": "AAAA-MM-DD",
  "merchant_name": "Nome completo do estabelecimento",
  "merchant_cnpj": "XX.XXX.XXX/XXXX-XX",
  "total_amount": 123.45,
  "items": [
    {{"descricao": "Nome do produto", "quantidade": 1, "valor_total": 12.90}}
  ],
  "category": "{'|'.join(RECEIPT_CATEGORIES)}",
  "payment_method": "Cartão de Crédito|Cartão de Débito|PIX|Dinheiro|null"
}}

Regras:
1. Se a imagem NÃO for uma nota fiscal brasileira válida, retorne {{"is_valid_receipt": false}}
2. Valores devem ser números (sem "R$", sem pontos de milhar, ponto como separador decimal)
3. Datas no formato AAAA-MM-DD
4. Campos não visíveis na imagem devem ser null
5. Extraia TODOS os itens visíveis na nota
"""


class ReceiptExtractionError(Exception):
    """A imagem não pôde ser processada ou a resposta da IA veio em formato inesperado."""


class InvalidReceiptError(ReceiptExtractionError):
    """A imagem não é uma nota fiscal."""


def decode_receipt_image(image_base64: str) -> bytes:
    """Remove o prefixo data URL, valida o tamanho (máx. 2.5 MB) e decodifica."""
    if not image_base64 or not isinstance(image_base64, str):
        raise ReceiptExtractionError("Imagem não enviada.")
    data = _DATA_URL_PREFIX.sub("", image_base64.strip())
    size_mb = (len(data) * 3 / 4) / (1024 * 1024)
    if size_mb > MAX_IMAGE_MB:
        raise ReceiptExtractionError("Imagem muito grande. Máximo 2MB.")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReceiptExtractionError("Formato de imagem inválido.") from e


def parse_model_json(response_text: str) -> Dict[str, Any]:
    """Extrai o primeiro objeto JSON da resposta do modelo (tolerando cercas ```json)."""
    json_start = response_text.find("{")
    json_end = response_text.rfind("}")
    if json_start == -1 or json_end == -1:
        raise ReceiptExtractionError("A resposta da IA não contém JSON.")
    json_str = response_text[json_start : json_end + 1]
    json_str = "\n".join(
        line for line in json_str.split("\n") if not line.strip().startswith("//")
    )
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ReceiptExtractionError("A resposta da IA não está no formato esperado.") from e
    if not isinstance(data, dict):
        raise ReceiptExtractionError("A resposta da IA não está no formato esperado.")
    return data


def normalize_receipt(data: Dict[str, Any]) -> Dict[str, Any]:
    """Normaliza o JSON da IA para o rascunho de transação que o cliente revisa."""
    if not data.get("is_valid_receipt", True):
        raise InvalidReceiptError(
            "Não conseguimos identificar uma nota fiscal na imagem. "
            "Tente novamente com melhor iluminação ou uma foto mais nítida."
        )

    items: List[Dict[str, Any]] = []
    for raw in data.get("items") or []:
        if not isinstance(raw, dict):
            continue
        item = TransactionItem.from_dict(raw)
        if not item.description:
            continue
        items.append(item.to_dict())

    category = data.get("category") or data.get("categoria")
    if category not in RECEIPT_CATEGORIES:
        category = DEFAULT_CATEGORY if category else None

    return {
        "is_valid_receipt": True,
        "date": data.get("date") or None,
        "merchant_name": data.get("merchant_name") or None,
        "merchant_cnpj": data.get("merchant_cnpj") or data.get("cnpj") or None,
        "total_amount": to_number(data.get("total_amount")),
        "items": items,
        "category": category,
        "payment_method": data.get("payment_method") or None,
    }


class ReceiptReader:
    """Leitura de notas fiscais com o Gemini."""

    def __init__(self, api_key: str, model: str):
        genai.configure(api_key=api_key)
        self.model = model

    def ask_gemini(self, prompt: str, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        model_instance = genai.GenerativeModel(model_name=self.model, safety_settings=safety_settings)
        response = model_instance.generate_content(
            [prompt, {"mime_type": mime_type, "data": image_bytes}],
            generation_config={"temperature": 0.1, "max_output_tokens": 2000},
        )
        if not response.parts:
            raise ReceiptExtractionError("Modelo de IA retornou uma resposta vazia ou bloqueada.")
        return response.text.strip()

    def extract_receipt(self, image_bytes: bytes) -> Dict[str, Any]:
        """Envia a imagem já decodificada ao Gemini e devolve o rascunho normalizado."""
        try:
            response_text = self.ask_gemini(OCR_PROMPT, image_bytes)
        except ReceiptExtractionError:
            raise
        except Exception as e:
            logger.error("Erro ao chamar o Gemini: %s", e)
            raise ReceiptExtractionError("Erro ao processar imagem com IA.") from e

        logger.debug("Resposta do Gemini: %s", response_text[:500])
        return normalize_receipt(parse_model_json(response_text))
