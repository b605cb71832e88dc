# finmemory/core/geocode.py
import logging
from typing import Optional
from urllib.parse import quote

import requests

from finmemory.core.models import GeoCoordinate

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"
COUNTRY_FILTER = "BR"
MIN_QUERY_LENGTH = 2


def geocode_address(
    query: Optional[str],
    access_token: Optional[str],
    timeout: float = 15.0,
    session: Optional[requests.Session] = None,
) -> Optional[GeoCoordinate]:
    """Converte "Estabelecimento, Cidade, País" em lat/lng usando o Mapbox.

    Nunca levanta exceção: token ausente, consulta curta, resposta HTTP de erro,
    payload inválido ou falha de rede retornam None. O Mapbox devolve o centro
    como [lng, lat]; a saída é sempre (lat, lng).
    """
    if not access_token:
        logger.warning("Geocodificação ignorada: token do Mapbox não configurado.")
        return None
    cleaned = (query or "").strip()
    if len(cleaned) < MIN_QUERY_LENGTH:
        return None

    url = MAPBOX_GEOCODING_URL.format(query=quote(cleaned, safe=""))
    params = {"access_token": access_token, "limit": 1, "country": COUNTRY_FILTER}
    http = session or requests

    try:
        response = http.get(url, params=params, timeout=timeout)
        if not response.ok:
            logger.warning("Geocodificação falhou com HTTP %s para '%s'", response.status_code, cleaned)
            return None
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Erro na geocodificação de '%s': %s", cleaned, e)
        return None

    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list) or not features or not isinstance(features[0], dict):
        return None
    center = features[0].get("center")
    if not isinstance(center, (list, tuple)) or len(center) < 2:
        return None

    lng, lat = center[0], center[1]
    try:
        return GeoCoordinate(lat=float(lat), lng=float(lng))
    except (TypeError, ValueError):
        return None
