# finmemory/core/geolocation.py
"""Leitura única da posição atual do dispositivo.

No servidor, a "posição do dispositivo" é a leitura que o navegador enviou junto
com a requisição (coords + timestamp do `navigator.geolocation`). As mesmas
regras do navegador valem aqui: timeout de 5 s e leitura em cache aceita até
5 minutos.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from finmemory.core.models import GeoCoordinate, to_number

logger = logging.getLogger(__name__)

POSITION_TIMEOUT_SECONDS = 5.0
POSITION_MAXIMUM_AGE_SECONDS = 300.0


class GeolocationError(Exception):
    """Posição negada, indisponível, expirada ou fora do timeout."""


class ReportedLocationSource:
    def __init__(
        self,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        captured_at: Optional[float] = None,
        error: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.lat = lat
        self.lng = lng
        # Segundos desde a época; None significa leitura feita agora
        self.captured_at = captured_at
        self.error = error
        self._clock = clock

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]], clock: Callable[[], float] = time.time) -> "ReportedLocationSource":
        """Monta a fonte a partir de `{"lat", "lng", "timestamp"}` ou `{"error": "..."}`."""
        if not isinstance(payload, dict):
            return cls(error="unavailable", clock=clock)
        if payload.get("error"):
            return cls(error=str(payload["error"]), clock=clock)
        return cls(
            lat=to_number(payload.get("lat")),
            lng=to_number(payload.get("lng")),
            captured_at=_parse_timestamp(payload.get("timestamp")),
            clock=clock,
        )

    async def get_current_position(self, maximum_age: float) -> GeoCoordinate:
        if self.error:
            raise GeolocationError(f"Geolocalização indisponível: {self.error}")
        if self.lat is None or self.lng is None:
            raise GeolocationError("Geolocalização indisponível: coordenadas ausentes")
        if not (-90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0):
            raise GeolocationError("Coordenadas fora do intervalo válido")
        if self.captured_at is not None and self._clock() - self.captured_at > maximum_age:
            raise GeolocationError("Leitura de posição expirada")
        return GeoCoordinate(lat=self.lat, lng=self.lng)


def _parse_timestamp(value: Any) -> Optional[float]:
    # O navegador envia milissegundos desde a época; aceitamos também ISO 8601.
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            number = to_number(value)
    else:
        number = to_number(value)
    if number is None:
        return None
    return number / 1000.0 if number > 1e11 else number


async def acquire_position(
    source,
    timeout: float = POSITION_TIMEOUT_SECONDS,
    maximum_age: float = POSITION_MAXIMUM_AGE_SECONDS,
) -> GeoCoordinate:
    """Pede uma leitura única da posição. Levanta GeolocationError em qualquer falha."""
    if source is None:
        raise GeolocationError("Geolocalização indisponível")
    try:
        return await asyncio.wait_for(source.get_current_position(maximum_age=maximum_age), timeout)
    except asyncio.TimeoutError as e:
        raise GeolocationError(f"Timeout de {timeout}s ao obter a posição") from e
