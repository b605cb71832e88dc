# finmemory/core/price_points.py
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from supabase import Client

from finmemory.core import db
from finmemory.core.geolocation import (
    POSITION_MAXIMUM_AGE_SECONDS,
    POSITION_TIMEOUT_SECONDS,
    GeolocationError,
    acquire_position,
)
from finmemory.core.models import GeoCoordinate, PricePoint, TransactionItem
from finmemory.utils.logging_setup import log_event

logger = logging.getLogger(__name__)

ItemLike = Union[TransactionItem, Dict[str, Any]]


def _as_item(item: ItemLike) -> TransactionItem:
    return item if isinstance(item, TransactionItem) else TransactionItem.from_dict(item)


def derive_price_points(
    user_id: str,
    store_name: str,
    category: Optional[str],
    items: Iterable[ItemLike],
    position: GeoCoordinate,
) -> List[PricePoint]:
    """Converte os itens válidos de uma transação em pontos de preço.

    Entram apenas itens com descrição e valor total estritamente positivo;
    o preço é o valor unitário (quantidade ausente ou zero conta como 1).
    """
    points = []
    for raw in items:
        item = _as_item(raw)
        if not item.description or item.total_value is None or item.total_value <= 0:
            continue
        points.append(
            PricePoint(
                user_id=user_id,
                store_name=store_name,
                product_name=item.description,
                price=item.unit_price,
                lat=position.lat,
                lng=position.lng,
                category=category,
            )
        )
    return points


async def create_price_points_from_transaction(
    supabase_client: Client,
    user_id: str,
    store_name: Optional[str],
    category: Optional[str],
    items: Optional[List[ItemLike]],
    location_source,
    timeout: float = POSITION_TIMEOUT_SECONDS,
    maximum_age: float = POSITION_MAXIMUM_AGE_SECONDS,
) -> bool:
    """Cria price_points a partir de uma transação já salva.

    Melhor esforço: nunca levanta exceção e nunca desfaz a transação. Retorna
    True só quando algum ponto foi gravado.
    """
    if not items or not store_name or not str(store_name).strip():
        return False
    store_name = str(store_name).strip()

    try:
        position = await acquire_position(location_source, timeout=timeout, maximum_age=maximum_age)
    except GeolocationError as e:
        log_event(logger, logging.INFO, "price_points.skipped", reason="no_geolocation", user_id=user_id, detail=str(e))
        return False

    try:
        points = derive_price_points(user_id, store_name, category, items, position)
    except Exception as e:
        log_event(logger, logging.WARNING, "price_points.invalid_items", user_id=user_id, error=str(e))
        return False

    if not points:
        return False

    if not db.insert_price_points(supabase_client, [point.to_row() for point in points]):
        log_event(
            logger,
            logging.ERROR,
            "price_points.insert_failed",
            user_id=user_id,
            store_name=store_name,
            count=len(points),
        )
        return False

    log_event(logger, logging.INFO, "price_points.created", user_id=user_id, store_name=store_name, count=len(points))
    return True
