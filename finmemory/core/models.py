# finmemory/core/models.py
from typing import Any, Dict, Optional

DEFAULT_CATEGORY = "Outros"

# O cliente envia os itens com chaves em português; aceitamos também em inglês.
_DESCRIPTION_KEYS = ("descricao", "description", "name")
_QUANTITY_KEYS = ("quantidade", "quantity")
_TOTAL_KEYS = ("valor_total", "total_value", "price")


def _first_present(data: Dict[str, Any], keys) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def to_number(value: Any) -> Optional[float]:
    """Converte números e strings ("8,90", "8.90") para float. None se inválido."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().replace("R$", "").strip()
        if "," in cleaned:
            cleaned = cleaned.replace(".", "").replace(",", ".")
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


class GeoCoordinate:
    def __init__(self, lat: float, lng: float):
        self.lat = lat
        self.lng = lng

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    def __eq__(self, other):
        if not isinstance(other, GeoCoordinate):
            return NotImplemented
        return (self.lat, self.lng) == (other.lat, other.lng)

    def __repr__(self):
        return f"GeoCoordinate(lat={self.lat}, lng={self.lng})"


class AccountLink:
    """Vínculo entre o e-mail do usuário e o refresh token de um provedor OAuth."""

    def __init__(self, user_email: str, refresh_token: str, provider: str = "google"):
        self.user_email = user_email
        self.refresh_token = refresh_token
        self.provider = provider

    def to_row(self) -> Dict[str, str]:
        return {
            "email_usuario": self.user_email,
            "refresh_token": self.refresh_token,
            "provider": self.provider,
        }


class TransactionItem:
    def __init__(
        self,
        description: Optional[str],
        total_value: Optional[float],
        quantity: Optional[float] = None,
    ):
        self.description = description
        self.total_value = total_value
        self.quantity = quantity

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionItem":
        description = _first_present(data, _DESCRIPTION_KEYS)
        if description is not None:
            description = str(description).strip()
        return cls(
            description=description,
            total_value=to_number(_first_present(data, _TOTAL_KEYS)),
            quantity=to_number(_first_present(data, _QUANTITY_KEYS)),
        )

    @property
    def effective_quantity(self) -> float:
        # Quantidade ausente, zero ou negativa conta como 1
        if self.quantity is None or self.quantity <= 0:
            return 1.0
        return self.quantity

    @property
    def unit_price(self) -> float:
        return (self.total_value or 0.0) / self.effective_quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "descricao": self.description,
            "quantidade": self.quantity,
            "valor_total": self.total_value,
        }


class PricePoint:
    def __init__(
        self,
        user_id: str,
        store_name: str,
        product_name: str,
        price: float,
        lat: float,
        lng: float,
        category: Optional[str] = None,
    ):
        self.user_id = user_id
        self.store_name = store_name
        self.product_name = product_name
        self.price = price
        self.lat = lat
        self.lng = lng
        self.category = (category or "").strip() or DEFAULT_CATEGORY

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "store_name": self.store_name,
            "product_name": self.product_name,
            "price": self.price,
            "lat": self.lat,
            "lng": self.lng,
            "category": self.category,
        }
