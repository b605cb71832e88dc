from .auth import auth_bp
from .health import health_bp
from .ocr import ocr_bp
from .price_map import price_map_bp
from .transactions import transactions_bp

ALL_BLUEPRINTS = [
    auth_bp,
    transactions_bp,
    ocr_bp,
    price_map_bp,
    health_bp,
]
