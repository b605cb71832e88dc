# finmemory/utils/logging_setup.py
import logging
from typing import Any


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Registra um evento no formato `event=<nome> chave=valor ...`.

    Os campos vão também em `extra` para handlers que serializam o registro.
    """
    parts = [f"event={event}"]
    parts.extend(f"{key}={value!r}" for key, value in fields.items())
    logger.log(level, " ".join(parts), extra={"event": event, "fields": fields})
