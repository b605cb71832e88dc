# finmemory/utils/text_utils.py
from datetime import datetime, timezone
from typing import Optional


def mask_user_id(user_id) -> str:
    """Mascara o id do usuário para exibição pública no mapa.
    Ex: "3f2a9c1e-...-8b7d0a12" -> "Explorador #0a12"
    """
    if not user_id or not isinstance(user_id, str):
        return "Explorador"
    last4 = user_id.replace("-", "")[-4:]
    return f"Explorador #{last4}"


def mask_email(email) -> str:
    """Mascara o e-mail para os logs. Ex: "ana.souza@example.com" -> "a***@example.com"."""
    if not email or not isinstance(email, str) or "@" not in email:
        return "***"
    local, domain = email.rsplit("@", 1)
    return f"{local[:1]}***@{domain}"


def format_time_ago(date_str: Optional[str], now: Optional[datetime] = None) -> str:
    """Converte um timestamp ISO em texto relativo ("Há 5 min", "Há 3h", "Há 2 dia(s)").
    Acima de uma semana, devolve a data no formato brasileiro (dd/mm/aaaa).
    """
    if not date_str:
        return ""
    try:
        moment = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    diff_seconds = max((now - moment).total_seconds(), 0)
    diff_mins = int(diff_seconds // 60)
    diff_hours = int(diff_seconds // 3600)
    diff_days = int(diff_seconds // 86400)

    if diff_mins < 60:
        return f"Há {diff_mins} min"
    if diff_hours < 24:
        return f"Há {diff_hours}h"
    if diff_days < 7:
        return f"Há {diff_days} dia(s)"
    return moment.strftime("%d/%m/%Y")
