"""
Helpers de data/hora.

Tudo e armazenado em UTC (timezone-aware) e serializado em ISO 8601.
"""
from datetime import datetime, timezone
from typing import Optional, Union

TZ_UTC = timezone.utc


def agora_utc() -> datetime:
    """Retorna datetime atual em UTC (timezone-aware)."""
    return datetime.now(TZ_UTC)


def para_utc(dt: datetime) -> datetime:
    """
    Converte datetime para UTC.

    Datetimes naive sao assumidos como UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TZ_UTC)
    return dt.astimezone(TZ_UTC)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Converte valor vindo do banco (string ISO ou datetime) para datetime UTC.

    Returns:
        datetime em UTC ou None se valor vazio/invalido
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return para_utc(value)
    try:
        # Supabase devolve "Z" em alguns campos
        return para_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None


def iso(dt: Optional[datetime]) -> Optional[str]:
    """Serializa datetime para ISO 8601 (ou None)."""
    return dt.isoformat() if dt else None
