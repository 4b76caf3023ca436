from datetime import datetime, timezone
from typing import Optional

from .constants import (
    PRIORITY_EMOJIS,
    STATE_EMOJIS,
    STATUS_ORDER,
    STATUS_ORDER_DEFAULT,
)


def truncate(text: Optional[str], max_len: int) -> str:
    """Corta o texto em `max_len` caracteres, terminando com '...'."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def get_state_emoji(state_type: Optional[str]) -> str:
    return STATE_EMOJIS.get(state_type or "", STATE_EMOJIS["default"])


def get_priority_emoji(priority: Optional[int]) -> str:
    return PRIORITY_EMOJIS.get(priority, PRIORITY_EMOJIS[0])


def get_status_priority(state_type: Optional[str]) -> int:
    return STATUS_ORDER.get(state_type or "", STATUS_ORDER_DEFAULT)


def capitalize_action(action: Optional[str]) -> str:
    # "archive" -> "Archive"; mantém o resto da palavra intacto
    if not action:
        return ""
    return action[:1].upper() + action[1:]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Timestamp RFC 3339 em UTC, no formato aceito pelos embeds do Discord."""
    moment = moment or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # fromisoformat só aceita 'Z' a partir do Python 3.11
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def start_of_day_utc(moment: Optional[datetime] = None) -> datetime:
    moment = moment or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
