import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional


class ConfigError(RuntimeError):
    pass


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


# Configurações globais de ambiente
DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL")
LINEAR_API_KEY = os.getenv("LINEAR_API_KEY")
APP_PORT = int(os.getenv("PORT", "8080"))
DEBUG_MODE = os.getenv("DEBUG_MODE", "False").lower() == "true"

# API do Linear
LINEAR_API_URL = os.getenv("LINEAR_API_URL", "https://api.linear.app/graphql")
LINEAR_TIMEOUT_SECONDS = int(os.getenv("LINEAR_TIMEOUT_SECONDS", "30"))
LINEAR_PAGE_SIZE = 100
# Limite de páginas por busca (protege contra cursor que nunca termina)
LINEAR_MAX_PAGES = int(os.getenv("LINEAR_MAX_PAGES", "50"))

# Discord
DISCORD_TIMEOUT_SECONDS = _optional_float(os.getenv("DISCORD_TIMEOUT_SECONDS"))
DISCORD_MAX_EMBEDS = 10
DISCORD_BATCH_DELAY_SECONDS = 0.5

SERVICE_NAME = "Linear-Discord Communication Relay"
SERVICE_VERSION = "1.0.0"

LINEAR_AVATAR_URL = "https://asset.brandfetch.io/ideiLNHwrW/id_xq4rBdb.png"
USERNAME_RELAY = "Linear"
USERNAME_DIGEST = "Linear Daily Digest"
USERNAME_TASK_REPORT = "Linear Task Report"

UNASSIGNED = "Unassigned"

# Limites de texto
DESCRIPTION_MAX_CHARS = 300
COMMENT_MAX_CHARS = 500
PRIORITY_TITLE_MAX_CHARS = 40
RECENT_TITLE_MAX_CHARS = 50
USER_TASK_TITLE_MAX_CHARS = 50

# Limites de itens por seção
PRIORITY_ISSUES_LIMIT = 10
RECENT_ISSUES_LIMIT = 5
USER_TASKS_LIMIT = 15

# Cores (0xRRGGBB)
COLORS = {
    "blue": 0x5E6AD2,    # cor da marca Linear
    "green": 0x22C55E,
    "yellow": 0xEAB308,
    "red": 0xEF4444,
    "gray": 0x6B7280,
    "purple": 0x8B5CF6,  # comentários
}

STATE_EMOJIS = {
    "backlog": "📥",
    "unstarted": "⚪",
    "started": "🔵",
    "completed": "✅",
    "canceled": "❌",
    "default": "📋",
}

PRIORITY_EMOJIS = {
    0: "⬜",
    1: "🔴",
    2: "🟠",
    3: "🟡",
    4: "🟢",
}

# Ordem dos grupos de status no relatório
STATUS_ORDER = {
    "started": 1,
    "unstarted": 2,
    "backlog": 3,
}
STATUS_ORDER_DEFAULT = 4

# (tipo, ação) -> emoji, título e cor
EVENT_CONFIGS = {
    # Issue create usa a cor da marca; Project create usa verde
    "Issue": {
        "create": {"emoji": "🎯", "title": "New Issue Created", "color": "blue"},
        "update": {"emoji": "📝", "title": "Issue Updated", "color": "yellow"},
        "remove": {"emoji": "🗑️", "title": "Issue Removed", "color": "red"},
        "default": {"emoji": "📋", "title": "Issue {action}", "color": "blue"},
    },
    "Comment": {
        "create": {"emoji": "💬", "title": "New Comment", "color": "purple"},
        "update": {"emoji": "✏️", "title": "Comment Updated", "color": "purple"},
        "remove": {"emoji": "🗑️", "title": "Comment Removed", "color": "purple"},
        "default": {"emoji": "💬", "title": "Comment {action}", "color": "purple"},
    },
    "Project": {
        "create": {"emoji": "🚀", "title": "New Project Created", "color": "green"},
        "update": {"emoji": "📊", "title": "Project Updated", "color": "yellow"},
        "remove": {"emoji": "🗑️", "title": "Project Removed", "color": "red"},
        "default": {"emoji": "📁", "title": "Project {action}", "color": "blue"},
    },
}


@dataclass(frozen=True)
class Settings:
    """Configuração explícita da aplicação (passada para create_app)."""

    discord_webhook_url: Optional[str] = None
    linear_api_key: Optional[str] = None
    port: int = 8080
    debug: bool = False
    linear_api_url: str = "https://api.linear.app/graphql"
    linear_timeout_seconds: float = 30
    linear_max_pages: int = 50
    discord_timeout_seconds: Optional[float] = None
    batch_delay_seconds: float = DISCORD_BATCH_DELAY_SECONDS

    def validate(self) -> "Settings":
        if not self.discord_webhook_url:
            raise ConfigError("DISCORD_WEBHOOK_URL environment variable is required")
        if self.linear_max_pages < 1:
            raise ConfigError("LINEAR_MAX_PAGES must be at least 1")
        return self

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Monta Settings a partir das variáveis de ambiente.
    Sem `environ`, usa os valores lidos na importação deste módulo.
    """
    if environ is None:
        return Settings(
            discord_webhook_url=DISCORD_WEBHOOK_URL or None,
            linear_api_key=LINEAR_API_KEY or None,
            port=APP_PORT,
            debug=DEBUG_MODE,
            linear_api_url=LINEAR_API_URL,
            linear_timeout_seconds=LINEAR_TIMEOUT_SECONDS,
            linear_max_pages=LINEAR_MAX_PAGES,
            discord_timeout_seconds=DISCORD_TIMEOUT_SECONDS,
        )
    return Settings(
        discord_webhook_url=environ.get("DISCORD_WEBHOOK_URL") or None,
        linear_api_key=environ.get("LINEAR_API_KEY") or None,
        port=int(environ.get("PORT", "8080")),
        debug=environ.get("DEBUG_MODE", "False").lower() == "true",
        linear_api_url=environ.get("LINEAR_API_URL", "https://api.linear.app/graphql"),
        linear_timeout_seconds=int(environ.get("LINEAR_TIMEOUT_SECONDS", "30")),
        linear_max_pages=int(environ.get("LINEAR_MAX_PAGES", "50")),
        discord_timeout_seconds=_optional_float(environ.get("DISCORD_TIMEOUT_SECONDS")),
    )
