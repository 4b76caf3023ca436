import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class DiscordDeliveryError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def send_discord_payload(webhook_url: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> requests.Response:
    """
    Envia o payload (JSON) para o webhook do Discord em um único POST.
    Sem retry: qualquer falha de transporte ou status fora de 2xx levanta
    DiscordDeliveryError com o corpo da resposta.
    """
    if not webhook_url:
        raise DiscordDeliveryError("discord webhook URL is not configured")

    logger.info("Enviando para o Discord: %d embeds", len(payload.get("embeds") or []))
    try:
        resp = requests.post(webhook_url, json=payload, timeout=timeout)
    except requests.RequestException as exc:
        raise DiscordDeliveryError(f"failed to send to discord: {exc}") from exc

    if resp.status_code < 200 or resp.status_code >= 300:
        body = resp.text
        logger.debug("Resposta do Discord (%s): %s", resp.status_code, body)
        raise DiscordDeliveryError(
            f"discord returned status {resp.status_code}: {body}",
            status_code=resp.status_code,
            body=body,
        )

    logger.info("Enviado ao Discord com sucesso (status: %d)", resp.status_code)
    return resp
