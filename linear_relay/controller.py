import logging
import time
from functools import partial
from typing import Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .constants import SERVICE_NAME, SERVICE_VERSION, Settings, load_settings
from .formatters import transform_webhook
from .linear import LinearAPIError, LinearClient
from .models import EnvelopeError, PayloadError, parse_event
from .reports import generate_and_send_report, generate_user_tasks_report
from .services import DiscordDeliveryError, send_discord_payload

logger = logging.getLogger(__name__)


def _error(message, status):
    return jsonify({"error": message}), status


def create_app(settings: Optional[Settings] = None):
    settings = (settings or load_settings()).validate()

    app = Flask(__name__)
    app.config["RELAY_SETTINGS"] = settings
    # Pontos de injeção para testes (relógio e pausa entre lotes)
    app.config.setdefault("RELAY_SLEEP", time.sleep)
    app.config.setdefault("RELAY_NOW", None)

    def get_settings() -> Settings:
        return current_app.config["RELAY_SETTINGS"]

    def discord_sender():
        s = get_settings()
        return partial(send_discord_payload, s.discord_webhook_url, timeout=s.discord_timeout_seconds)

    def linear_client() -> LinearClient:
        s = get_settings()
        return LinearClient(
            api_key=s.linear_api_key,
            api_url=s.linear_api_url,
            timeout=s.linear_timeout_seconds,
            max_pages=s.linear_max_pages,
        )

    def now():
        clock = current_app.config["RELAY_NOW"]
        return clock() if clock else None

    @app.errorhandler(HTTPException)
    def http_error(exc):
        return _error(exc.description or exc.name, exc.code)

    @app.route('/', methods=['GET'])
    def root():
        return {
            'service': SERVICE_NAME,
            'version': SERVICE_VERSION,
            'endpoints': {
                '/webhook': 'POST - Receive Linear webhooks and forward to Discord',
                '/report': 'GET/POST - Generate and send daily digest',
                '/report/by-user': 'GET/POST - Generate and send open tasks grouped by assignee',
                '/health': 'GET - Health check',
            },
        }, 200

    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    @app.route('/webhook', methods=['POST'])
    def webhook():
        body = request.get_data(as_text=True)
        logger.debug("Webhook do Linear recebido: %s", body)

        data = request.get_json(silent=True, force=True)
        if data is None:
            logger.warning("Webhook com JSON inválido")
            return _error('Invalid JSON', 400)

        try:
            event = parse_event(data)
        except EnvelopeError as exc:
            logger.warning("Envelope de webhook inválido: %s", exc)
            return _error('Invalid JSON', 400)
        except PayloadError as exc:
            logger.error("Erro ao processar webhook: %s", exc)
            return _error('Error processing webhook', 500)

        payload = transform_webhook(event, now())
        if payload is None:
            return {'status': 'ignored'}, 200

        try:
            discord_sender()(payload)
        except DiscordDeliveryError as exc:
            logger.error("Erro ao enviar para o Discord: %s", exc)
            return _error('Error forwarding to Discord', 500)

        return {'status': 'forwarded'}, 200

    @app.route('/report', methods=['GET', 'POST'])
    def report():
        if not get_settings().linear_api_key:
            return _error('LINEAR_API_KEY not configured', 503)
        try:
            generate_and_send_report(linear_client(), discord_sender(), now())
        except (LinearAPIError, DiscordDeliveryError) as exc:
            logger.error("Erro ao gerar relatório: %s", exc)
            return _error(str(exc), 500)
        return {'status': 'report_sent'}, 200

    @app.route('/report/by-user', methods=['GET', 'POST'])
    def report_by_user():
        s = get_settings()
        if not s.linear_api_key:
            return _error('LINEAR_API_KEY not configured', 503)
        try:
            generate_user_tasks_report(
                linear_client(),
                discord_sender(),
                s.batch_delay_seconds,
                now(),
                sleep=current_app.config["RELAY_SLEEP"],
            )
        except (LinearAPIError, DiscordDeliveryError) as exc:
            logger.error("Erro ao gerar relatório por usuário: %s", exc)
            return _error(str(exc), 500)
        return {'status': 'user_report_sent'}, 200

    return app
