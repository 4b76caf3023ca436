import logging

from linear_relay.constants import ConfigError, load_settings
from linear_relay.controller import create_app


def _setup_logging(debug):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = load_settings()
_setup_logging(settings.debug)

try:
    app = create_app(settings)
except ConfigError as exc:
    logging.getLogger(__name__).critical("%s", exc)
    raise SystemExit(1)

if __name__ == '__main__':
    logging.getLogger(__name__).info(
        "Linear-Discord Communication Relay ouvindo na porta %d (/webhook, /report, /report/by-user, /health)",
        settings.port,
    )
    app.run(host='0.0.0.0', port=settings.port, debug=settings.debug, use_reloader=False)
