"""Entry point for the request logger demo server."""

import argparse
import logging
import sys

from reqlog.app import create_app
from reqlog.config import load_config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Request telemetry logger demo server")
    parser.add_argument("--config", default=None,
                        help="Path to the logger config (default: $CONFIG_PATH or logger.conf.json)")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5000)
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    args = parse_args(argv)

    # Misconfiguration and unreachable backends abort startup here
    config = load_config(args.config)
    app = create_app(config)

    logger = logging.getLogger(__name__)
    logger.info("Starting request logger on %s:%d (backend=%s)",
                args.host, args.port, config.database_type.value)
    try:
        app.run(host=args.host, port=args.port, use_reloader=False)
    finally:
        app.config["components"]["interceptor"].shutdown()


if __name__ == "__main__":
    main()
