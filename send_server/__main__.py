"""Run the upload service: `python3 -m send_server <config_path>`."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

from send_server.app import create_app
from send_server.config import load_config
from send_server.errors import SendError, describe
from send_server.storage import create_store

logger = logging.getLogger("send_server")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python3 -m send_server",
        description="Serve the Send upload API.",
    )
    parser.add_argument("config_path", help="config file, with or without extension")
    return parser


def configure_logging(level_name: str | None = None) -> None:
    level_name = (level_name or os.environ.get("SEND_LOG") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config_path)
        store = create_store(config)
    except SendError as exc:
        print(f"error: {describe(exc)}", file=sys.stderr)
        raise SystemExit(1) from exc

    app = create_app(config, store)
    logger.info("listening on %s", config.listen_addr)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.listen_host,
            port=config.listen_port,
            log_config=None,
        )
    )
    server.run()


if __name__ == "__main__":
    main()
