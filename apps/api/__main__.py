"""Module entry point for python -m apps.api."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from core.logging_utils import configure_logging
from core.settings import get_settings


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the sync relay HTTP service")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, settings.log_file)
    log_level = logging.getLevelNamesMapping()[settings.log_level]
    uvicorn.run("apps.api.main:app", host=args.host, port=args.port, log_level=log_level)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
