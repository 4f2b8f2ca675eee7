"""Logging setup shared by the CLI and the web server."""
import logging
import sys

from vet1stop.app.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s | %(name)-28s | %(levelname)-7s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(settings: Settings | None = None) -> None:
    """Configure the root logger with stdout and file handlers."""
    settings = settings or get_settings()
    settings.log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(settings.log_path, encoding="utf-8"),
        ],
    )
