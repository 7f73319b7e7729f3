"""Logging setup shared by the CLI and the web server."""
import logging
import sys

from src.app.config import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> None:
    """Configure the ``tagcat`` logger tree with console and file output."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger("tagcat")
    root.setLevel(level)
    if root.handlers:
        return

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(console)

    settings.log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(settings.log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(file_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
