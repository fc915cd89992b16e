import logging
import logging.handlers
from typing import Optional

from nexttrain.config.settings import Settings, settings as default_settings


def setup_logging(settings: Optional[Settings] = None):
    """Configure the root logger from `settings`.

    - `LOG_LEVEL`: logging level
    - `LOG_TO_CONSOLE`: enable the console handler
    - `LOG_FILE`: when set, adds a RotatingFileHandler
    - `LOG_FORMAT`: message format
    """
    settings = settings or default_settings
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root = logging.getLogger()
    # Avoid duplicate handlers if called multiple times
    if root.handlers:
        return

    root.setLevel(level)
    formatter = logging.Formatter(settings.LOG_FORMAT)

    if settings.LOG_TO_CONSOLE:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root.addHandler(console)

    if settings.LOG_FILE:
        file_handler = logging.handlers.RotatingFileHandler(
            settings.LOG_FILE, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
