"""
Centralized logging configuration using loguru.
Format: time | level | name | function | message. LOG_FILE rỗng thì chỉ log ra console.
"""
import sys
from loguru import logger

from render_worker.core.config import settings

# Remove default handler
logger.remove()

_LOG_LEVEL = settings.log_level
if _LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR"):
    _LOG_LEVEL = "INFO"
_FORMAT_CONSOLE = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | <cyan>{function}</cyan> | <level>{message}</level>"
)
_FORMAT_FILE = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} | {function} | {message}"
)

logger.configure(extra={"name": "render_worker"})

# Console handler
logger.add(
    sys.stderr,
    colorize=True,
    format=_FORMAT_CONSOLE,
    level=_LOG_LEVEL,
)

# File handler (theo ngày)
if settings.log_file:
    logger.add(
        settings.log_file,
        rotation="00:00",
        retention="30 days",
        level="INFO",
        format=_FORMAT_FILE,
        encoding="utf-8",
    )


def get_logger(name: str = "render_worker"):
    """Lấy logger gắn với tên module. Log sẽ có {extra[name]} và {function}."""
    return logger.bind(name=name)


# Export
__all__ = ["logger", "get_logger"]
