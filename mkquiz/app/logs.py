import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from . import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


class _NoTracebackFormatter(logging.Formatter):
    def format(self, record):
        saved = record.exc_info, record.exc_text
        record.exc_info, record.exc_text = None, None
        try:
            return super().format(record)
        finally:
            record.exc_info, record.exc_text = saved


def configure_logging(level: str | None = None, log_dir: str | None = None, console: bool = True) -> None:
    """Attach a console handler and a rotating file handler to the root logger.

    Tracebacks only reach the file under ``log_dir``; the console gets the
    message line alone.
    """
    global _configured
    if _configured:
        return

    level = (level or config.LOG_LEVEL).upper()
    log_dir = log_dir if log_dir is not None else config.LOG_DIR

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    if console:
        stream = logging.StreamHandler()
        stream.setLevel(getattr(logging, level, logging.INFO))
        stream.setFormatter(_NoTracebackFormatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(stream)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path / "mkquiz.log", maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(file_handler)

    _configured = True
