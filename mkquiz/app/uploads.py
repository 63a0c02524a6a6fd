import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

from . import config
from .errors import FileSystemError

logger = logging.getLogger(__name__)


def upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def scratch_path(prefix: str, suffix: str) -> Path:
    stamp = int(time.time() * 1000)
    return upload_dir() / f"{prefix}-{stamp}-{secrets.token_hex(4)}{suffix}"


def store_upload(upload, prefix: str) -> Path:
    """Copy an uploaded file into the scratch directory, keeping its extension."""
    suffix = Path(upload.filename or "").suffix
    target = scratch_path(prefix, suffix)
    try:
        with target.open("wb") as handle:
            while chunk := upload.file.read(1024 * 1024):
                handle.write(chunk)
    except OSError as exc:
        discard(target)
        raise FileSystemError(f"Failed to store upload: {exc}", str(target)) from exc
    return target


def discard(*paths) -> None:
    for path in paths:
        if not path:
            continue
        try:
            Path(path).unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary file %s", path, exc_info=True)


def sweep_stale_uploads(now=None, max_age_hours: int | None = None) -> int:
    if max_age_hours is None:
        max_age_hours = config.UPLOAD_MAX_AGE_HOURS
    directory = Path(config.UPLOAD_DIR)
    if not directory.is_dir():
        return 0
    now = now or datetime.now(timezone.utc)
    cutoff = (now - timedelta(hours=max_age_hours)).timestamp()

    cleaned = 0
    for path in directory.iterdir():
        try:
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                cleaned += 1
        except OSError:
            logger.warning("Could not sweep %s", path, exc_info=True)
    if cleaned:
        logger.info("Cleaned up %d old temporary file(s)", cleaned)
    return cleaned
