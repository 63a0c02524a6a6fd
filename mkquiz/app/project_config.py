"""The `.mkquizrc` file naming the quiz project, template and manifest."""
import json
import logging
from pathlib import Path

from . import config
from .errors import ConfigError, FileSystemError, ValidationError
from .validation import validate_file_extension, validate_path_exists

logger = logging.getLogger(__name__)

CONFIG_FIELDS = ("projectPath", "templateFile", "allQuizzezJsonPath")


def config_path() -> Path:
    return Path(config.CONFIG_PATH).resolve()


def config_exists() -> bool:
    return config_path().exists()


def validate_config(data) -> dict:
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be an object")
    for field in CONFIG_FIELDS:
        value = data.get(field)
        if not value or not isinstance(value, str):
            raise ConfigError(f"Configuration missing or invalid {field}")
    return {field: data[field] for field in CONFIG_FIELDS}


def validate_config_paths(cfg: dict) -> dict:
    try:
        validate_path_exists(cfg["projectPath"])
    except ValidationError as exc:
        raise ConfigError(f"Project path does not exist: {cfg['projectPath']}") from exc
    try:
        validate_path_exists(cfg["templateFile"])
        validate_file_extension(cfg["templateFile"], ".html")
    except ValidationError as exc:
        raise ConfigError(f"Template file invalid or does not exist: {cfg['templateFile']}") from exc
    try:
        validate_path_exists(cfg["allQuizzezJsonPath"])
        validate_file_extension(cfg["allQuizzezJsonPath"], ".json")
    except ValidationError as exc:
        raise ConfigError(
            f"All quizzes JSON file invalid or does not exist: {cfg['allQuizzezJsonPath']}"
        ) from exc
    return cfg


def load_config() -> dict:
    path = config_path()
    if not path.exists():
        raise ConfigError(f"Configuration not found at {path}. Run 'mkquiz config' first.")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid configuration file: {exc}") from exc
    return validate_config(data)


def save_config(cfg: dict) -> Path:
    cfg = validate_config(cfg)
    path = config_path()
    try:
        path.write_text(json.dumps(cfg, indent=2), encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Failed to save configuration: {exc}", str(path)) from exc
    logger.info("Configuration saved to %s", path)
    return path


def load_and_validate_config() -> dict:
    return validate_config_paths(load_config())
