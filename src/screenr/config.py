"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .types import FolderConfig, Folders

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/screenr/config.yaml")
DEFAULT_ROOT_DIR = Path("~/.local/lib/screenr")
DEFAULT_LOG_LEVEL = "info"
DEFAULT_IMAP_PORT = 993
DEFAULT_SCREEN_INTERVAL = 20.0
DEFAULT_TRAINING_INTERVAL = 86_400.0
MAILBOX_TYPES = ("maildir", "imap")


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False


@dataclass(frozen=True)
class MailboxConfig:
    """Mailbox transport settings."""

    type: str
    path: Path | None = None
    host: str | None = None
    port: int = DEFAULT_IMAP_PORT
    user: str | None = None
    password: str | None = None


@dataclass(frozen=True)
class SpamSettings:
    """Spam classifier training sources and destination."""

    reference_folder: str
    spam_folder: str
    training_interval: float = DEFAULT_TRAINING_INTERVAL
    max_dataset_size: int | None = None


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    root_dir: Path
    mailbox: MailboxConfig
    folders: Folders
    spam: SpamSettings | None
    interval: float
    logging: LoggingConfig


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML."""

    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    config = _parse_config(raw)
    LOGGER.debug("Loaded configuration from %s", config_path)
    return config


def resolve_config_path(explicit: Path | str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.environ.get("SCREENR_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def _parse_config(raw: dict[str, Any]) -> Config:
    root_dir = Path(raw.get("root_dir") or raw.get("rootdir") or DEFAULT_ROOT_DIR).expanduser()
    schedule = raw.get("schedule") or {}
    if not isinstance(schedule, dict):
        raise ConfigError("schedule must be a mapping.")
    return Config(
        root_dir=root_dir,
        mailbox=_parse_mailbox(raw.get("mailbox")),
        folders=_parse_folders(raw.get("folders")),
        spam=_parse_spam(raw.get("spam")),
        interval=_positive_number(
            schedule.get("interval", DEFAULT_SCREEN_INTERVAL), "schedule.interval"
        ),
        logging=_parse_logging(raw.get("logging")),
    )


def _parse_mailbox(value: Any) -> MailboxConfig:
    if not isinstance(value, dict):
        raise ConfigError("mailbox must be a mapping with a 'type'.")
    kind = str(value.get("type", "")).strip().lower()
    if kind not in MAILBOX_TYPES:
        raise ConfigError(f"mailbox.type must be one of: {', '.join(MAILBOX_TYPES)}.")

    if kind == "maildir":
        path = value.get("path")
        if not path:
            raise ConfigError("mailbox.path is required for maildir mailboxes.")
        return MailboxConfig(type=kind, path=Path(path).expanduser())

    host = value.get("host")
    user = value.get("user")
    if not host or not user:
        raise ConfigError("mailbox requires 'host' and 'user' for imap mailboxes.")
    password = value.get("password")
    password_env = value.get("password_env")
    if password is None and password_env:
        password = os.environ.get(str(password_env))
        if password is None:
            raise ConfigError(f"Environment variable '{password_env}' is not set.")
    if password is None:
        raise ConfigError("mailbox requires 'password' or 'password_env' for imap mailboxes.")
    port = value.get("port", DEFAULT_IMAP_PORT)
    if not isinstance(port, int) or isinstance(port, bool) or port <= 0:
        raise ConfigError("mailbox.port must be a positive integer.")
    return MailboxConfig(
        type=kind,
        host=str(host),
        port=port,
        user=str(user),
        password=str(password),
    )


def _parse_folders(value: Any) -> Folders:
    if not value or not isinstance(value, dict):
        raise ConfigError("folders must be a mapping of alias to folder config.")

    configs: list[FolderConfig] = []
    for alias, raw_cfg in value.items():
        field_name = f"folders.{alias}"
        if isinstance(raw_cfg, str):
            raw_cfg = {"folder": raw_cfg}
        if not isinstance(raw_cfg, dict):
            raise ConfigError(f"{field_name} must be a folder name or a mapping.")
        folder = raw_cfg.get("folder")
        if not isinstance(folder, str) or not folder.strip():
            raise ConfigError(f"{field_name}.folder must be a non-empty string.")
        screening_folder = raw_cfg.get("screening_folder") or folder
        if not isinstance(screening_folder, str):
            raise ConfigError(f"{field_name}.screening_folder must be a string.")
        configs.append(
            FolderConfig(
                alias=str(alias),
                folder=folder,
                screening_folder=screening_folder,
                scan_for_spam=bool(raw_cfg.get("scan_for_spam", False)),
                use_for_training=bool(raw_cfg.get("use_for_training", False)),
            )
        )
    return Folders(configs)


def _parse_spam(value: Any) -> SpamSettings | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigError("spam must be a mapping.")
    reference = value.get("reference_folder")
    spam_folder = value.get("spam_folder")
    if not reference or not spam_folder:
        raise ConfigError("spam requires 'reference_folder' and 'spam_folder'.")
    max_size = value.get("max_dataset_size")
    if max_size is not None and (
        not isinstance(max_size, int) or isinstance(max_size, bool) or max_size <= 0
    ):
        raise ConfigError("spam.max_dataset_size must be a positive integer.")
    return SpamSettings(
        reference_folder=str(reference),
        spam_folder=str(spam_folder),
        training_interval=_positive_number(
            value.get("training_interval", DEFAULT_TRAINING_INTERVAL),
            "spam.training_interval",
        ),
        max_dataset_size=max_size,
    )


def _positive_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{field_name} must be a positive number of seconds.")
    return float(value)


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    debug_file = bool(value.get("debug_file", False))
    return LoggingConfig(level=level, debug_file=debug_file)


__all__ = [
    "Config",
    "ConfigError",
    "LoggingConfig",
    "MailboxConfig",
    "SpamSettings",
    "load_config",
    "resolve_config_path",
]
