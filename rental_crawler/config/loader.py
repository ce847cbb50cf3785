"""Configuration loading and hot-reload helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock

import structlog
import yaml

from ..errors import ConfigError
from .models import AppConfig, Subscription

CONFIG_ENV_VAR = "RENTAL_CRAWLER_CONFIG"
CONFIG_FILENAMES = ("config.yaml", "config.yml", "config.json")
DEFAULT_SEARCH_DIRS = (Path("."), Path("/config"))


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Find the configuration file: explicit path, env var, then search dirs."""

    config_path: Path | None = None
    search_dirs: tuple[Path, ...] = field(default=DEFAULT_SEARCH_DIRS)

    def resolve(self) -> Path:
        if self.config_path is not None:
            return Path(self.config_path).expanduser().resolve()
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path).expanduser().resolve()
        for directory in self.search_dirs:
            for filename in CONFIG_FILENAMES:
                candidate = directory / filename
                if candidate.is_file():
                    return candidate.resolve()
        searched = ", ".join(str(d) for d in self.search_dirs)
        raise ConfigError(f"No configuration file found (searched: {searched})")


class ConfigRepository:
    """Own the current configuration snapshot and swap it on file changes.

    ``snapshot()`` always returns a complete, validated ``AppConfig``. A reload
    either installs a whole new snapshot or leaves the previous one in place.
    """

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self.logger = structlog.get_logger("rental_crawler.config")
        self._lock = Lock()
        self._path: Path | None = None
        self._snapshot: AppConfig | None = None
        self._mtime: float | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            self._path = self.locator.resolve()
        return self._path

    @property
    def base_dir(self) -> Path:
        return self.path.parent

    def load(self) -> AppConfig:
        """Read and validate the file, raising ``ConfigError`` when it is unusable."""

        path = self.path
        try:
            mtime = path.stat().st_mtime
            payload = _read_file(path)
            config = AppConfig.model_validate(payload)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            # pydantic's ValidationError is a ValueError subclass
            raise ConfigError(f"Failed to load configuration {path}: {exc}") from exc
        with self._lock:
            self._snapshot = config
            self._mtime = mtime
        return config

    def snapshot(self) -> AppConfig:
        with self._lock:
            current = self._snapshot
        if current is None:
            return self.load()
        return current

    def refresh(self) -> bool:
        """Reload when the file changed on disk; return True if a new snapshot was installed."""

        try:
            mtime = self.path.stat().st_mtime
        except OSError as exc:
            self.logger.warning("config_stat_failed", path=str(self.path), error=str(exc))
            return False
        with self._lock:
            unchanged = self._mtime is not None and mtime == self._mtime
        if unchanged:
            return False
        try:
            self.load()
        except ConfigError as exc:
            with self._lock:
                # Do not retry the same broken file on every poll.
                self._mtime = mtime
            self.logger.error("config_reload_failed", path=str(self.path), error=str(exc))
            return False
        self.logger.info("config_reloaded", path=str(self.path))
        return True

    def store_path(self, config: AppConfig | None = None) -> Path:
        config = config or self.snapshot()
        return config.resolved_store_path(self.base_dir)

    def save(self, config: AppConfig) -> Path:
        path = self.path
        _write_file(path, config.model_dump(mode="json"))
        return path


def sample_config() -> AppConfig:
    """Configuration written by ``rental-crawler init``."""

    return AppConfig(
        subscriptions=[
            Subscription(
                name="Taipei 2 rooms",
                search_url="https://rent.591.com.tw/?region=1&kind=1",
                notify_target="https://discord.com/api/webhooks/<id>/<token>",
                rule_out_single_bathroom=True,
            )
        ]
    )


__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAMES",
    "ConfigLocator",
    "ConfigRepository",
    "sample_config",
]
