"""Configuration management for the task tracker.

Settings live in ``<home>/config.json`` using the camelCase keys of
the established tracker layout (``displayStyle``, ``updateInterval``
...).  Environment variables prefixed ``WARP_TRACKER_`` override the file, e.g.
``WARP_TRACKER_SCAN_INTERVAL=2``.  The tracker home defaults to
``~/.warp-tracker`` and can be moved with ``WARP_TRACKER_HOME``.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "WARP_TRACKER_HOME"
CONFIG_FILE_NAME = "config.json"


def tracker_home() -> Path:
    """Return the directory holding ``tasks.json`` and ``config.json``."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".warp-tracker"


class TrackerSettings(BaseSettings):
    """Runtime configuration.

    ``update_interval`` is the refresh period (seconds) for UIs showing the
    current task; ``scan_interval`` is the reconciler tick period.
    """

    model_config = SettingsConfigDict(env_prefix="WARP_TRACKER_", extra="ignore")

    display_style: Literal["progress-bar", "compact"] = "progress-bar"
    update_interval: int = Field(default=30, gt=0)
    notifications: bool = True
    auto_save: bool = True
    progress_bar_length: int = Field(default=30, ge=5, le=200)
    scan_interval: float = Field(default=5.0, gt=0)
    probe_timeout: float = Field(default=3.0, gt=0)
    notify_threshold: int = Field(default=25, ge=0, le=100)
    notify_sign_agnostic: bool = False
    log_level: str = "WARNING"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # File values arrive as init kwargs; the environment wins over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("log_level must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG")
        return normalized

    def to_file_dict(self) -> dict[str, Any]:
        return {to_camel(name): value for name, value in self.model_dump(mode="json").items()}


class ConfigError(ValueError):
    """Raised for unknown keys or invalid values in ``config --set``."""


_FIELD_BY_KEY: dict[str, str] = {}
for _name in TrackerSettings.model_fields:
    _FIELD_BY_KEY[_name] = _name
    _FIELD_BY_KEY[to_camel(_name)] = _name


def field_for_key(key: str) -> str:
    """Map a camelCase or snake_case key to a settings field name."""
    try:
        return _FIELD_BY_KEY[key.strip()]
    except KeyError:
        known = ", ".join(sorted(to_camel(name) for name in TrackerSettings.model_fields))
        raise ConfigError(f"Unknown configuration key {key!r}. Known keys: {known}") from None


def coerce_value(raw: str) -> bool | int | float | str:
    """Parse ``true``/``false``, integers and floats; keep anything else as text."""
    text = raw.strip()
    if text.lower() == "true":
        return True
    if text.lower() == "false":
        return False
    for parse in (int, float):
        try:
            return parse(text)
        except ValueError:
            continue
    return text


class ConfigManager:
    """Read and write ``config.json``.

    Parameters
    ----------
    home:
        Tracker home directory.  Defaults to ``tracker_home()``.
    """

    def __init__(self, home: str | Path | None = None) -> None:
        self._home = Path(home) if home is not None else tracker_home()

    @property
    def path(self) -> Path:
        return self._home / CONFIG_FILE_NAME

    def _read_file(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", self.path, exc)
            return {}
        if not isinstance(document, dict):
            logger.warning("Ignoring config file %s: not a JSON object", self.path)
            return {}
        values: dict[str, Any] = {}
        for key, value in document.items():
            name = _FIELD_BY_KEY.get(key)
            if name is None:
                logger.debug("Ignoring unknown config key %r", key)
                continue
            values[name] = value
        return values

    def _write_file(self, values: dict[str, Any]) -> None:
        self._home.mkdir(parents=True, exist_ok=True)
        document = {to_camel(name): value for name, value in values.items()}
        self.path.write_text(json.dumps(document, indent=2), encoding="utf-8")

    def load(self) -> TrackerSettings:
        """Return settings from the file overlaid with the environment.

        Invalid file values are logged and replaced by defaults.  If the
        environment itself holds an invalid value, it is logged and the
        built-in defaults are returned.
        """
        values = self._read_file()
        try:
            return TrackerSettings(**values)
        except ValidationError as exc:
            logger.warning("Invalid values in %s, using defaults: %s", self.path, exc)
        try:
            return TrackerSettings()
        except ValidationError as exc:
            logger.warning(
                "Invalid WARP_TRACKER_ environment variables, using built-in defaults: %s",
                exc,
            )
            return TrackerSettings.model_construct()

    def save(self, settings: TrackerSettings) -> None:
        self._write_file(settings.model_dump(mode="json"))

    def initialize(self) -> TrackerSettings:
        """Write default settings if no config file exists yet."""
        if not self.path.exists():
            self._write_file(TrackerSettings.model_construct().model_dump(mode="json"))
        return self.load()

    def set_value(self, assignment: str) -> tuple[str, Any]:
        """Apply a ``key=value`` assignment and persist it.

        Returns
        -------
        tuple[str, Any]
            The camelCase key and the coerced value stored.

        Raises
        ------
        ConfigError
            If the assignment is malformed, the key unknown, or the value
            invalid for that key.
        """
        key, separator, raw_value = assignment.partition("=")
        if not separator or not key.strip():
            raise ConfigError("Invalid format. Use: key=value")
        name = field_for_key(key)
        value = coerce_value(raw_value)

        values = self._read_file()
        values[name] = value
        try:
            TrackerSettings.model_validate(values)
        except ValidationError as exc:
            raise ConfigError(f"Invalid value for {to_camel(name)}: {raw_value!r}") from exc
        self._write_file(values)
        return to_camel(name), value
