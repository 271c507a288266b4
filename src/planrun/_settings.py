from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from planrun.listeners import ListenerRegistry, create_listener, default_registry

logger = logging.getLogger(__name__)

SETTINGS_DIR_ENV = "PLANRUN_SETTINGS_DIR"
DEFAULT_PROFILE = "CurrentProfile"
RESULTS_FILE = "results.json"


class ListenerConfig(BaseModel):
    type: Literal["console", "jsonl"]
    name: str | None = None
    enabled: bool = True
    path: Path | None = None


class ResultSettings(BaseModel):
    listeners: list[ListenerConfig] = Field(default_factory=list)


def settings_root() -> Path:
    """Root directory holding one subdirectory per settings profile."""
    configured = os.environ.get(SETTINGS_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".planrun" / "settings"


def profile_dir(profile: str | None = None) -> Path:
    return settings_root() / (profile or DEFAULT_PROFILE)


def load_result_settings(directory: Path) -> ResultSettings | None:
    """Read ``results.json`` from a profile directory, if present."""
    path = directory / RESULTS_FILE
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unreadable result settings '%s': %s", path, exc)
        return None
    try:
        return ResultSettings.model_validate_json(text)
    except ValidationError as exc:
        logger.warning("Ignoring invalid result settings '%s': %s", path, exc)
        return None


def build_registry(settings: ResultSettings | None) -> ListenerRegistry:
    """Create the listeners described by a profile, or the default set."""
    if settings is None or not settings.listeners:
        return default_registry()

    registry = ListenerRegistry()
    for config in settings.listeners:
        options: dict = {"enabled": config.enabled}
        if config.name:
            options["name"] = config.name
        if config.type == "jsonl" and config.path is not None:
            options["path"] = config.path
        registry.add(create_listener(config.type, **options))
    return registry


def load_profile(profile: str | None = None) -> ListenerRegistry:
    directory = profile_dir(profile)
    if profile and not directory.is_dir():
        logger.warning("Settings profile '%s' not found in '%s'", profile, settings_root())
    else:
        logger.debug("Using settings profile '%s'", directory)
    return build_registry(load_result_settings(directory))
