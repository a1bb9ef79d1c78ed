"""
Process-wide configuration and the interactive settings store.

``get_config()`` merges, in increasing precedence:
1. Built-in defaults
2. A YAML file (``MANGALENS_CONFIG`` or ``./config.yaml``)
3. Environment variables (``.env`` is loaded first via python-dotenv)

``SettingsStore`` is the explicit key-value store for the interactive
client (API key, screenshot prefix, JPEG quality, border threshold).
"""
from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .models import SessionSettings

logger = logging.getLogger(__name__)


DEFAULT_PROMPT = (
    "Extract the text from the manga page image, which is in Japanese, and provide an "
    "Traditional Chinese translation while preserving the original formatting as much as "
    "possible. Make sure only text in manga content are translated. There are usually two "
    "pages of manga on the image - the right page and the left page, start extraction and "
    "translation from top right, then bottom right, then top left and finally bottom left. "
    "Return the original text and translated text in a json array with each object "
    'containing "original" and "translation" fields.'
)

GEMINI_MODEL_NAME = "gemini-2.5-flash"

DEFAULT_CONFIG: Dict[str, Any] = {
    "gemini": {
        "api_key": "",
        "model": GEMINI_MODEL_NAME,
        "api_base": "https://generativelanguage.googleapis.com/v1beta/models",
        # Transport timeouts only; there is no overall deadline
        "timeout": {"connect": 10, "read": 300},
    },
    "prompt": DEFAULT_PROMPT,
    "uploads_dir": "uploads",
    "server": {"port": 5173},
    "settings_path": "~/.config/mangalens/settings.json",
}

_config: Optional[Dict[str, Any]] = None


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_yaml(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Build a fresh configuration dict (uncached)."""
    load_dotenv()
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = path or os.environ.get("MANGALENS_CONFIG")
    if config_path:
        _deep_merge(config, _load_yaml(Path(config_path)))
    elif Path("config.yaml").exists():
        _deep_merge(config, _load_yaml(Path("config.yaml")))

    env_key = os.environ.get("GEMINI_API_KEY")
    if env_key:
        config["gemini"]["api_key"] = env_key
    env_model = os.environ.get("GEMINI_MODEL_NAME")
    if env_model:
        config["gemini"]["model"] = env_model
    uploads = os.environ.get("MANGALENS_UPLOADS_DIR")
    if uploads:
        config["uploads_dir"] = uploads
    port = os.environ.get("PORT")
    if port:
        config["server"]["port"] = int(port)
    settings_path = os.environ.get("MANGALENS_SETTINGS")
    if settings_path:
        config["settings_path"] = settings_path

    return config


def get_config() -> Dict[str, Any]:
    """Return the cached process configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (used by tests)."""
    global _config
    _config = None


def resolve_api_key(explicit: Optional[str] = None) -> str:
    """Per-request key wins over the configured one; empty string if neither."""
    if explicit and str(explicit).strip():
        return str(explicit).strip()
    return (get_config()["gemini"].get("api_key") or "").strip()


class SettingsStore:
    """
    JSON-file key-value store for interactive session settings.

    Values are read once into a ``SessionSettings`` object; changes only
    reach disk through ``save()``.
    """

    def __init__(self, path: Optional[str] = None):
        raw = path or get_config()["settings_path"]
        self.path = Path(raw).expanduser()

    def load(self) -> SessionSettings:
        if not self.path.exists():
            return SessionSettings()
        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)
            return SessionSettings()
        if not isinstance(stored, dict):
            return SessionSettings()
        merged = {**SessionSettings().model_dump(), **stored}
        try:
            return SessionSettings(**merged)
        except ValidationError as e:
            logger.warning("Ignoring invalid settings in %s: %s", self.path, e)
            return SessionSettings()

    def save(self, settings: SessionSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(settings.model_dump(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Settings saved to %s", self.path)

    def update(self, key: str, value: Any) -> SessionSettings:
        """Set one key, validate, and persist. Raises on unknown keys."""
        current = self.load()
        if key not in SessionSettings.model_fields:
            raise KeyError(f"Unknown setting: {key}")
        updated = SessionSettings(**{**current.model_dump(), key: value})
        self.save(updated)
        return updated
