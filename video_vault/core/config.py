"""
Application configuration manager.
Stores settings in a JSON file under ~/.config/video-transcriber.
API keys are never written here.
"""

import json
import logging
from pathlib import Path

from video_vault.core.constants import (
    CONFIG_PATH, DEFAULT_PROVIDER, DEFAULT_AUDIO_FORMAT, DEFAULT_WHISPER_MODEL,
    AUDIO_EXTENSIONS, YTDLP_BIN, WHISPER_BIN,
    DOWNLOAD_TIMEOUT_SEC, TRANSCRIBE_TIMEOUT_SEC, SUMMARY_TIMEOUT_SEC,
    SUMMARY_MAX_TOKENS, SUMMARY_TEMPERATURE,
)
from video_vault.core.summarize import PROVIDERS

# Validation bounds
_TIMEOUT_MIN = 10
_TIMEOUT_MAX = 24 * 3600
_MAX_TOKENS_MIN = 64
_MAX_TOKENS_MAX = 8192
_TEMPERATURE_MIN = 0.0
_TEMPERATURE_MAX = 2.0

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'base_path': None,             # None -> system temp directory
    'summary_provider': DEFAULT_PROVIDER,
    'summary_model': None,         # None -> provider default
    'summary_max_tokens': SUMMARY_MAX_TOKENS,
    'summary_temperature': SUMMARY_TEMPERATURE,
    'summary_timeout_sec': SUMMARY_TIMEOUT_SEC,
    'audio_format': DEFAULT_AUDIO_FORMAT,
    'whisper_model': DEFAULT_WHISPER_MODEL,
    'whisper_language': None,
    'download_timeout_sec': DOWNLOAD_TIMEOUT_SEC,
    'transcribe_timeout_sec': TRANSCRIBE_TIMEOUT_SEC,
    'ytdlp_path': YTDLP_BIN,
    'whisper_path': WHISPER_BIN,
}

_TIMEOUT_KEYS = ('download_timeout_sec', 'transcribe_timeout_sec', 'summary_timeout_sec')


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        self.path = config_path or CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    saved = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load config: %s", e)
                return
            if not isinstance(saved, dict):
                logger.warning("Ignoring config %s: top level is not an object", self.path)
                return
            for key, value in saved.items():
                if key in _DEFAULTS:
                    self._data[key] = self._validate(key, value)
                else:
                    logger.warning("Ignoring unknown config key %r", key)

    def save(self):
        """Persist config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        if key not in _DEFAULTS:
            raise KeyError(f"Unknown config key: {key}")
        value = self._validate(key, value)
        self._data[key] = value
        self.save()

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key in _TIMEOUT_KEYS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid %s %r; using default", key, value)
                return _DEFAULTS[key]
            return max(_TIMEOUT_MIN, min(_TIMEOUT_MAX, value))

        if key == 'summary_max_tokens':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid summary_max_tokens %r; using default", value)
                return SUMMARY_MAX_TOKENS
            return max(_MAX_TOKENS_MIN, min(_MAX_TOKENS_MAX, value))

        if key == 'summary_temperature':
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning("Invalid summary_temperature %r; using default", value)
                return SUMMARY_TEMPERATURE
            return max(_TEMPERATURE_MIN, min(_TEMPERATURE_MAX, value))

        if key == 'summary_provider':
            tag = str(value or '').strip().lower()
            if tag not in PROVIDERS:
                logger.warning("Invalid summary_provider %r; using %s", value, DEFAULT_PROVIDER)
                return DEFAULT_PROVIDER
            return tag

        if key == 'audio_format':
            fmt = str(value or '').strip().lower()
            if fmt not in AUDIO_EXTENSIONS:
                logger.warning("Invalid audio_format %r; using %s", value, DEFAULT_AUDIO_FORMAT)
                return DEFAULT_AUDIO_FORMAT
            return fmt

        if key in ('base_path', 'summary_model', 'whisper_language'):
            value = str(value).strip() if value is not None else ''
            return value or None

        if key in ('ytdlp_path', 'whisper_path', 'whisper_model'):
            value = str(value or '').strip()
            return value or _DEFAULTS[key]

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def base_path(self) -> str | None:
        return self._data.get('base_path')

    @property
    def summary_provider(self) -> str:
        return self._data.get('summary_provider', DEFAULT_PROVIDER)
