"""Persistent settings manager with JSON storage and environment fallback."""

import copy
import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from .settings import Config

logger = logging.getLogger(__name__)


class SettingsManager:
    """
    Manages application settings with JSON persistence.

    Resolution order for every key is: settings file, then environment
    variable, then the default below. Only values explicitly set through
    ``set()`` are written to the file, so secrets coming from the
    environment never leak to disk.

    Usage:
        settings = SettingsManager()
        url = settings.get("ANKI_CONNECT_URL")
        settings.set("ACTIVE_PROFILE", "Mia")
    """

    _instance: Optional["SettingsManager"] = None
    _lock: Lock = Lock()

    # Keys whose values are masked in status reports
    SECRET_KEYS = frozenset({
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
    })

    # Default values for all settings
    # NOTE: API keys come from the environment or the settings file only
    DEFAULTS: Dict[str, Any] = {
        # AnkiConnect
        "ANKI_CONNECT_URL": Config.ANKI_CONNECT_URL,

        # Profiles
        "ACTIVE_PROFILE": "",
        "DISTRIBUTION_PROFILES": "",

        # AI backend
        "AI_PROVIDER": "anthropic",
        "AI_MODEL": "",
        "AI_BASE_URL": "",
        "AI_MAX_TOKENS": 4096,
        "ANTHROPIC_API_KEY": "",
        "OPENAI_API_KEY": "",
        "GEMINI_API_KEY": "",

        # Enrichment
        "ENRICH_BATCH_SIZE": Config.ENRICH_BATCH_SIZE,

        # Profile switching (seconds)
        "PROFILE_SETTLE_DELAY": Config.PROFILE_SETTLE_DELAY,
        "PROFILE_POLL_INTERVAL": Config.PROFILE_POLL_INTERVAL,
        "PROFILE_MIN_ACCEPT": Config.PROFILE_MIN_ACCEPT,
        "PROFILE_MAX_WAIT": Config.PROFILE_MAX_WAIT,

        # Performance settings
        "RETRIES": Config.RETRIES,
        "TIMEOUT": Config.TIMEOUT,
        "AI_TIMEOUT": Config.AI_TIMEOUT,
        "IMAGE_TIMEOUT": Config.IMAGE_TIMEOUT,
    }

    def __new__(cls, settings_file: Optional[str] = None) -> "SettingsManager":
        """Singleton pattern to ensure only one instance exists."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._initialized = False
                    cls._instance = instance
        return cls._instance

    def __init__(self, settings_file: Optional[str] = None) -> None:
        """
        Initialize the settings manager.

        Args:
            settings_file: Path to the settings JSON file.
                          Defaults to Config.SETTINGS_FILE.
        """
        if getattr(self, "_initialized", False):
            return

        self._settings_file: Path = Path(settings_file or Config.SETTINGS_FILE)
        self._stored: Dict[str, Any] = {}
        self._file_lock: Lock = Lock()

        self._load_settings()
        self._initialized = True

    def _load_settings(self) -> None:
        """Load explicitly stored settings from the JSON file."""
        self._stored = {}

        if self._settings_file.exists():
            try:
                with open(self._settings_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    self._stored = data
            except (json.JSONDecodeError, IOError) as e:
                # Corrupted file is treated as empty
                logger.warning("Could not load settings file %s: %s", self._settings_file, e)

    def _parse_env_value(self, value: str, key: str) -> Any:
        """
        Parse environment variable value to appropriate type.

        Args:
            value: The string value from environment
            key: The setting key (used to infer expected type)

        Returns:
            Parsed value in appropriate type
        """
        default = self.DEFAULTS.get(key)

        if isinstance(default, bool):
            return value.lower() in ("true", "1", "yes", "on")
        elif isinstance(default, int):
            try:
                return int(value)
            except ValueError:
                return default
        elif isinstance(default, float):
            try:
                return float(value)
            except ValueError:
                return default
        else:
            return value

    def _save_settings(self) -> None:
        """Save explicitly stored settings to the JSON file."""
        with self._file_lock:
            try:
                self._settings_file.parent.mkdir(parents=True, exist_ok=True)

                with open(self._settings_file, "w", encoding="utf-8") as f:
                    json.dump(self._stored, f, indent=2, ensure_ascii=False)
                try:
                    os.chmod(self._settings_file, 0o600)
                except OSError:
                    pass  # not supported on every platform
            except IOError as e:
                logger.warning("Could not save settings file %s: %s", self._settings_file, e)

    def source(self, key: str) -> str:
        """Return where the value of ``key`` comes from: file, env, default or none."""
        if self._stored.get(key) not in (None, ""):
            return "file"
        if os.environ.get(key):
            return "env"
        if self.DEFAULTS.get(key) not in (None, ""):
            return "default"
        return "none"

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value (file > environment > default).

        Returns a deep copy for mutable objects (dict, list) to prevent
        accidental modification of internal state.

        Args:
            key: The setting key
            default: Default value if key not found anywhere

        Returns:
            The setting value, or default if not found
        """
        source = self.source(key)
        if source == "file":
            value = self._stored[key]
        elif source == "env":
            value = self._parse_env_value(os.environ[key], key)
        elif source == "default":
            value = self.DEFAULTS[key]
        else:
            value = default if default is not None else self.DEFAULTS.get(key, default)

        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return value

    def get_list(self, key: str) -> List[str]:
        """Get a comma-separated setting as a list of non-empty, stripped items."""
        raw = self.get(key, "")
        if isinstance(raw, list):
            items = raw
        else:
            items = str(raw or "").split(",")
        return [str(item).strip() for item in items if str(item).strip()]

    def set(self, key: str, value: Any, persist: bool = True) -> None:
        """
        Set a setting value and immediately persist to disk.

        An empty string or None removes the key from the file, so the
        environment or default applies again.

        Args:
            key: The setting key
            value: The value to set
            persist: Write the settings file
        """
        if value is None or value == "":
            self._stored.pop(key, None)
        else:
            self._stored[key] = value
        if persist:
            self._save_settings()

    def update(self, values: Dict[str, Any]) -> None:
        """Set several values and persist once."""
        for key, value in values.items():
            self.set(key, value, persist=False)
        self._save_settings()

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        """
        Get the masked status of all known settings.

        Returns:
            Mapping of key to {configured, source, value, secret}
        """
        status = {}
        for key in self.DEFAULTS:
            value = self.get(key)
            secret = key in self.SECRET_KEYS
            shown = value
            if secret and value:
                text = str(value)
                shown = "****" if len(text) <= 8 else f"{text[:4]}...{text[-4:]}"
            status[key] = {
                "configured": value not in (None, ""),
                "source": self.source(key),
                "value": shown,
                "secret": secret,
            }
        return status

    def reload(self) -> None:
        """Reload settings from disk."""
        self._load_settings()

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Useful for testing."""
        with cls._lock:
            cls._instance = None
