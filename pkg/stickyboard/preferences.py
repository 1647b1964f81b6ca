"""
Display preferences, persisted as one JSON record per user profile.

Readers get the current value with ``current()`` and hear about changes by
subscribing; there is no global change broadcast.
"""
import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

# section -> key -> (allowed values or type, default)
SETTINGS_SCHEMA: Dict[str, Dict[str, Tuple[Any, Any]]] = {
    "appearance": {
        "theme": (("light", "dark", "auto"), "light"),
        "fontSize": (("small", "medium", "large", "x-large"), "medium"),
        "defaultNoteColor": (str, "#fef08a"),
        "compactView": (bool, False),
    },
    "preferences": {
        "autoSave": (bool, True),
        "confirmDelete": (bool, True),
        "showTimestamps": (bool, True),
        "sortBy": (("modified", "created", "alphabetical", "color"), "modified"),
    },
    "notifications": {
        "enableNotifications": (bool, False),
        "reminders": (bool, False),
        "dailySummary": (bool, False),
    },
    "privacy": {
        "analyticsEnabled": (bool, False),
        "backupToCloud": (bool, False),
    },
}


class SettingsError(Exception):
    """Unknown setting or a value of the wrong type."""
    pass


def default_settings() -> Dict[str, Dict[str, Any]]:
    return {
        section: {key: default for key, (_, default) in keys.items()}
        for section, keys in SETTINGS_SCHEMA.items()
    }


def _check_known(section: str, key: str) -> None:
    if section not in SETTINGS_SCHEMA:
        raise SettingsError(f"Unknown settings section: {section}")
    if key not in SETTINGS_SCHEMA[section]:
        raise SettingsError(f"Unknown setting: {section}.{key}")


def validate_setting(section: str, key: str, value: Any) -> Any:
    """Return ``value`` if it is legal for section.key, else raise SettingsError."""
    _check_known(section, key)
    allowed, _ = SETTINGS_SCHEMA[section][key]
    if isinstance(allowed, tuple):
        if value not in allowed:
            raise SettingsError(f"{section}.{key} must be one of {list(allowed)}, got {value!r}")
    elif not isinstance(value, allowed):
        raise SettingsError(f"{section}.{key} must be {allowed.__name__}, got {value!r}")
    return value


def coerce_setting(section: str, key: str, raw: str) -> Any:
    """Convert a command-line string to the setting's type."""
    _check_known(section, key)
    allowed, _ = SETTINGS_SCHEMA[section][key]
    if allowed is bool:
        lowered = raw.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
        raise SettingsError(f"{section}.{key} expects true/false, got {raw!r}")
    return raw


def _merge(saved: Any) -> Dict[str, Dict[str, Any]]:
    """Overlay a saved record onto the defaults, dropping anything invalid."""
    settings = default_settings()
    if not isinstance(saved, dict):
        return settings
    for section, values in saved.items():
        if section not in settings or not isinstance(values, dict):
            continue
        for key, value in values.items():
            try:
                settings[section][key] = validate_setting(section, key, value)
            except SettingsError as e:
                logger.debug(f"Ignoring saved setting: {e}")
    return settings


class PreferencesStore:
    """Settings record backed by a JSON file."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._settings = self._load()
        self._subscribers: List[Callable] = []

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return default_settings()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                saved = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to parse settings {self.path}: {e}")
            return default_settings()
        return _merge(saved)

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._settings, f, indent=2)

    def current(self) -> Dict[str, Dict[str, Any]]:
        """A copy of the full settings record."""
        return copy.deepcopy(self._settings)

    def get(self, section: str, key: str) -> Any:
        _check_known(section, key)
        return self._settings[section][key]

    def update(self, section: str, key: str, value: Any) -> Dict[str, Dict[str, Any]]:
        """Validate, persist, then notify subscribers with the new record."""
        validate_setting(section, key, value)
        if self._settings[section][key] == value:
            return self.current()
        self._settings[section][key] = value
        self._save()
        self._notify()
        return self.current()

    def reset(self) -> Dict[str, Dict[str, Any]]:
        """Forget the saved record and go back to defaults."""
        self._settings = default_settings()
        if self.path.exists():
            self.path.unlink()
        self._notify()
        return self.current()

    def subscribe(self, callback: Callable[[Dict[str, Dict[str, Any]]], None]) -> Callable[[], None]:
        """
        Call ``callback(settings)`` after every change.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self.current())
            except Exception:
                logger.exception("Error in settings subscriber")
