# Sticky board: configuration
# Override paths and endpoints via stickyboard.yaml, environment, or CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

CONFIG_PATH = Path(__file__).resolve().parents[2] / "stickyboard.yaml"

ENV_OVERRIDES = {
    "db_path": "STICKYBOARD_DB",
    "api_url": "STICKYBOARD_URL",
    "settings_path": "STICKYBOARD_SETTINGS",
}


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Config:
    """Runtime configuration for the notes server and board client."""

    # Server
    db_path: str = "~/.local/share/stickyboard/notes.db"
    host: str = "127.0.0.1"
    port: int = 3000

    # Client
    api_url: str = "http://127.0.0.1:3000"
    request_timeout: float = 5.0

    # Local display preferences (one file per user profile)
    settings_path: str = "~/.config/stickyboard/settings.json"

    log_level: str = "INFO"

    def resolve_paths(self):
        """Expand ~ in file paths and strip trailing slashes from the API URL."""
        self.db_path = str(Path(self.db_path).expanduser())
        self.settings_path = str(Path(self.settings_path).expanduser())
        self.api_url = self.api_url.rstrip("/")

    def apply_env(self, environ=None):
        """Environment variables win over the YAML file."""
        environ = os.environ if environ is None else environ
        for attr, var in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                setattr(self, attr, value)

    def validate(self):
        try:
            self.port = int(self.port)
            self.request_timeout = float(self.request_timeout)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"port and request_timeout must be numbers: {e}") from e
        if not (0 < self.port < 65536):
            raise ConfigError(f"port out of range: {self.port}")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if not self.api_url.startswith(("http://", "https://")):
            raise ConfigError(f"api_url must be an http(s) URL: {self.api_url}")

    @classmethod
    def load(cls, path: Optional[str] = None, environ=None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        known = {f.name for f in fields(cls)}
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (yaml.YAMLError, TypeError, AttributeError):
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env(environ)
        cfg.resolve_paths()
        cfg.validate()
        return cfg
