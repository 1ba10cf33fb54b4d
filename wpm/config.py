"""
Settings for the package engine.

Settings live in a YAML file (``~/.config/wpm/settings.yaml`` by default)
and can be overridden from the environment:

    WPM_LOG_LEVEL: logging level name (default: INFO)
    WPM_INSTALL_DIR: directory new packages are installed into
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_REPOSITORY_URL = "https://www.npackd.org/rep/xml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Engine configuration"""

    repositories: list[str] = field(default_factory=lambda: [DEFAULT_REPOSITORY_URL])
    install_dir: str = str(Path.home() / "wpm")
    log_level: str = "INFO"
    state_file: str = str(Path.home() / ".config" / "wpm" / "installed.yaml")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        defaults = cls()
        return cls(
            repositories=list(data.get("repositories", defaults.repositories)),
            install_dir=str(data.get("install_dir", defaults.install_dir)),
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
            state_file=str(data.get("state_file", defaults.state_file)),
        )

    def apply_env(self) -> "Settings":
        """Apply WPM_* environment overrides in place."""
        if os.getenv("WPM_LOG_LEVEL"):
            self.log_level = os.environ["WPM_LOG_LEVEL"].upper()
        if os.getenv("WPM_INSTALL_DIR"):
            self.install_dir = os.environ["WPM_INSTALL_DIR"]
        return self


class SettingsManager:
    """
    Loads, validates and saves the settings file.

    Args:
        config_path: custom settings file (default: ~/.config/wpm/settings.yaml)
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "wpm"
    DEFAULT_CONFIG_FILE = "settings.yaml"

    def __init__(self, config_path: Optional[Path] = None):
        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = self.DEFAULT_CONFIG_DIR / self.DEFAULT_CONFIG_FILE
        self._settings: Optional[Settings] = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self.load()
        return self._settings

    def load(self) -> Settings:
        """Read the settings file. A missing file yields the defaults."""
        if not self.config_path.exists():
            self._settings = Settings().apply_env()
            return self._settings

        try:
            with open(self.config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in settings file {self.config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {self.config_path} must contain a mapping")

        settings = Settings.from_dict(data).apply_env()
        self._validate(settings)
        self._settings = settings
        return settings

    def save(self) -> Path:
        self._validate(self.settings)
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.settings.to_dict(), f, default_flow_style=False, sort_keys=False, indent=2)
        return self.config_path

    def get(self, key: str, default: Any = None) -> Any:
        value: Any = self.settings.to_dict()
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        settings = self.settings
        if key == "log_level":
            level = str(value).upper()
            if level not in LOG_LEVELS:
                raise ValueError(f"Invalid log level: {value}")
            settings.log_level = level
        elif key == "install_dir":
            if not value:
                raise ValueError("install_dir must not be empty")
            settings.install_dir = str(value)
        elif key == "state_file":
            settings.state_file = str(value)
        elif key == "repositories":
            if not isinstance(value, list) or not all(isinstance(u, str) for u in value):
                raise ValueError("repositories must be a list of URLs")
            settings.repositories = list(value)
        else:
            raise ValueError(f"Unknown setting: {key}")

    def get_repository_urls(self) -> list[str]:
        return list(self.settings.repositories)

    def set_repository_urls(self, urls: list[str]) -> None:
        self.set("repositories", list(urls))

    def add_repository_url(self, url: str) -> bool:
        """Append ``url``; returns False if it is already configured."""
        if url in self.settings.repositories:
            return False
        self.settings.repositories.append(url)
        return True

    def remove_repository_url(self, url: str) -> bool:
        if url not in self.settings.repositories:
            return False
        self.settings.repositories.remove(url)
        return True

    @staticmethod
    def _validate(settings: Settings) -> None:
        if settings.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {settings.log_level}")
        if not settings.install_dir:
            raise ValueError("install_dir must not be empty")


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging once for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
