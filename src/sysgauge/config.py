"""Configuration management for sysgauge."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

ON_ERROR_CHOICES = ("abort", "skip")


@dataclass
class FeatureFlags:
    """Telemetry groups to sample. A disabled group's sources become placeholders."""

    cpu: bool = True
    memory: bool = True
    disk: bool = True
    network: bool = True
    sensors: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "FeatureFlags":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown features: {', '.join(sorted(unknown))}")
        for key, value in data.items():
            if not isinstance(value, bool):
                raise ValueError(f"Feature '{key}' must be true or false, got {value!r}")
        return cls(**data)


@dataclass
class MonitorConfig:
    """Main monitor configuration."""

    # Configuration script, None runs the built-in default script
    script: Optional[str] = None

    interval: float = 1.0  # seconds between render cycles
    log_level: str = "WARNING"
    on_error: str = "abort"  # what to do when a script statement fails

    features: FeatureFlags = field(default_factory=FeatureFlags)

    def __post_init__(self):
        if self.on_error not in ON_ERROR_CHOICES:
            raise ValueError(
                f"on_error must be one of {', '.join(ON_ERROR_CHOICES)}, got '{self.on_error}'"
            )
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")

    @classmethod
    def from_file(cls, path: str | Path) -> "MonitorConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        config = cls.from_dict(data or {})

        # Relative script paths are relative to the config file
        if config.script and not Path(config.script).is_absolute():
            config.script = str(path.parent / config.script)
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "MonitorConfig":
        """Create config from dictionary."""
        defaults = cls()
        config = cls(
            script=data.get("script", defaults.script),
            interval=float(data.get("interval", defaults.interval)),
            log_level=data.get("log_level", defaults.log_level),
            on_error=data.get("on_error", defaults.on_error),
            features=FeatureFlags.from_dict(data.get("features") or {}),
        )
        return config.apply_env()

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """Create config from environment variables."""
        return cls().apply_env()

    def apply_env(self) -> "MonitorConfig":
        """Override settings from SYSGAUGE_* environment variables."""
        if os.environ.get("SYSGAUGE_SCRIPT"):
            self.script = os.environ["SYSGAUGE_SCRIPT"]
        if os.environ.get("SYSGAUGE_INTERVAL"):
            self.interval = float(os.environ["SYSGAUGE_INTERVAL"])
        if os.environ.get("SYSGAUGE_LOG_LEVEL"):
            self.log_level = os.environ["SYSGAUGE_LOG_LEVEL"]
        if os.environ.get("SYSGAUGE_ON_ERROR"):
            self.on_error = os.environ["SYSGAUGE_ON_ERROR"]
        self.__post_init__()
        return self


def load_config(config_path: Optional[str] = None) -> MonitorConfig:
    """Load configuration from file or environment."""
    # Try config file first
    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return MonitorConfig.from_file(config_path)

    # Try default locations
    default_paths = [
        Path("sysgauge.yaml"),
        Path("sysgauge.yml"),
        Path.home() / ".sysgauge" / "config.yaml",
        Path("/etc/sysgauge/config.yaml"),
    ]

    for path in default_paths:
        if path.exists():
            return MonitorConfig.from_file(path)

    # Fall back to environment
    return MonitorConfig.from_env()
