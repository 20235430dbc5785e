# taskboard: configuration
# Defaults below; override via config.yaml, then TASKBOARD_* environment variables.

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .analytics import ScoreWeights, TimeRange
from .api import DEFAULT_API_URL
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("~/.config/taskboard/config.yaml")


@dataclass
class Config:
    """Runtime configuration for the taskboard client."""

    # API
    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    timeout: float = 10.0

    # Local snapshot
    state_path: str = "~/.local/share/taskboard/state.json"

    # Behavior
    error_clear_secs: float = 5.0
    calendar_max_visible: int = 3
    completion_weight: float = 0.7
    on_time_weight: float = 0.3
    default_range: str = "30d"
    timezone: str = "UTC"

    log_level: str = "WARNING"

    def resolve(self):
        """Apply environment overrides and expand ~."""
        self.api_url = os.environ.get("TASKBOARD_API_URL", self.api_url)
        self.token = os.environ.get("TASKBOARD_TOKEN", self.token)
        self.state_path = str(Path(self.state_path).expanduser())

    @property
    def weights(self) -> ScoreWeights:
        return ScoreWeights(completion=self.completion_weight, on_time=self.on_time_weight)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_str(self.default_range)

    @property
    def tz(self) -> tzinfo:
        if self.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown timezone: {self.timezone}") from e

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path).expanduser() if path else CONFIG_PATH.expanduser()
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
            except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
                logger.warning("Ignoring unreadable config %s: %s", cfg_path, e)
                cfg = cls()
        else:
            cfg = cls()
        cfg.resolve()
        return cfg
