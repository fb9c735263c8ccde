# TaskFlow — configuration
# Override paths and server settings via taskflow.yaml, env vars or CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "taskflow.yaml"


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or malformed."""
    pass


@dataclass
class Config:
    """Runtime configuration for the TaskFlow server."""

    # Record store
    db_path: str = "~/.local/share/taskflow/taskflow.db"

    # HTTP surface
    host: str = "127.0.0.1"
    port: int = 3000

    # Rendering
    dashboard_limit: int = 5

    # Logging
    log_level: str = "INFO"

    def validate(self):
        """Coerce numeric fields and check their ranges."""
        try:
            self.port = int(self.port)
            self.dashboard_limit = int(self.dashboard_limit)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"port and dashboard_limit must be integers: {e}") from e
        if not 0 < self.port < 65536:
            raise ConfigError(f"port out of range: {self.port}")
        if self.dashboard_limit < 1:
            raise ConfigError(f"dashboard_limit must be at least 1, got {self.dashboard_limit}")

    def resolve_paths(self):
        """Apply env overrides and expand ~."""
        env_db = os.environ.get("TASKFLOW_DB")
        if env_db:
            self.db_path = env_db
        self.db_path = str(Path(self.db_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        path = path or os.environ.get("TASKFLOW_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Cannot read config {cfg_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config {cfg_path} must be a mapping, got {type(data).__name__}")
            known = {f.name for f in fields(cls)}
            cfg = cls(**{k: v for k, v in data.items() if k in known})
        else:
            cfg = cls()
        cfg.validate()
        cfg.resolve_paths()
        return cfg
