"""
Configuration management for taskgroup.

Loads config.yaml from the taskgroup home directory
($TASKGROUP_HOME, default ~/.config/taskgroup).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv


class ConfigError(Exception):
    """Configuration validation error."""
    pass


def get_taskgroup_home() -> Path:
    """Return the taskgroup home directory."""
    home = os.environ.get("TASKGROUP_HOME")
    if home:
        return Path(home)
    return Path("~/.config/taskgroup").expanduser()


@dataclass
class TaskGroupConfig:
    """
    taskgroup configuration.

    Attributes:
        definitions_dir: Directory containing plan definitions
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        log_file: Log file path; "{date}" is replaced with today's date
        console_log: Also log to console
        env_file: Optional .env file loaded into the environment
    """
    definitions_dir: str = "~/.config/taskgroup/plans"
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: str = "~/.config/taskgroup/logs/taskgroup-{date}.log"
    console_log: bool = True
    env_file: Optional[str] = None

    def __post_init__(self):
        if self.log_format not in ("structured", "pretty"):
            raise ConfigError(f"Invalid log_format: {self.log_format}")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Invalid log_level: {self.log_level}")

    @property
    def definitions_path(self) -> Path:
        return Path(self.definitions_dir).expanduser()

    def get_log_file_path(self) -> Path:
        """Get log file path with date interpolation."""
        from datetime import datetime

        log_file = self.log_file.replace("{date}", datetime.now().strftime("%Y-%m-%d"))
        return Path(log_file).expanduser()

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskGroupConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {unknown}")
        return cls(**data)


def load_config(config_path: Optional[Path] = None) -> TaskGroupConfig:
    """
    Load taskgroup configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to $TASKGROUP_HOME/config.yaml

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If config is invalid
    """
    if config_path is None:
        config_path = get_taskgroup_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"taskgroup config.yaml not found at {config_path}. Run 'taskgroup init' first."
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must be a mapping")

    config = TaskGroupConfig.from_dict(data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    return config
