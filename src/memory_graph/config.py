"""Configuration management for memory-graph using YAML files."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".memory-graph"
CONFIG_FILE_NAME = "config.yaml"
DEFAULT_LABEL = "Memory"
DEFAULT_GRAPH_FILE = f"{CONFIG_DIR_NAME}/graph.yaml"
BACKENDS = ("yaml", "memory")


@dataclass(frozen=True)
class Setting:
    """A configuration key the memory graph understands."""

    key: str
    default: str | None
    help: str
    choices: tuple[str, ...] | None = None


SETTINGS: dict[str, Setting] = {
    setting.key: setting
    for setting in (
        Setting("backend", "yaml", "Graph store to use", BACKENDS),
        Setting("yaml.path", DEFAULT_GRAPH_FILE, "Graph document used by the yaml backend"),
        Setting("memory.default_label", DEFAULT_LABEL, "Label added to every created entity; empty disables it"),
        Setting("memory.default_project", None, "Project that contains new tasks when none is given"),
    )
}


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read one config file; a missing file is an empty mapping.

    Raises:
        ValueError: If the file cannot be read or is not a YAML mapping
    """
    if not path.exists():
        logger.debug("Config file does not exist", config_file=str(path))
        return {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config", config_file=str(path), error=str(e))
        raise ValueError(f"Failed to load config from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Failed to load config from {path}: expected a mapping")
    logger.debug("Config loaded", config_file=str(path), keys=list(data))
    return data


class Config:
    """Local and global YAML configuration of the memory graph.

    Local config lives in .memory-graph/config.yaml under the working directory,
    global config in ~/.memory-graph/config.yaml. Reads on a local Config fall
    back to the global file and then to the defaults in SETTINGS; writes only
    touch the file the Config was opened on.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
        self.is_global = use_global
        self.config_file = self.config_dir / CONFIG_FILE_NAME

        self._config = _read_yaml(self.config_file)
        self._global_config: dict[str, Any] = {}
        global_file = Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if not self.is_global and global_file != self.config_file:
            try:
                self._global_config = _read_yaml(global_file)
            except ValueError as e:
                logger.warning("Ignoring unreadable global config", error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _save(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save config", config_file=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def source(self, key: str) -> str | None:
        """Return where a key's value comes from: local, global, default or None."""
        if key in self._config:
            return "global" if self.is_global else "local"
        if key in self._global_config:
            return "global"
        if key in SETTINGS and SETTINGS[key].default is not None:
            return "default"
        return None

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a configuration value.

        Stored values win over `default`, which wins over the built-in default of a known key.
        """
        if key in self._config:
            return self._config[key]
        if key in self._global_config:
            return self._global_config[key]
        if default is not None:
            return default
        setting = SETTINGS.get(key)
        return setting.default if setting else None

    def set(self, key: str, value: str) -> None:
        """Set a configuration value.

        Unknown keys are stored but logged; values of keys with fixed choices are checked.

        Raises:
            ValueError: If the value is not one of the allowed choices
        """
        setting = SETTINGS.get(key)
        if setting is None:
            logger.warning("Setting unknown config key", key=key)
        elif setting.choices and value not in setting.choices:
            raise ValueError(f"Invalid value '{value}' for {key} (expected one of: {', '.join(setting.choices)})")
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> bool:
        """Remove a configuration value; returns whether it was set in this file."""
        if key not in self._config:
            return False
        logger.debug("Unsetting config value", key=key)
        del self._config[key]
        self._save()
        return True

    def list(self) -> dict[str, str]:
        """Return the stored settings, global ones shadowed by local ones."""
        merged = {} if self.is_global else dict(self._global_config)
        merged.update(self._config)
        return merged

    @property
    def backend(self) -> str:
        return str(self.get("backend"))

    @property
    def graph_path(self) -> Path:
        return Path(str(self.get("yaml.path")))

    @property
    def default_label(self) -> str | None:
        return self.get("memory.default_label") or None

    @property
    def default_project(self) -> str | None:
        return self.get("memory.default_project") or None


@dataclass
class MemoryConfig:
    """Settings that shape how the memory service writes entities and tasks."""

    default_label: str | None = DEFAULT_LABEL
    default_project: str | None = None

    @classmethod
    def from_config(cls, config: Config) -> "MemoryConfig":
        """Build memory settings from the `memory.*` configuration keys."""
        return cls(default_label=config.default_label, default_project=config.default_project)


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.

    Returns:
        Config instance
    """
    return Config(use_global=use_global)
