# treewatch/utils/config.py

"""
Configuration management for treewatch
"""
import json
import logging
import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

import yaml

from ..watcher.events import EventKind, parse_event_kinds

logger = logging.getLogger(__name__)


@dataclass
class WatcherConfig:
    """Tree watcher configuration"""
    root: Path = Path.home()
    recursive: bool = True
    events: list = field(default_factory=lambda: ["created", "deleted", "modified"])
    use_polling: bool = False
    poll_interval: float = 1.0  # seconds

    def __post_init__(self):
        if isinstance(self.root, str):
            self.root = Path(self.root).expanduser()

    def event_kinds(self) -> FrozenSet[EventKind]:
        return parse_event_kinds(self.events)


@dataclass
class FilterConfig:
    """Path filter configuration"""
    include_hidden: bool = False
    ignore_patterns: list = field(default_factory=lambda: [
        "*.tmp", "*.temp", "*.swp", "*.swo", "*~", ".#*",
        "Thumbs.db", "desktop.ini", ".DS_Store",
    ])
    ignore_directories: list = field(default_factory=lambda: [
        ".git", ".hg", ".svn", "__pycache__", "node_modules",
        ".Trash", ".Trash-*", "lost+found",
    ])


@dataclass
class Config:
    """Main configuration class"""
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "text"  # text, json or color

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        def serialize(obj):
            if isinstance(obj, Path):
                return str(obj)
            if isinstance(obj, dict):
                return {k: serialize(v) for k, v in obj.items()}
            if isinstance(obj, list):
                return [serialize(v) for v in obj]
            return obj

        return serialize(asdict(self))

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False)

    def save(self, path: Union[str, Path]):
        """Save config to file, YAML or JSON depending on the suffix"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)
        else:  # default to JSON
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    def update_from_dict(self, data: Dict[str, Any]):
        """
        Update config from dictionary

        Accepts section mappings (``{"watcher": {"recursive": false}}``) as
        well as flat keys, which are looked up in the sections.
        """
        sections = {'watcher': self.watcher, 'filters': self.filters}

        for key, value in (data or {}).items():
            if key in sections and isinstance(value, dict):
                self._update_section(sections[key], value)
            elif key in ('log_level', 'log_file', 'log_format'):
                setattr(self, key, value)
            elif any(_has_field(section, key) for section in sections.values()):
                for section in sections.values():
                    if _has_field(section, key):
                        self._update_section(section, {key: value})
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")

    @staticmethod
    def _update_section(section, values: Dict[str, Any]):
        for key, value in values.items():
            if not _has_field(section, key):
                logger.warning(f"Ignoring unknown configuration key: {key}")
                continue
            if key == 'root' and value is not None:
                value = Path(value).expanduser()
            setattr(section, key, value)


def _has_field(section, name: str) -> bool:
    return name in {f.name for f in fields(section)}


def get_default_config_path() -> Path:
    """Get default configuration path based on platform"""
    if sys.platform == "win32":
        import os
        appdata = Path(os.environ.get('APPDATA', Path.home()))
        return appdata / "treewatch" / "config.yaml"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "treewatch" / "config.yaml"
    else:  # linux
        return Path.home() / ".config" / "treewatch" / "config.yaml"


def _read_config_file(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")
    return data


def load_config(path: Union[str, Path, None] = None) -> Config:
    """
    Load configuration from file or create default

    An explicitly given path must exist and be valid. Otherwise
    ``config.yaml``/``config.json`` in the working directory and the
    platform default location are tried in turn.

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist
        ValueError: If the file content is not a valid configuration
    """
    config = Config()

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        logger.info(f"Loading configuration from {path}")
        try:
            config.update_from_dict(_read_config_file(path))
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid configuration file {path}: {e}") from e
        return config

    default_path = get_default_config_path()
    config_paths: List[Path] = [
        Path("config.yaml"),
        Path("config.json"),
        default_path,
        default_path.with_suffix(".json"),
    ]

    for config_path in config_paths:
        if not config_path.exists():
            continue
        try:
            logger.info(f"Loading configuration from {config_path}")
            config.update_from_dict(_read_config_file(config_path))
            return config
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading configuration from {config_path}: {e}")

    logger.debug("No configuration file found, using defaults")
    return config


def save_config(config: Config, path: Union[str, Path, None] = None):
    """Save configuration to file, the platform default location if path is None"""
    config.save(path if path is not None else get_default_config_path())
