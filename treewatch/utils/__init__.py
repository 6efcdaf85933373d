# treewatch/utils/__init__.py

"""
treewatch utilities - configuration and logging
"""
from .config import (
    Config, WatcherConfig, FilterConfig,
    load_config, save_config, get_default_config_path,
)
from .logger import (
    setup_logging, log_exception, PerformanceLogger,
    JsonFormatter, ColorFormatter,
)

__all__ = [
    'Config', 'WatcherConfig', 'FilterConfig',
    'load_config', 'save_config', 'get_default_config_path',
    'setup_logging', 'log_exception', 'PerformanceLogger',
    'JsonFormatter', 'ColorFormatter',
]
