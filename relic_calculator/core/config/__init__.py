"""
Configuration subsystem for the relic calculator.

Two layers:

- **config.py**: static settings from environment variables (.env support),
  fixed at process start (logging, file locations, remote endpoint).
- **manager.py**: tunable calculation parameters loaded from YAML with
  in-memory overrides and dot-notation access.
"""

from relic_calculator.core.config.config import Config, Environment
from relic_calculator.core.config.manager import ConfigManager, ConfigMetrics

__all__ = [
    "Config",
    "ConfigManager",
    "ConfigMetrics",
    "Environment",
]
