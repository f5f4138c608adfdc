"""
Configuration management: YAML loading, environment overlays and substitution.
"""

from maskstream.config.loader import Config, load_config
from maskstream.config.resolver import resolve_config

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
]
