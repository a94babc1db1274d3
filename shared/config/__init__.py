"""Configuration management for generalizability analyses."""

from .base import BaseConfiguration, Environment
from .generalize_config import GeneralizeConfig, get_config

__all__ = [
    "BaseConfiguration",
    "Environment",
    "GeneralizeConfig",
    "get_config",
]
