"""Logging setup for generalizability analyses."""

import logging
import sys

from shared.config import Environment, GeneralizeConfig, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_log_level(config: GeneralizeConfig) -> int:
    """Pick the root log level for a configuration."""
    if config.log_level:
        level = logging.getLevelName(config.log_level.upper())
        if isinstance(level, int):
            return level
        raise ValueError(f"Unknown log level: {config.log_level}")

    if config.environment == Environment.DEVELOPMENT:
        return logging.DEBUG
    return logging.INFO


def setup_logging(config: GeneralizeConfig | None = None) -> None:
    """Set up logging configuration."""
    if config is None:
        config = get_config()

    logging.basicConfig(
        level=resolve_log_level(config),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Sampler libraries are chatty at INFO
    for name in ("pymc", "pytensor"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
