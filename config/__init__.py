"""
Configuration Package

Structure:
    config/
    ├── __init__.py          # This file - exports and singleton
    ├── defaults.py          # Default values
    └── parser_config.py     # Translator settings

Usage:
    # Singleton pattern (preferred)
    from config import get_config
    config = get_config()
    lenient = config.ignore_conversion_errors

    # Debug output
    from config import debug_config
    info = debug_config()
"""

from typing import Optional

from util_logger import LoggerFactory, ComponentType
from .defaults import ParserDefaults
from .parser_config import ParserConfig

logger = LoggerFactory.create_logger(ComponentType.CONFIG, "config")


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[ParserConfig] = None


def get_config() -> ParserConfig:
    """
    Get global configuration singleton.

    Returns:
        ParserConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = ParserConfig.from_environment()
        logger.debug(
            "Loaded translator configuration",
            extra={'custom_dimensions': _config_instance.debug_dict()}
        )
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _config_instance
    _config_instance = None


def debug_config() -> dict:
    """
    Get configuration for debugging.

    Returns:
        Dictionary with configuration values, or the error if loading failed
    """
    try:
        return get_config().debug_dict()
    except Exception as e:
        return {'error': f"Failed to load config: {e}"}


__all__ = [
    "ParserDefaults",
    "ParserConfig",
    "get_config",
    "reset_config",
    "debug_config",
]
