"""Environment-driven configuration."""

from .config import Config, REQUIRED_VARS, load_config, validate_config

__all__ = ["Config", "REQUIRED_VARS", "load_config", "validate_config"]
