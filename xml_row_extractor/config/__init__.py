"""Configuration management components."""

from .config_manager import ConfigManager, get_config_manager, reset_config_manager
from .extraction_defaults import ExtractionDefaults

__all__ = ['ConfigManager', 'ExtractionDefaults', 'get_config_manager', 'reset_config_manager']
