"""
Configuration Package

Contains all configuration-related files and settings.

This package separates two types of configuration:
- app_config.py: Flask application configuration (environment-based)
- game_settings.py: per-mode rule tables loaded from game_modes.json
"""

from .app_config import Config, DevelopmentConfig, ProductionConfig, TestingConfig, config
from .game_settings import (
    MODE_SETTINGS, ModeSettings, DifficultyTier, get_mode_settings, get_mode_catalog,
    validate_mode_tables, build_asset_catalog
)

__all__ = [
    # App configuration
    'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig', 'config',
    # Game rules
    'MODE_SETTINGS', 'ModeSettings', 'DifficultyTier', 'get_mode_settings', 'get_mode_catalog',
    'validate_mode_tables', 'build_asset_catalog'
]
