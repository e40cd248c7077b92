"""
Utilities Package

Contains the error taxonomy and the structured game logger.
"""

from .errors import GameError, InvalidConfiguration, MissingAsset, DoubleResolution, StaleCallback
from .game_logger import game_logger, GameLogger

__all__ = [
    'GameError', 'InvalidConfiguration', 'MissingAsset', 'DoubleResolution', 'StaleCallback',
    'game_logger', 'GameLogger'
]
