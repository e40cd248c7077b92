"""
Services Package

Contains the round engine and the service classes built on it.
"""

from .game_service import GameService, get_game_service, initialize_game_service
from .high_score_service import (
    HighScoreBoard, JsonHighScoreRepository, MongoHighScoreRepository,
    get_high_score_board, initialize_high_score_board
)
from .session_controller import SessionController

__all__ = [
    'GameService', 'get_game_service', 'initialize_game_service',
    'HighScoreBoard', 'JsonHighScoreRepository', 'MongoHighScoreRepository',
    'get_high_score_board', 'initialize_high_score_board',
    'SessionController'
]
