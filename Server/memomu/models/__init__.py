"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .game import (
    GameMode, MatchRule, MistakeKind, MistakePolicy, Phase, ActiveWriter, SessionStatus,
    RoundOutcome, SelectionOutcome, GridSize, RoundConfig, TileFlags, PhaseState,
    InputProgress, RoundResult, SessionTotals, HighScoreEntry, SessionSnapshot
)

__all__ = [
    'GameMode', 'MatchRule', 'MistakeKind', 'MistakePolicy', 'Phase', 'ActiveWriter', 'SessionStatus',
    'RoundOutcome', 'SelectionOutcome', 'GridSize', 'RoundConfig', 'TileFlags', 'PhaseState',
    'InputProgress', 'RoundResult', 'SessionTotals', 'HighScoreEntry', 'SessionSnapshot'
]
