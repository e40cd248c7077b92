"""
Battle Opponent

The computer opponent of Battle mode: picks an avatar, decides how long it
needs to find its targets, and settles who won the game.
"""

import random
from typing import List, Sequence, Tuple

from ..utils.errors import InvalidConfiguration


class BattleOpponent:
    """Simulated opponent that always finds every target, at its own pace."""

    def __init__(self, avatar_names: Sequence[str],
                 delay_per_tile: Tuple[float, float] = (0.5, 1.1),
                 jitter: float = 1.0, rng=random):
        self.avatar_names = list(avatar_names)
        self.delay_per_tile = (float(delay_per_tile[0]), float(delay_per_tile[1]))
        self.jitter = float(jitter)
        self.rng = rng

    def choose_opponent(self, player_avatar: int) -> int:
        """Pick a random avatar index different from the player's."""
        if not 0 <= player_avatar < len(self.avatar_names):
            raise InvalidConfiguration(f"Avatar {player_avatar} is not one of {len(self.avatar_names)} avatars")
        pool: List[int] = [i for i in range(len(self.avatar_names)) if i != player_avatar]
        if not pool:
            raise InvalidConfiguration("Battle needs at least two avatars")
        return pool[self.rng.randrange(len(pool))]

    def finish_time(self, avatars: int) -> float:
        """Seconds the opponent needs to click all of its avatars."""
        low, high = self.delay_per_tile
        per_tile = low + self.rng.random() * (high - low)
        return per_tile * avatars + self.rng.random() * self.jitter


def battle_verdict(player_score: int, opponent_score: int) -> str:
    """Final result of a battle from the player's side."""
    if player_score > opponent_score:
        return "win"
    if player_score < opponent_score:
        return "lose"
    return "draw"
