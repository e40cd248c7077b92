"""
Score Engine

Round points, round bonuses and session totals. Every mode accumulates the
points of its rounds; no mode recomputes its total at game end.
"""

import math
from typing import Iterable, Optional, Tuple

from ..config.game_settings import ScoringRules
from ..models.game import RoundConfig, RoundOutcome, RoundResult


class ScoreEngine:
    """Applies one mode's ScoringRules."""

    def __init__(self, rules: ScoringRules):
        self.rules = rules

    def provisional_points(self, hits: int) -> int:
        """Points shown live while the round is still running."""
        return max(0, hits) * self.rules.points_per_hit

    def round_points(self, config: RoundConfig, hits: int, outcome: RoundOutcome,
                     time_remaining: Optional[float], perfect: bool) -> int:
        """
        Points earned by a resolved round.

        Failed rounds earn partial credit equal to the finds so far, clamped
        to [0, target_count]. Completed rounds earn the per-hit points plus
        the mode's bonus.
        """
        if outcome != RoundOutcome.COMPLETED:
            return min(max(0, hits), config.target_count)

        return self.provisional_points(hits) + self.bonus(config, time_remaining, perfect)

    def bonus(self, config: RoundConfig, time_remaining: Optional[float], perfect: bool) -> int:
        kind = self.rules.bonus
        remaining = max(0.0, time_remaining or 0.0)

        if kind == "target_count_if_perfect":
            return config.target_count if perfect else 0
        if kind == "round_plus_time_if_perfect":
            return config.round_number + math.floor(remaining) if perfect else 0
        if kind == "time_times_round":
            if config.time_limit_seconds is None:
                return 0
            used = config.time_limit_seconds - remaining
            return math.floor(max(0.0, config.time_limit_seconds - used) * config.round_number)
        return 0

    def battle_round(self, avatars: int, hits: int, outcome: RoundOutcome,
                     player_time: float, opponent_time: float) -> Tuple[int, int]:
        """
        Points of one battle round for (player, opponent).

        A mistake or an unfinished round gives the player its hits and the
        opponent avatars + 1. Finding every avatar before the opponent is
        worth avatars + 2 against avatars; finishing later is worth avatars
        against avatars + 1.
        """
        if outcome != RoundOutcome.COMPLETED:
            return max(0, min(hits, avatars)), avatars + 1
        if player_time < opponent_time:
            return avatars + 2, avatars
        return avatars, avatars + 1

    @staticmethod
    def session_total(history: Iterable[RoundResult]) -> int:
        return sum(result.points_earned for result in history)
