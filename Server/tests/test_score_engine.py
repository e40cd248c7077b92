"""
Round points, bonuses, battle scoring and session totals.
"""

import unittest

from memomu.config.game_settings import ScoringRules, get_mode_settings
from memomu.models.game import GameMode, GridSize, RoundConfig, RoundOutcome, RoundResult
from memomu.services.battle_ai import BattleOpponent, battle_verdict
from memomu.services.score_engine import ScoreEngine


def config(round_number=1, target_count=3, time_limit=10):
    return RoundConfig(
        round_number=round_number,
        target_count=target_count,
        repetitions=1,
        time_limit_seconds=time_limit,
        grid_size=GridSize(5, 6),
        target_sequence=("x",) * target_count,
        target_positions=tuple(range(target_count)),
        tile_assignment=("x",) * 30
    )


class TestRoundPoints(unittest.TestCase):

    def test_music_perfect_round_earns_hits_plus_target_count(self):
        engine = ScoreEngine(get_mode_settings(GameMode.MUSIC_MEMORY).scoring)
        points = engine.round_points(config(target_count=3), 3, RoundOutcome.COMPLETED, 7.2, True)
        self.assertEqual(points, 6)

    def test_memomu_perfect_round_earns_round_plus_whole_seconds(self):
        engine = ScoreEngine(get_mode_settings(GameMode.MEMOMU_MEMORY).scoring)
        points = engine.round_points(config(round_number=4, target_count=4, time_limit=10),
                                     4, RoundOutcome.COMPLETED, 6.8, True)
        self.assertEqual(points, 4 + 6)

    def test_memomu_imperfect_completion_earns_nothing(self):
        engine = ScoreEngine(get_mode_settings(GameMode.MEMOMU_MEMORY).scoring)
        points = engine.round_points(config(round_number=4, target_count=4, time_limit=10),
                                     4, RoundOutcome.COMPLETED, 6.8, False)
        self.assertEqual(points, 0)

    def test_classic_time_bonus_scales_with_round(self):
        engine = ScoreEngine(get_mode_settings(GameMode.CLASSIC_MEMORY).scoring)
        points = engine.round_points(config(round_number=3, target_count=20, time_limit=30),
                                     10, RoundOutcome.COMPLETED, 12.5, False)
        self.assertEqual(points, 10 + 37)

    def test_monluck_has_no_bonus(self):
        engine = ScoreEngine(get_mode_settings(GameMode.MONLUCK).scoring)
        points = engine.round_points(config(target_count=5, time_limit=None), 5, RoundOutcome.COMPLETED, None, True)
        self.assertEqual(points, 5)

    def test_failed_rounds_earn_clamped_partial_credit(self):
        engine = ScoreEngine(ScoringRules(points_per_hit=1, bonus="target_count_if_perfect"))
        cfg = config(target_count=3)
        self.assertEqual(engine.round_points(cfg, 2, RoundOutcome.FAILED_MISTAKE, 4.0, False), 2)
        self.assertEqual(engine.round_points(cfg, 0, RoundOutcome.FAILED_TIMEOUT, 0.0, False), 0)
        self.assertEqual(engine.round_points(cfg, 9, RoundOutcome.FAILED_CLICK_BUDGET, 1.0, False), 3)
        self.assertEqual(engine.round_points(cfg, -1, RoundOutcome.FAILED_MISTAKE, 1.0, False), 0)

    def test_provisional_points(self):
        self.assertEqual(ScoreEngine(ScoringRules(points_per_hit=1)).provisional_points(3), 3)
        self.assertEqual(ScoreEngine(ScoringRules(points_per_hit=0)).provisional_points(3), 0)


class TestBattleScoring(unittest.TestCase):

    def setUp(self):
        self.engine = ScoreEngine(get_mode_settings(GameMode.BATTLE).scoring)

    def test_faster_than_opponent(self):
        self.assertEqual(self.engine.battle_round(3, 3, RoundOutcome.COMPLETED, 1.5, 2.4), (5, 3))

    def test_slower_than_opponent(self):
        self.assertEqual(self.engine.battle_round(3, 3, RoundOutcome.COMPLETED, 2.5, 2.4), (3, 4))

    def test_mistake_or_unfinished(self):
        self.assertEqual(self.engine.battle_round(4, 2, RoundOutcome.FAILED_MISTAKE, 1.0, 3.0), (2, 5))
        self.assertEqual(self.engine.battle_round(4, 1, RoundOutcome.FAILED_TIMEOUT, 3.0, 3.0), (1, 5))

    def test_verdict(self):
        self.assertEqual(battle_verdict(10, 7), "win")
        self.assertEqual(battle_verdict(7, 10), "lose")
        self.assertEqual(battle_verdict(7, 7), "draw")

    def test_opponent_finish_time_bounds(self):
        opponent = BattleOpponent(["a", "b"])
        for avatars in range(1, 6):
            finish = opponent.finish_time(avatars)
            self.assertGreaterEqual(finish, 0.5 * avatars)
            self.assertLess(finish, 1.1 * avatars + 1.0)


class TestSessionTotal(unittest.TestCase):

    def test_sum_of_round_points(self):
        history = [
            RoundResult(1, 6, True, 2.0, RoundOutcome.COMPLETED),
            RoundResult(2, 0, False, 4.0, RoundOutcome.COMPLETED),
            RoundResult(3, 2, False, 10.0, RoundOutcome.FAILED_TIMEOUT),
        ]
        self.assertEqual(ScoreEngine.session_total(history), 8)
        self.assertEqual(ScoreEngine.session_total([]), 0)


if __name__ == "__main__":
    unittest.main()
