"""
Selection rules: ordered replay, unordered find-all and pair matching,
under strict and budgeted mistake policies.
"""

import unittest

from memomu.models.game import (
    GridSize, InputProgress, MatchRule, MistakeKind, MistakePolicy, RoundConfig, RoundOutcome,
    SelectionOutcome
)
from memomu.services.input_validator import InputValidator

STRICT = MistakePolicy(MistakeKind.STRICT)
BUDGETED = MistakePolicy(MistakeKind.BUDGETED)


def make_config(positions, sequence, rows=3, cols=4, click_budget=None, filler="decoy"):
    assignment = [filler] * (rows * cols)
    for pos, content in zip(positions, sequence):
        assignment[pos] = content
    return RoundConfig(
        round_number=1,
        target_count=len(positions),
        repetitions=1,
        time_limit_seconds=10,
        grid_size=GridSize(rows, cols),
        target_sequence=tuple(sequence),
        target_positions=tuple(positions),
        tile_assignment=tuple(assignment),
        click_budget=click_budget
    )


class TestOrderedStrict(unittest.TestCase):

    def setUp(self):
        self.validator = InputValidator(MatchRule.ORDERED, STRICT)
        self.config = make_config([4, 7, 1], ["img2", "img5", "img1"])
        self.progress = InputProgress()

    def test_correct_order_completes_on_last_click(self):
        results = [self.validator.handle_selection(pos, self.config, self.progress) for pos in (4, 7, 1)]
        self.assertEqual(results, [
            (SelectionOutcome.ACCEPTED, None),
            (SelectionOutcome.ACCEPTED, None),
            (SelectionOutcome.ACCEPTED, RoundOutcome.COMPLETED),
        ])
        self.assertTrue(self.validator.is_perfect(self.config, self.progress))
        self.assertEqual(self.validator.hits(self.progress), 3)

    def test_wrong_order_ends_round(self):
        self.validator.handle_selection(4, self.config, self.progress)
        outcome = self.validator.handle_selection(1, self.config, self.progress)
        self.assertEqual(outcome, (SelectionOutcome.MISTAKE, RoundOutcome.FAILED_MISTAKE))
        self.assertEqual(self.progress.mistake_count, 1)
        self.assertEqual(self.validator.hits(self.progress), 1)

    def test_decoy_ends_round(self):
        outcome = self.validator.handle_selection(0, self.config, self.progress)
        self.assertEqual(outcome, (SelectionOutcome.MISTAKE, RoundOutcome.FAILED_MISTAKE))

    def test_repeated_click_counts_nothing(self):
        self.validator.handle_selection(4, self.config, self.progress)
        outcome = self.validator.handle_selection(4, self.config, self.progress)
        self.assertEqual(outcome, (SelectionOutcome.DUPLICATE_IGNORED, None))
        self.assertEqual(self.progress.clicks_used, 1)
        self.assertEqual(self.progress.mistake_count, 0)


class TestUnorderedBudgeted(unittest.TestCase):

    def setUp(self):
        self.validator = InputValidator(MatchRule.UNORDERED, BUDGETED)
        self.config = make_config([3, 9, 14, 22], ["mm4", "mm10", "mm15", "mm23"],
                                  rows=5, cols=6, click_budget=5)
        self.progress = InputProgress(click_budget=5)

    def test_any_order_and_perfect(self):
        for pos in (22, 3, 14):
            self.assertEqual(self.validator.handle_selection(pos, self.config, self.progress),
                             (SelectionOutcome.ACCEPTED, None))
        self.assertEqual(self.validator.handle_selection(9, self.config, self.progress),
                         (SelectionOutcome.ACCEPTED, RoundOutcome.COMPLETED))
        self.assertTrue(self.validator.is_perfect(self.config, self.progress))

    def test_one_miss_within_budget_is_imperfect(self):
        self.assertEqual(self.validator.handle_selection(0, self.config, self.progress),
                         (SelectionOutcome.MISTAKE, None))
        for pos in (3, 9, 14):
            self.validator.handle_selection(pos, self.config, self.progress)
        _, outcome = self.validator.handle_selection(22, self.config, self.progress)

        self.assertEqual(outcome, RoundOutcome.COMPLETED)
        self.assertEqual(self.progress.clicks_used, 5)
        self.assertFalse(self.validator.is_perfect(self.config, self.progress))

    def test_budget_exhaustion_fails_round(self):
        for pos in (0, 1, 3, 9):
            self.assertIsNone(self.validator.handle_selection(pos, self.config, self.progress)[1])
        _, outcome = self.validator.handle_selection(2, self.config, self.progress)
        self.assertEqual(outcome, RoundOutcome.FAILED_CLICK_BUDGET)
        self.assertEqual(self.validator.hits(self.progress), 2)

    def test_missed_tile_cannot_be_counted_twice(self):
        self.validator.handle_selection(0, self.config, self.progress)
        self.assertEqual(self.validator.handle_selection(0, self.config, self.progress),
                         (SelectionOutcome.DUPLICATE_IGNORED, None))
        self.assertEqual(self.progress.clicks_used, 1)

    def test_max_mistakes_limits_the_round(self):
        validator = InputValidator(MatchRule.UNORDERED, MistakePolicy(MistakeKind.BUDGETED, max_mistakes=1))
        progress = InputProgress()
        self.assertEqual(validator.handle_selection(0, self.config, progress), (SelectionOutcome.MISTAKE, None))
        self.assertEqual(validator.handle_selection(1, self.config, progress),
                         (SelectionOutcome.MISTAKE, RoundOutcome.FAILED_MISTAKE))

    def test_strict_find_all_ends_on_first_miss(self):
        validator = InputValidator(MatchRule.UNORDERED, STRICT)
        progress = InputProgress()
        validator.handle_selection(3, self.config, progress)
        self.assertEqual(validator.handle_selection(0, self.config, progress),
                         (SelectionOutcome.MISTAKE, RoundOutcome.FAILED_MISTAKE))


class TestPairs(unittest.TestCase):

    def setUp(self):
        self.validator = InputValidator(MatchRule.PAIRS, BUDGETED)
        # Two pairs on a 2x3 grid plus an unmatched tile at 5
        self.config = make_config([0, 3, 1, 4], ["a", "a", "b", "b"], rows=2, cols=3, filler="lonely")
        self.progress = InputProgress()

    def test_first_pick_is_pending(self):
        self.assertEqual(self.validator.handle_selection(0, self.config, self.progress),
                         (SelectionOutcome.PENDING, None))
        self.assertEqual(self.progress.pending_pick, 0)
        self.assertEqual(self.validator.handle_selection(0, self.config, self.progress),
                         (SelectionOutcome.DUPLICATE_IGNORED, None))

    def test_match_and_completion(self):
        self.validator.handle_selection(0, self.config, self.progress)
        self.assertEqual(self.validator.handle_selection(3, self.config, self.progress),
                         (SelectionOutcome.ACCEPTED, None))
        self.validator.handle_selection(4, self.config, self.progress)
        self.assertEqual(self.validator.handle_selection(1, self.config, self.progress),
                         (SelectionOutcome.ACCEPTED, RoundOutcome.COMPLETED))
        self.assertEqual(self.validator.hits(self.progress), 2)
        self.assertEqual(self.progress.attempts, 2)
        self.assertTrue(self.validator.is_perfect(self.config, self.progress))

    def test_miss_reopens_both_tiles(self):
        self.validator.handle_selection(0, self.config, self.progress)
        self.assertEqual(self.validator.handle_selection(1, self.config, self.progress),
                         (SelectionOutcome.MISTAKE, None))
        self.assertIsNone(self.progress.pending_pick)
        self.assertEqual(self.progress.accepted_selections, [])
        # Both cards can be picked again
        self.assertEqual(self.validator.handle_selection(1, self.config, self.progress)[0], SelectionOutcome.PENDING)
        self.assertEqual(self.validator.handle_selection(4, self.config, self.progress)[0], SelectionOutcome.ACCEPTED)
        self.assertFalse(self.validator.is_perfect(self.config, self.progress))

    def test_unmatched_tile_never_pairs(self):
        self.validator.handle_selection(5, self.config, self.progress)
        self.assertEqual(self.validator.handle_selection(0, self.config, self.progress),
                         (SelectionOutcome.MISTAKE, None))


if __name__ == "__main__":
    unittest.main()
