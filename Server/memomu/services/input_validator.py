"""
Input Validator

Validates tile selections against the current round and updates the round's
InputProgress. The validator only reports outcomes; the session controller
decides what happens to the round and the tiles.
"""

from typing import Optional, Tuple

from ..models.game import (
    InputProgress, MatchRule, MistakePolicy, RoundConfig, RoundOutcome, SelectionOutcome
)


class InputValidator:
    """
    Per-mode selection rules.

    This class handles:
    - Ordered replay (sequence modes), unordered find-all and pair matching
    - Strict and budgeted mistake policies
    - Completion and click budget detection
    """

    def __init__(self, match_rule: MatchRule, mistake_policy: MistakePolicy):
        self.match_rule = match_rule
        self.mistake_policy = mistake_policy

    def handle_selection(self, tile_index: int, config: RoundConfig,
                         progress: InputProgress) -> Tuple[SelectionOutcome, Optional[RoundOutcome]]:
        """
        Apply one tile selection.

        Args:
            tile_index: Index of the clicked tile
            config: Current round configuration
            progress: Progress of the current round, updated in place

        Returns:
            Tuple of the selection outcome and, when the selection ends the
            round, the round outcome
        """
        if progress.already_selected(tile_index):
            return SelectionOutcome.DUPLICATE_IGNORED, None

        if self.match_rule == MatchRule.PAIRS:
            return self._handle_pair_pick(tile_index, config, progress)

        progress.clicks_used += 1
        if self._is_expected(tile_index, config, progress):
            progress.accepted_selections.append(tile_index)
            return SelectionOutcome.ACCEPTED, self._round_state(config, progress)

        progress.missed_selections.append(tile_index)
        return SelectionOutcome.MISTAKE, self._register_mistake(config, progress)

    def _is_expected(self, tile_index: int, config: RoundConfig, progress: InputProgress) -> bool:
        if config.is_decoy(tile_index):
            return False
        if self.match_rule == MatchRule.ORDERED:
            expected = config.target_positions[len(progress.accepted_selections)]
            return tile_index == expected
        return True

    def _handle_pair_pick(self, tile_index: int, config: RoundConfig,
                          progress: InputProgress) -> Tuple[SelectionOutcome, Optional[RoundOutcome]]:
        progress.clicks_used += 1
        if progress.pending_pick is None:
            progress.pending_pick = tile_index
            return SelectionOutcome.PENDING, None

        first = progress.pending_pick
        progress.pending_pick = None
        progress.attempts += 1

        # Unmatched extra tiles never pair up: their content appears once
        if not config.is_decoy(first) and config.content_at(first) == config.content_at(tile_index):
            progress.accepted_selections.extend([first, tile_index])
            return SelectionOutcome.ACCEPTED, self._round_state(config, progress)

        return SelectionOutcome.MISTAKE, self._register_mistake(config, progress)

    def _register_mistake(self, config: RoundConfig, progress: InputProgress) -> Optional[RoundOutcome]:
        progress.mistake_count += 1
        if self.mistake_policy.strict:
            return RoundOutcome.FAILED_MISTAKE
        max_mistakes = self.mistake_policy.max_mistakes
        if max_mistakes is not None and progress.mistake_count > max_mistakes:
            return RoundOutcome.FAILED_MISTAKE
        return self._round_state(config, progress)

    def _round_state(self, config: RoundConfig, progress: InputProgress) -> Optional[RoundOutcome]:
        if len(progress.accepted_selections) >= config.target_count:
            return RoundOutcome.COMPLETED
        if progress.budget_exhausted:
            return RoundOutcome.FAILED_CLICK_BUDGET
        return None

    def is_perfect(self, config: RoundConfig, progress: InputProgress) -> bool:
        """No mistakes and, for budgeted modes, no click beyond the targets."""
        if progress.mistake_count:
            return False
        if self.mistake_policy.strict or self.match_rule == MatchRule.PAIRS:
            return True
        return progress.clicks_used == config.target_count

    def hits(self, progress: InputProgress) -> int:
        """Correct finds so far; matched pairs count once."""
        if self.match_rule == MatchRule.PAIRS:
            return len(progress.accepted_selections) // 2
        return len(progress.accepted_selections)
