"""
Round Configuration Generator

Builds the immutable RoundConfig of each round from the mode's difficulty
table: how many targets, which content, where on the grid, and which decoys
fill the remaining cells.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.game_settings import DifficultyTier, ModeSettings
from ..models.game import GameMode, GridSize, RoundConfig
from ..utils.errors import InvalidConfiguration
from .battle_ai import BattleOpponent
from .random_selection import choice_with_replacement, sample_distinct, shuffle

# Reshuffles tried before falling back to a rotation of the target order
MAX_MISLEAD_RESHUFFLES = 20


@dataclass(frozen=True)
class ContentPool:
    """Content assigned once per session."""
    targets: Tuple[str, ...]
    decoys: Tuple[str, ...] = ()
    notes: Dict[str, str] = field(default_factory=dict)
    player_avatar: Optional[int] = None
    opponent_avatar: Optional[int] = None


class RoundConfigGenerator:
    """
    Per-mode round builder.

    This class handles:
    - Session content pool assignment (image to note mapping, avatars)
    - Difficulty lookup by round number
    - Target sequence, mislead sequence and grid placement
    """

    def __init__(self, settings: ModeSettings, rng=random, opponent: Optional[BattleOpponent] = None):
        self.settings = settings
        self.rng = rng
        self.opponent = opponent
        if self.opponent is None and settings.mode == GameMode.BATTLE:
            content = settings.content
            self.opponent = BattleOpponent(
                content['avatar_names'],
                delay_per_tile=tuple(content.get('opponent_delay_per_tile', (0.5, 1.1))),
                jitter=content.get('opponent_jitter', 1.0),
                rng=rng
            )

        self._pool_builders = {
            GameMode.MUSIC_MEMORY: self._music_pool,
            GameMode.CLASSIC_MEMORY: self._classic_pool,
            GameMode.MEMOMU_MEMORY: self._memomu_pool,
            GameMode.MONLUCK: self._monluck_pool,
            GameMode.BATTLE: self._battle_pool,
        }
        self._round_builders = {
            GameMode.MUSIC_MEMORY: self._music_round,
            GameMode.CLASSIC_MEMORY: self._classic_round,
            GameMode.MEMOMU_MEMORY: self._memomu_round,
            GameMode.MONLUCK: self._monluck_round,
            GameMode.BATTLE: self._battle_round,
        }

    def assign_pool(self, avatar: Optional[int] = None) -> ContentPool:
        """Select the session's content pool. Called once at session start."""
        if self.settings.mode == GameMode.BATTLE:
            return self._battle_pool(avatar)
        return self._pool_builders[self.settings.mode]()

    def configure(self, round_number: int, pool: ContentPool) -> RoundConfig:
        """
        Builds the configuration of one round.

        Raises:
            InvalidConfiguration: If the round is out of range or its table
                asks for more targets than the grid or pool can hold
        """
        if not 1 <= round_number <= self.settings.max_rounds:
            raise InvalidConfiguration(
                f"{self.settings.mode.value}: round {round_number} outside 1..{self.settings.max_rounds}"
            )
        tier = self.settings.tier_for_round(round_number)
        return self._round_builders[self.settings.mode](round_number, tier, pool)

    # ---- content pools ----

    def _music_pool(self) -> ContentPool:
        content = self.settings.content
        images = [f"{content['image_prefix']}{i}" for i in range(1, int(content['image_count']) + 1)]
        picked = sample_distinct(len(images), int(content['assigned_count']), self.rng)
        assigned = tuple(images[i] for i in picked)
        decoys = tuple(img for img in images if img not in assigned)
        notes = {img: f"{content['note_prefix']}{i + 1}" for i, img in enumerate(assigned)}
        return ContentPool(targets=assigned, decoys=decoys, notes=notes)

    def _classic_pool(self) -> ContentPool:
        content = self.settings.content
        images = [f"{content['image_prefix']}{i}" for i in range(1, int(content['image_count']) + 1)]
        images.extend(content.get('extra_images', []))
        return ContentPool(targets=tuple(images))

    def _memomu_pool(self) -> ContentPool:
        prefix = self.settings.content['tile_prefix']
        cells = max(tier.cells for tier in self.settings.difficulty)
        return ContentPool(targets=tuple(f"{prefix}{i + 1}" for i in range(cells)))

    def _monluck_pool(self) -> ContentPool:
        content = self.settings.content
        decoys = tuple(f"{content['decoy_prefix']}{i}" for i in range(1, int(content['decoy_count']) + 1))
        return ContentPool(targets=(content['target_content'],), decoys=decoys)

    def _battle_pool(self, avatar: Optional[int] = None) -> ContentPool:
        content = self.settings.content
        if avatar is None:
            avatar = self.rng.randrange(len(content['avatar_names']))
        opponent = self.opponent.choose_opponent(avatar)
        decoys = tuple(
            f"{content['decoy_prefix']}{i}"
            for i in range(int(content['decoy_first']), int(content['decoy_last']) + 1)
        )
        return ContentPool(
            targets=(f"{content['avatar_prefix']}{avatar + 1}",),
            decoys=decoys,
            player_avatar=avatar,
            opponent_avatar=opponent
        )

    # ---- round builders ----

    def _music_round(self, round_number: int, tier: DifficultyTier, pool: ContentPool) -> RoundConfig:
        assigned = pool.targets
        if tier.target_count > len(assigned):
            raise InvalidConfiguration(f"{tier.target_count} notes requested, only {len(assigned)} assigned")
        targets = tuple(assigned[i % len(assigned)] for i in range(tier.target_count))
        return self._place(round_number, tier, targets, pool.decoys,
                           decoy_sequence=self.mislead_order(targets))

    def _classic_round(self, round_number: int, tier: DifficultyTier, pool: ContentPool) -> RoundConfig:
        pairs = tier.pairs or tier.target_count // 2
        leftover = tier.cells - 2 * pairs
        if leftover < 0 or pairs + leftover > len(pool.targets):
            raise InvalidConfiguration(
                f"{pairs} pairs on {tier.cells} cells need {pairs + max(leftover, 0)} images, pool has {len(pool.targets)}"
            )

        shuffled = shuffle(pool.targets, self.rng)
        selected = shuffled[:pairs]
        # Odd grids get unmatched images that can never pair up
        extras = shuffled[pairs:pairs + leftover]
        layout = tuple(shuffle(selected * 2 + extras, self.rng))

        paired = set(selected)
        positions = tuple(pos for pos, content in enumerate(layout) if content in paired)
        return RoundConfig(
            round_number=round_number,
            target_count=len(positions),
            repetitions=tier.repetitions,
            time_limit_seconds=tier.time_limit,
            grid_size=GridSize(tier.rows, tier.cols),
            target_sequence=tuple(layout[pos] for pos in positions),
            target_positions=positions,
            tile_assignment=layout,
            click_budget=tier.click_budget,
            tier=tier.tier
        )

    def _memomu_round(self, round_number: int, tier: DifficultyTier, pool: ContentPool) -> RoundConfig:
        assignment = pool.targets[:tier.cells]
        positions = tuple(sample_distinct(tier.cells, tier.target_count, self.rng))
        budget = tier.click_budget if tier.click_budget is not None else tier.target_count + 1
        return RoundConfig(
            round_number=round_number,
            target_count=tier.target_count,
            repetitions=tier.repetitions,
            time_limit_seconds=tier.time_limit,
            grid_size=GridSize(tier.rows, tier.cols),
            target_sequence=tuple(assignment[pos] for pos in positions),
            target_positions=positions,
            tile_assignment=tuple(assignment),
            click_budget=budget,
            tier=tier.tier
        )

    def _monluck_round(self, round_number: int, tier: DifficultyTier, pool: ContentPool) -> RoundConfig:
        positions = shuffle(range(tier.cells), self.rng)[:tier.target_count]
        targets = (pool.targets[0],) * tier.target_count
        return self._place(round_number, tier, targets, pool.decoys, positions=positions)

    def _battle_round(self, round_number: int, tier: DifficultyTier, pool: ContentPool) -> RoundConfig:
        content = self.settings.content
        low = tier.target_count_min or tier.target_count
        avatars = self.rng.randint(low, tier.target_count)
        targets = (pool.targets[0],) * avatars
        positions = sample_distinct(tier.cells, avatars, self.rng)

        needed = tier.cells - avatars
        if round_number <= int(content.get('blank_rounds', 0)):
            fill = [content.get('blank_content', 'blank')] * needed
        else:
            # Cycle through reshuffled copies so decoys repeat as little as possible
            fill = []
            while len(fill) < needed:
                fill.extend(shuffle(pool.decoys, self.rng)[:needed - len(fill)])

        return self._place(round_number, tier, targets, pool.decoys, positions=positions,
                           fill=fill, time_limit=self.opponent.finish_time(avatars))

    # ---- helpers ----

    def mislead_order(self, targets: Sequence[str]) -> Tuple[str, ...]:
        """
        Reorders targets for the mislead phase.

        Reshuffles until the order differs from the target order. A sequence
        with a single distinct item is returned unchanged.
        """
        original = tuple(targets)
        if len(set(original)) < 2:
            return original
        for _ in range(MAX_MISLEAD_RESHUFFLES):
            candidate = tuple(shuffle(original, self.rng))
            if candidate != original:
                return candidate
        return original[1:] + original[:1]

    def _place(self, round_number: int, tier: DifficultyTier, targets: Tuple[str, ...],
               decoy_pool: Sequence[str], positions: Optional[Sequence[int]] = None,
               fill: Optional[Sequence[str]] = None, time_limit: Optional[float] = None,
               decoy_sequence: Optional[Tuple[str, ...]] = None) -> RoundConfig:
        """Place targets on the grid and fill every other cell with decoys."""
        cells = tier.cells
        if positions is None:
            positions = sample_distinct(cells, len(targets), self.rng)
        if len(targets) > cells:
            raise InvalidConfiguration(f"{len(targets)} targets do not fit {cells} cells")

        assignment: List[Optional[str]] = [None] * cells
        for content, pos in zip(targets, positions):
            assignment[pos] = content

        remaining = [pos for pos in range(cells) if assignment[pos] is None]
        if fill is None:
            fill = choice_with_replacement(decoy_pool, len(remaining), self.rng)
        for pos, content in zip(remaining, fill):
            assignment[pos] = content

        return RoundConfig(
            round_number=round_number,
            target_count=len(targets),
            repetitions=tier.repetitions,
            time_limit_seconds=time_limit if time_limit is not None else tier.time_limit,
            grid_size=GridSize(tier.rows, tier.cols),
            target_sequence=tuple(targets),
            target_positions=tuple(positions),
            tile_assignment=tuple(assignment),
            decoy_sequence=decoy_sequence,
            click_budget=tier.click_budget,
            tier=tier.tier
        )
