"""
Game Configuration Constants Module

This module loads the per-mode rule tables (difficulty breakpoints, phase
timings, scoring rules and sound cues) from game_modes.json. All game
parameters are centralized there so that difficulty can be tuned without
touching the engine.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Final, List, Optional, Tuple

from ..models.game import GameMode, MatchRule, MistakeKind, MistakePolicy
from ..utils.errors import InvalidConfiguration


@dataclass(frozen=True)
class DifficultyTier:
    """One row of a mode's difficulty table, covering a range of rounds."""
    first_round: int
    last_round: int
    tier: str
    target_count: int
    rows: int
    cols: int
    repetitions: int = 1
    time_limit: Optional[float] = None
    click_budget: Optional[int] = None
    pairs: Optional[int] = None
    target_count_min: Optional[int] = None

    def covers(self, round_number: int) -> bool:
        return self.first_round <= round_number <= self.last_round

    @property
    def cells(self) -> int:
        return self.rows * self.cols


@dataclass(frozen=True)
class TimingRules:
    intro_ms: int = 0
    highlight_ms: int = 500
    gap_ms: int = 300
    phase_tail_ms: int = 0
    flash_delay_ms: int = 0
    flash_ms: int = 0
    countdown_ms: int = 0
    pair_reveal_ms: int = 0
    resolve_pause_ms: int = 0


@dataclass(frozen=True)
class ScoringRules:
    points_per_hit: int = 1
    bonus: str = "none"


@dataclass(frozen=True)
class ModeSettings:
    mode: GameMode
    title: str
    max_rounds: int
    match_rule: MatchRule
    mistake_policy: MistakePolicy
    game_over_on_failure: bool
    reveal_tiles_during_input: bool
    content: Dict[str, Any]
    difficulty: Tuple[DifficultyTier, ...]
    timing: TimingRules
    scoring: ScoringRules
    sounds: Dict[str, str] = field(default_factory=dict)

    def tier_for_round(self, round_number: int) -> DifficultyTier:
        """Return the difficulty row covering round_number."""
        for tier in self.difficulty:
            if tier.covers(round_number):
                return tier
        raise InvalidConfiguration(f"{self.mode.value}: no difficulty tier covers round {round_number}")


BONUS_KINDS: Final[Tuple[str, ...]] = (
    "none", "target_count_if_perfect", "round_plus_time_if_perfect", "time_times_round", "battle"
)


def _parse_tier(raw: Dict[str, Any]) -> DifficultyTier:
    pairs = raw.get('pairs')
    target_count = raw.get('target_count')
    if pairs is not None:
        # Pair tables count pairs; the engine counts target tiles
        target_count = 2 * int(pairs)
    if target_count is None:
        raise InvalidConfiguration(f"Difficulty row {raw} has neither target_count nor pairs")

    return DifficultyTier(
        first_round=int(raw['first_round']),
        last_round=int(raw['last_round']),
        tier=str(raw.get('tier', '')),
        target_count=int(target_count),
        rows=int(raw['rows']),
        cols=int(raw['cols']),
        repetitions=int(raw.get('repetitions', 1)),
        time_limit=raw.get('time_limit'),
        click_budget=raw.get('click_budget'),
        pairs=pairs,
        target_count_min=raw.get('target_count_min')
    )


def _parse_mode(key: str, raw: Dict[str, Any]) -> ModeSettings:
    try:
        mode = GameMode(key)
    except ValueError:
        raise InvalidConfiguration(f"Unknown game mode '{key}' in game_modes.json")

    policy = raw.get('mistake_policy', {})
    return ModeSettings(
        mode=mode,
        title=raw.get('title', key),
        max_rounds=int(raw['max_rounds']),
        match_rule=MatchRule(raw['match_rule']),
        mistake_policy=MistakePolicy(
            kind=MistakeKind(policy.get('kind', 'strict')),
            max_mistakes=policy.get('max_mistakes')
        ),
        game_over_on_failure=bool(raw.get('game_over_on_failure', False)),
        reveal_tiles_during_input=bool(raw.get('reveal_tiles_during_input', False)),
        content=dict(raw.get('content', {})),
        difficulty=tuple(_parse_tier(row) for row in raw.get('difficulty', [])),
        timing=TimingRules(**raw.get('timing', {})),
        scoring=ScoringRules(**raw.get('scoring', {})),
        sounds=dict(raw.get('sounds', {}))
    )


def _load_mode_tables() -> Dict[GameMode, ModeSettings]:
    """
    Load mode tables from game_modes.json.

    Returns:
        Dict[GameMode, ModeSettings]: Parsed tables for every mode

    Raises:
        FileNotFoundError: If game_modes.json file is not found
        InvalidConfiguration: If a table is malformed
    """
    config_dir = os.path.dirname(os.path.abspath(__file__))
    json_file_path = os.path.join(config_dir, 'game_modes.json')

    try:
        with open(json_file_path, 'r', encoding='utf-8') as f:
            raw_tables = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Mode table file not found: {json_file_path}")
    except json.JSONDecodeError as e:
        raise InvalidConfiguration(f"Invalid JSON in game_modes.json: {e}")

    if not isinstance(raw_tables, dict) or not raw_tables:
        raise InvalidConfiguration("game_modes.json must contain an object keyed by mode")

    tables = {}
    for key, raw in raw_tables.items():
        try:
            settings = _parse_mode(key, raw)
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, InvalidConfiguration):
                raise
            raise InvalidConfiguration(f"Malformed table for mode '{key}': {e}")
        tables[settings.mode] = settings
    return tables


def _content_pool_size(settings: ModeSettings) -> int:
    """Number of distinct content-IDs available as targets."""
    content = settings.content
    if settings.mode == GameMode.MUSIC_MEMORY:
        return int(content['assigned_count'])
    if settings.mode == GameMode.CLASSIC_MEMORY:
        return int(content['image_count']) + len(content.get('extra_images', []))
    return settings.difficulty[0].cells if settings.difficulty else 0


def validate_mode_settings(settings: ModeSettings) -> bool:
    """
    Validates one mode table.

    Checks that the difficulty rows cover rounds 1..max_rounds without gaps,
    that no row asks for more targets than grid cells or content pool, and
    that click budgets and repetitions are usable.

    Raises:
        InvalidConfiguration: If any check fails
    """
    name = settings.mode.value
    if settings.max_rounds < 1:
        raise InvalidConfiguration(f"{name}: max_rounds must be at least 1")
    if settings.scoring.bonus not in BONUS_KINDS:
        raise InvalidConfiguration(f"{name}: unknown bonus kind '{settings.scoring.bonus}'")

    expected = 1
    for tier in sorted(settings.difficulty, key=lambda t: t.first_round):
        if tier.first_round != expected or tier.last_round < tier.first_round:
            raise InvalidConfiguration(f"{name}: difficulty rows must cover rounds contiguously from 1")
        expected = tier.last_round + 1

        if tier.target_count < 1 or (tier.target_count_min is not None and tier.target_count_min < 1):
            raise InvalidConfiguration(f"{name}: rounds {tier.first_round}-{tier.last_round} need at least one target")
        if tier.target_count > tier.cells:
            raise InvalidConfiguration(
                f"{name}: {tier.target_count} targets requested on a {tier.rows}x{tier.cols} grid"
            )
        pairs = tier.pairs if tier.pairs is not None else 0
        if settings.match_rule == MatchRule.PAIRS and pairs > _content_pool_size(settings):
            raise InvalidConfiguration(f"{name}: {pairs} pairs requested from a pool of {_content_pool_size(settings)}")
        if settings.mode == GameMode.MUSIC_MEMORY and tier.target_count > _content_pool_size(settings):
            raise InvalidConfiguration(
                f"{name}: {tier.target_count} targets requested from {_content_pool_size(settings)} assigned images"
            )
        if tier.repetitions < 1:
            raise InvalidConfiguration(f"{name}: repetitions must be at least 1")
        if tier.click_budget is not None and tier.click_budget < tier.target_count:
            raise InvalidConfiguration(f"{name}: click budget below target count in round {tier.first_round}")

    if expected - 1 != settings.max_rounds:
        raise InvalidConfiguration(f"{name}: difficulty rows cover {expected - 1} rounds, max_rounds is {settings.max_rounds}")
    return True


def validate_mode_tables(tables: Optional[Dict[GameMode, ModeSettings]] = None) -> bool:
    """Validates every mode table and checks all five modes are present."""
    tables = MODE_SETTINGS if tables is None else tables
    missing = [mode.value for mode in GameMode if mode not in tables]
    if missing:
        raise InvalidConfiguration(f"Missing mode tables: {missing}")
    for settings in tables.values():
        validate_mode_settings(settings)
    return True


def build_asset_catalog(tables: Optional[Dict[GameMode, ModeSettings]] = None) -> Dict[str, List[str]]:
    """
    Enumerates every sound and image id the modes can ask for.

    Returns:
        dict: {'sounds': [...], 'images': [...]}
    """
    tables = MODE_SETTINGS if tables is None else tables
    sounds = {'music'}
    images = set()

    for settings in tables.values():
        sounds.update(settings.sounds.values())
        content = settings.content
        if settings.mode == GameMode.MUSIC_MEMORY:
            images.update(f"{content['image_prefix']}{i}" for i in range(1, int(content['image_count']) + 1))
            sounds.update(f"{content['note_prefix']}{i}" for i in range(1, int(content['assigned_count']) + 1))
        elif settings.mode == GameMode.CLASSIC_MEMORY:
            images.update(f"{content['image_prefix']}{i}" for i in range(1, int(content['image_count']) + 1))
            images.update(content.get('extra_images', []))
        elif settings.mode == GameMode.MEMOMU_MEMORY:
            cells = max(tier.cells for tier in settings.difficulty)
            images.update(f"{content['tile_prefix']}{i}" for i in range(1, cells + 1))
        elif settings.mode == GameMode.MONLUCK:
            images.add(content['target_content'])
            images.update(f"{content['decoy_prefix']}{i}" for i in range(1, int(content['decoy_count']) + 1))
        elif settings.mode == GameMode.BATTLE:
            images.update(f"{content['avatar_prefix']}{i}" for i in range(1, len(content['avatar_names']) + 1))
            images.update(f"{content['decoy_prefix']}{i}" for i in range(int(content['decoy_first']), int(content['decoy_last']) + 1))
            images.add(content['blank_content'])

    return {'sounds': sorted(sounds), 'images': sorted(images)}


def get_mode_settings(mode) -> ModeSettings:
    """Look up the settings for a GameMode or its string value."""
    return MODE_SETTINGS[GameMode(mode)]


def get_mode_catalog() -> List[Dict[str, Any]]:
    """Summarises each mode for clients choosing a game."""
    catalog = []
    for settings in MODE_SETTINGS.values():
        catalog.append({
            'mode': settings.mode.value,
            'title': settings.title,
            'max_rounds': settings.max_rounds,
            'match_rule': settings.match_rule.value,
            'strict_mistakes': settings.mistake_policy.strict,
            'tiers': [
                {
                    'rounds': [tier.first_round, tier.last_round],
                    'tier': tier.tier,
                    'target_count': tier.target_count,
                    'grid': [tier.rows, tier.cols],
                    'time_limit': tier.time_limit
                }
                for tier in settings.difficulty
            ]
        })
    return catalog


# Mode tables loaded from game_modes.json
MODE_SETTINGS: Final[Dict[GameMode, ModeSettings]] = _load_mode_tables()

# Validate configuration on import
validate_mode_tables(MODE_SETTINGS)
