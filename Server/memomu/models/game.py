"""
Game Data Models

Contains all round, phase, progress and scoring data structures and enums
shared by the five MEMOMU minigames.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..utils.errors import DoubleResolution


class GameMode(Enum):
    """Minigame identifiers, also used as high score keys."""
    MUSIC_MEMORY = "musicMemory"
    CLASSIC_MEMORY = "memoryClassic"
    MEMOMU_MEMORY = "memoryMemomu"
    MONLUCK = "monluck"
    BATTLE = "battle"


class MatchRule(Enum):
    """How a selection is matched against the round targets."""
    ORDERED = "ordered"
    UNORDERED = "unordered"
    PAIRS = "pairs"


class MistakeKind(Enum):
    STRICT = "strict"
    BUDGETED = "budgeted"


@dataclass(frozen=True)
class MistakePolicy:
    """Strict policies end the round on the first mistake."""
    kind: MistakeKind = MistakeKind.STRICT
    max_mistakes: Optional[int] = None  # None: only the click budget limits the round

    @property
    def strict(self) -> bool:
        return self.kind == MistakeKind.STRICT


class Phase(Enum):
    """Named sub-stages of a round."""
    INTRO = "intro"
    MEMORIZE = "memorize"
    MISLEAD = "mislead"
    FLASH = "flash"
    COUNTDOWN = "countdown"
    INPUT = "input"
    RESOLVED = "resolved"


class ActiveWriter(Enum):
    """Which component currently owns the tile flags."""
    NONE = "none"
    SCHEDULER = "scheduler"
    VALIDATOR = "validator"


class SessionStatus(Enum):
    IDLE = "idle"
    ROUND_SETUP = "round-setup"
    PHASE_PLAYBACK = "phase-playback"
    AWAITING_INPUT = "awaiting-input"
    ROUND_RESOLVED = "round-resolved"
    GAME_COMPLETE = "game-complete"


class RoundOutcome(Enum):
    COMPLETED = "completed"
    FAILED_MISTAKE = "failed-mistake"
    FAILED_TIMEOUT = "failed-timeout"
    FAILED_CLICK_BUDGET = "failed-click-budget"


class SelectionOutcome(Enum):
    ACCEPTED = "accepted"
    MISTAKE = "mistake"
    DUPLICATE_IGNORED = "duplicate-ignored"
    PENDING = "pending"  # first card of a pair attempt


@dataclass(frozen=True)
class GridSize:
    rows: int
    cols: int

    @property
    def cells(self) -> int:
        return self.rows * self.cols


@dataclass(frozen=True)
class RoundConfig:
    """
    Immutable description of one round.

    target_positions[i] holds target_sequence[i]; every position not listed
    there is a decoy.
    """
    round_number: int
    target_count: int
    repetitions: int
    time_limit_seconds: Optional[float]
    grid_size: GridSize
    target_sequence: Tuple[str, ...]
    target_positions: Tuple[int, ...]
    tile_assignment: Tuple[str, ...]
    decoy_sequence: Optional[Tuple[str, ...]] = None
    click_budget: Optional[int] = None
    tier: str = ""

    @property
    def decoy_positions(self) -> Tuple[int, ...]:
        targets = set(self.target_positions)
        return tuple(pos for pos in range(self.grid_size.cells) if pos not in targets)

    def is_decoy(self, tile_index: int) -> bool:
        return tile_index not in self.target_positions

    def content_at(self, tile_index: int) -> str:
        return self.tile_assignment[tile_index]

    def positions_of(self, sequence: Tuple[str, ...]) -> List[int]:
        """Map a content sequence onto the non-decoy tiles that hold it."""
        lookup = {content: pos for content, pos in zip(self.target_sequence, self.target_positions)}
        return [lookup[content] for content in sequence]


@dataclass
class TileFlags:
    revealed: bool = False
    highlighted: bool = False
    selected: bool = False
    outcome: Optional[str] = None  # "hit" or "miss"


@dataclass
class PhaseState:
    """Mutable per-round phase data, reset at the start of each round."""
    tiles: List[TileFlags]
    current_phase: Phase = Phase.INTRO
    phase_started_at: float = 0.0
    writer: ActiveWriter = ActiveWriter.NONE
    resolved: bool = False
    locked: bool = False

    @classmethod
    def for_grid(cls, cells: int, started_at: float = 0.0) -> "PhaseState":
        return cls(tiles=[TileFlags() for _ in range(cells)], phase_started_at=started_at)

    def enter(self, phase: Phase, now: float, writer: ActiveWriter) -> None:
        self.current_phase = phase
        self.phase_started_at = now
        self.writer = writer

    def mark_resolved(self, round_number: int, outcome: "RoundOutcome") -> None:
        if self.resolved:
            raise DoubleResolution(round_number, outcome.value)
        self.resolved = True
        self.locked = False
        self.current_phase = Phase.RESOLVED
        self.writer = ActiveWriter.NONE


@dataclass
class InputProgress:
    click_budget: Optional[int] = None
    accepted_selections: List[int] = field(default_factory=list)  # tile indices
    missed_selections: List[int] = field(default_factory=list)
    mistake_count: int = 0
    clicks_used: int = 0
    pending_pick: Optional[int] = None
    attempts: int = 0

    @property
    def budget_exhausted(self) -> bool:
        return self.click_budget is not None and self.clicks_used >= self.click_budget

    def already_selected(self, tile_index: int) -> bool:
        return (tile_index in self.accepted_selections or tile_index in self.missed_selections
                or tile_index == self.pending_pick)


@dataclass(frozen=True)
class RoundResult:
    round_number: int
    points_earned: int
    perfect: bool
    time_used: float
    outcome: RoundOutcome
    hits: int = 0
    mistakes: int = 0
    clicks_used: int = 0
    opponent_points: int = 0

    def to_dict(self) -> Dict:
        return {
            'round_number': self.round_number,
            'points_earned': self.points_earned,
            'perfect': self.perfect,
            'time_used': round(self.time_used, 3),
            'outcome': self.outcome.value,
            'hits': self.hits,
            'mistakes': self.mistakes,
            'clicks_used': self.clicks_used,
            'opponent_points': self.opponent_points
        }


@dataclass
class SessionTotals:
    max_rounds: int
    score: int = 0
    current_round_number: int = 0
    game_complete: bool = False
    opponent_score: int = 0


@dataclass(frozen=True)
class HighScoreEntry:
    score: int
    timestamp: str

    @classmethod
    def from_dict(cls, data: Dict) -> "HighScoreEntry":
        return cls(score=int(data.get('score', 0)), timestamp=str(data.get('timestamp', '')))

    def to_dict(self) -> Dict:
        return {'score': self.score, 'timestamp': self.timestamp}


@dataclass
class SessionSnapshot:
    """Read-only view of a session handed to renderers and API clients."""
    session_id: str
    mode: str
    status: str
    phase: Optional[str]
    round_number: int
    max_rounds: int
    score: int
    time_remaining: Optional[float]
    clicks_used: int
    click_budget: Optional[int]
    hits: int
    target_count: int
    tiles: List[Dict]
    feedback: str
    game_complete: bool
    history: List[Dict]
    high_score: int = 0
    opponent_score: int = 0
    player_avatar: Optional[str] = None
    opponent_avatar: Optional[str] = None
    verdict: Optional[str] = None
