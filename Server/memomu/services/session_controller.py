"""
Session Controller

Runs one play-through of a mode: round setup, timed phase playback, input,
resolution and the pause before the next round or the end of the game.

States: idle -> round-setup -> phase-playback -> awaiting-input ->
round-resolved -> round-setup (next round) | game-complete.

All timing goes through the session's TimerQueue; the host calls tick()
once per frame. Nothing here blocks or spawns threads.
"""

import random
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..config.game_settings import ModeSettings, build_asset_catalog
from ..models.game import (
    ActiveWriter, GameMode, InputProgress, MatchRule, Phase, PhaseState, RoundConfig,
    RoundOutcome, RoundResult, SelectionOutcome, SessionSnapshot, SessionStatus, SessionTotals
)
from ..utils.errors import DoubleResolution
from ..utils.game_logger import game_logger
from .battle_ai import battle_verdict
from .collaborators import AssetProvider, NavigationListener, Renderer
from .input_validator import InputValidator
from .phase_scheduler import Countdown, PhaseScheduler, Playback, TimerQueue, expand_repetitions
from .round_config import ContentPool, RoundConfigGenerator
from .score_engine import ScoreEngine


@dataclass(frozen=True)
class PhaseSpec:
    """One scheduled phase: an optional lead-in, then a played sequence."""
    phase: Phase
    lead_in_ms: int = 0
    lead_in_phase: Phase = Phase.INTRO
    steps: Tuple[Tuple[int, ...], ...] = ()
    highlight_ms: int = 0
    gap_ms: int = 0
    tail_ms: int = 0
    sounds: bool = False


class SessionController:
    """
    State machine for a single game session.

    This class handles:
    - Round lifecycle and phase plans per mode
    - Routing tile clicks through the InputValidator
    - Countdown expiry, scoring and round advancement
    - High score submission and collaborator notifications
    """

    def __init__(self, settings: ModeSettings, session_id: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic, rng: Optional[random.Random] = None,
                 renderer: Optional[Renderer] = None, assets: Optional[AssetProvider] = None,
                 navigator: Optional[NavigationListener] = None, high_scores=None):
        self.settings = settings
        self.session_id = session_id or str(uuid.uuid4())
        self.rng = rng or random.Random()

        self.timers = TimerQueue(clock)
        self.scheduler = PhaseScheduler(self.timers, owner=self.session_id)
        self.generator = RoundConfigGenerator(settings, self.rng)
        self.validator = InputValidator(settings.match_rule, settings.mistake_policy)
        self.scorer = ScoreEngine(settings.scoring)

        self.renderer = renderer or Renderer()
        self.assets = assets or AssetProvider(build_asset_catalog(), session_id=self.session_id)
        self.navigator = navigator or NavigationListener()
        self.high_scores = high_scores

        self.status = SessionStatus.IDLE
        self.totals = SessionTotals(max_rounds=settings.max_rounds)
        self.history: List[RoundResult] = []
        self.pool: Optional[ContentPool] = None
        self.config: Optional[RoundConfig] = None
        self.phase_state: Optional[PhaseState] = None
        self.progress: Optional[InputProgress] = None
        self.countdown: Optional[Countdown] = None
        self.playback: Optional[Playback] = None
        self.input_started_at: Optional[float] = None
        self.feedback = ""
        self.verdict: Optional[str] = None

    @property
    def mode(self) -> GameMode:
        return self.settings.mode

    def now(self) -> float:
        return self.timers.now()

    # ---- lifecycle ----

    def start(self, avatar: Optional[int] = None) -> SessionSnapshot:
        """
        Start, or restart, the session at round 1.

        The avatar is checked before anything is torn down, so a rejected
        restart leaves the running game as it was. Otherwise every pending
        callback of the previous run is invalidated and the totals are reset.

        Raises:
            InvalidConfiguration: If the avatar or the first round's table is invalid
        """
        pool = self.generator.assign_pool(avatar)

        self.scheduler.invalidate()
        self.totals = SessionTotals(max_rounds=self.settings.max_rounds)
        self.history = []
        self.verdict = None
        self.pool = pool

        game_logger.log_game_event(
            self.session_id, 'session_start', mode=self.mode.value,
            player_avatar=self.pool.player_avatar, opponent_avatar=self.pool.opponent_avatar
        )
        self._setup_round(1)
        return self.snapshot()

    def quit(self) -> SessionSnapshot:
        """Abandon the session. Pending callbacks become no-ops."""
        self.scheduler.invalidate()
        self.status = SessionStatus.IDLE
        self.config = None
        self.phase_state = None
        self.progress = None
        self.countdown = None
        self.playback = None
        self.feedback = ""

        game_logger.log_game_event(self.session_id, 'session_quit', mode=self.mode.value,
                                   score=self.totals.score)
        self.render()
        self.navigator.on_quit(self.session_id)
        return self.snapshot()

    def tick(self) -> None:
        """One frame: run due callbacks, then check the countdown once."""
        self.timers.run_due()
        if self.status != SessionStatus.AWAITING_INPUT or self.countdown is None:
            return
        if self.countdown.expired(self.now()) and self.countdown.fire():
            self.resolve_round(RoundOutcome.FAILED_TIMEOUT)

    # ---- rounds and phases ----

    def _setup_round(self, round_number: int) -> None:
        self.scheduler.invalidate()
        self.status = SessionStatus.ROUND_SETUP
        self.totals.current_round_number = round_number
        self.config = self.generator.configure(round_number, self.pool)
        self.phase_state = PhaseState.for_grid(self.config.grid_size.cells, self.now())
        self.progress = InputProgress(click_budget=self.config.click_budget)
        self.countdown = None
        self.playback = None
        self.input_started_at = None
        self.feedback = ""

        game_logger.log_game_event(
            self.session_id, 'round_setup', mode=self.mode.value, round=round_number,
            tier=self.config.tier, target_count=self.config.target_count,
            time_limit=self.config.time_limit_seconds, click_budget=self.config.click_budget
        )
        self._run_plan(self._phase_plan(self.config), 0)

    def _phase_plan(self, config: RoundConfig) -> List[PhaseSpec]:
        timing = self.settings.timing

        if self.mode == GameMode.MUSIC_MEMORY:
            memorize = [(pos,) for pos in config.target_positions]
            mislead = [(pos,) for pos in config.positions_of(config.decoy_sequence or config.target_sequence)]
            return [
                PhaseSpec(Phase.MEMORIZE, lead_in_ms=timing.intro_ms,
                          steps=tuple(expand_repetitions(memorize, config.repetitions)),
                          highlight_ms=timing.highlight_ms, gap_ms=timing.gap_ms,
                          tail_ms=timing.phase_tail_ms, sounds=True),
                PhaseSpec(Phase.MISLEAD, lead_in_ms=timing.intro_ms,
                          steps=tuple(expand_repetitions(mislead, config.repetitions)),
                          highlight_ms=timing.highlight_ms, gap_ms=timing.gap_ms,
                          tail_ms=timing.phase_tail_ms, sounds=True),
            ]

        if self.mode == GameMode.MEMOMU_MEMORY:
            return [PhaseSpec(Phase.FLASH, lead_in_ms=timing.flash_delay_ms,
                              steps=(tuple(config.target_positions),), highlight_ms=timing.flash_ms)]

        if self.mode == GameMode.BATTLE:
            # The countdown only runs before the first round
            lead_in = timing.countdown_ms if config.round_number == 1 else 0
            return [PhaseSpec(Phase.FLASH, lead_in_ms=lead_in, lead_in_phase=Phase.COUNTDOWN,
                              steps=(tuple(range(config.grid_size.cells)),), highlight_ms=timing.flash_ms)]

        return []

    def _run_plan(self, plan: Sequence[PhaseSpec], index: int) -> None:
        if index >= len(plan):
            self._begin_input()
            return

        spec = plan[index]
        self.status = SessionStatus.PHASE_PLAYBACK
        if spec.lead_in_ms > 0:
            self.phase_state.enter(spec.lead_in_phase, self.now(), ActiveWriter.SCHEDULER)
            self.render()
        self.scheduler.defer(spec.lead_in_ms, self._play_phase, plan, index)

    def _play_phase(self, plan: Sequence[PhaseSpec], index: int) -> None:
        spec = plan[index]
        self.phase_state.enter(spec.phase, self.now(), ActiveWriter.SCHEDULER)
        self.render()
        self.playback = self.scheduler.play_sequence(
            spec.steps, spec.highlight_ms, spec.gap_ms,
            on_step_visible=lambda step: self._show_step(step, spec.sounds),
            on_step_hidden=self._hide_step,
            on_complete=lambda: self.scheduler.defer(spec.tail_ms, self._run_plan, plan, index + 1)
        )

    def _show_step(self, step: Tuple[int, ...], sounds: bool) -> None:
        self._write_tiles(ActiveWriter.SCHEDULER, step, highlighted=True, revealed=True)
        if sounds:
            for pos in step:
                self.assets.play_sound(self._note_at(pos))
        self.render()

    def _hide_step(self, step: Tuple[int, ...]) -> None:
        self._write_tiles(ActiveWriter.SCHEDULER, step, highlighted=False, revealed=False)
        self.render()

    def _begin_input(self) -> None:
        now = self.now()
        self.status = SessionStatus.AWAITING_INPUT
        self.phase_state.enter(Phase.INPUT, now, ActiveWriter.VALIDATOR)
        if self.settings.reveal_tiles_during_input:
            self._write_tiles(ActiveWriter.VALIDATOR, range(len(self.phase_state.tiles)), revealed=True)
        self.input_started_at = now
        if self.config.time_limit_seconds is not None:
            self.countdown = Countdown(now, self.config.time_limit_seconds)
        self.render()

    def _write_tiles(self, writer: ActiveWriter, indices, **flags: Any) -> bool:
        """Set tile flags if writer currently owns them."""
        if self.phase_state is None or self.phase_state.writer != writer:
            return False
        for idx in indices:
            tile = self.phase_state.tiles[idx]
            for name, value in flags.items():
                setattr(tile, name, value)
        return True

    # ---- input ----

    def on_tile_clicked(self, tile_index: int) -> Optional[SelectionOutcome]:
        """
        Route one tile click to the validator.

        Returns:
            The selection outcome, or None when input is not accepted (wrong
            state, pair reveal lock, timed out, or index off the grid)
        """
        if self.status != SessionStatus.AWAITING_INPUT or self.phase_state.locked:
            return None
        if not 0 <= tile_index < len(self.phase_state.tiles):
            return None

        # An expired countdown wins over a click arriving after the limit
        if self.countdown is not None and self.countdown.expired(self.now()):
            if self.countdown.fire():
                self.resolve_round(RoundOutcome.FAILED_TIMEOUT)
            return None

        first_pick = self.progress.pending_pick
        selection, outcome = self.validator.handle_selection(tile_index, self.config, self.progress)
        if selection == SelectionOutcome.DUPLICATE_IGNORED:
            return selection

        self._apply_selection(tile_index, first_pick, selection, outcome)
        if outcome is not None:
            self.resolve_round(outcome)
        else:
            self.render()
        return selection

    def _apply_selection(self, tile_index: int, first_pick: Optional[int],
                         selection: SelectionOutcome, outcome: Optional[RoundOutcome]) -> None:
        sounds = self.settings.sounds
        writer = ActiveWriter.VALIDATOR
        picked = [tile_index] if first_pick is None else [first_pick, tile_index]

        if selection == SelectionOutcome.PENDING:
            self._write_tiles(writer, picked, revealed=True, selected=True)
            self.assets.play_sound(sounds.get('first_pick'))
            return

        if selection == SelectionOutcome.ACCEPTED:
            self._write_tiles(writer, picked, revealed=True, selected=True, outcome='hit')
            if self.mode == GameMode.MUSIC_MEMORY:
                self.assets.play_sound(self._note_at(tile_index))
            else:
                self.assets.play_sound(sounds.get('hit'))
            self.feedback = ""
            return

        self._write_tiles(writer, picked, revealed=True, selected=True, outcome='miss')
        self.assets.play_sound(sounds.get('miss'))
        if self.settings.match_rule == MatchRule.PAIRS:
            self.feedback = "No match"
            if outcome is None:
                self.phase_state.locked = True
                self.scheduler.defer(self.settings.timing.pair_reveal_ms, self._close_pair, picked)
        else:
            self.feedback = "Wrong!" if self.config.is_decoy(tile_index) else "Wrong order!"

    def _close_pair(self, picked: List[int]) -> None:
        self._write_tiles(ActiveWriter.VALIDATOR, picked, revealed=False, selected=False, outcome=None)
        self.phase_state.locked = False
        self.render()

    # ---- resolution ----

    def resolve_round(self, outcome: RoundOutcome) -> Optional[RoundResult]:
        """
        Resolve the current round exactly once.

        A second resolution of the same round is logged and discarded.

        Returns:
            RoundResult: The result appended to the history, or None if discarded
        """
        if self.phase_state is None or self.config is None:
            return None
        try:
            self.phase_state.mark_resolved(self.config.round_number, outcome)
        except DoubleResolution as e:
            game_logger.log_discarded(self.session_id, e, mode=self.mode.value)
            return None

        # Cancels playback and pending pair reveals of this round
        self.scheduler.invalidate()

        now = self.now()
        if self.countdown is not None:
            self.countdown.fire()
            time_used = self.countdown.elapsed(now)
            time_remaining = self.countdown.remaining(now)
        else:
            time_used = now - self.input_started_at if self.input_started_at is not None else 0.0
            time_remaining = None

        hits = self.validator.hits(self.progress)
        perfect = outcome == RoundOutcome.COMPLETED and self.validator.is_perfect(self.config, self.progress)
        opponent_points = 0
        if self.mode == GameMode.BATTLE:
            points, opponent_points = self.scorer.battle_round(
                self.config.target_count, hits, outcome, time_used, self.config.time_limit_seconds
            )
        else:
            points = self.scorer.round_points(self.config, hits, outcome, time_remaining, perfect)

        result = RoundResult(
            round_number=self.config.round_number,
            points_earned=points,
            perfect=perfect,
            time_used=time_used,
            outcome=outcome,
            hits=hits,
            mistakes=self.progress.mistake_count,
            clicks_used=self.progress.clicks_used,
            opponent_points=opponent_points
        )
        self.history.append(result)
        self.totals.score = self.scorer.session_total(self.history)
        self.totals.opponent_score += opponent_points
        self.status = SessionStatus.ROUND_RESOLVED
        self.feedback = self._resolution_feedback(result)
        if perfect:
            self.assets.play_sound(self.settings.sounds.get('perfect'))

        game_logger.log_game_event(self.session_id, 'round_resolved', mode=self.mode.value, **result.to_dict())
        self.render()

        game_over = (self.config.round_number >= self.settings.max_rounds
                     or (outcome != RoundOutcome.COMPLETED and self.settings.game_over_on_failure))
        self.scheduler.defer(self.settings.timing.resolve_pause_ms, self._advance, game_over)
        return result

    def _resolution_feedback(self, result: RoundResult) -> str:
        if self.mode == GameMode.BATTLE:
            opponent = self._avatar_name(self.pool.opponent_avatar)
            if result.outcome != RoundOutcome.COMPLETED:
                return f"{opponent} takes the round"
            return f"+{result.points_earned} vs {opponent} +{result.opponent_points}"
        if result.outcome == RoundOutcome.FAILED_TIMEOUT:
            return "Time's up!"
        if result.outcome == RoundOutcome.FAILED_CLICK_BUDGET:
            return "Out of clicks!"
        if result.outcome == RoundOutcome.FAILED_MISTAKE:
            return f"{self.feedback or 'Wrong!'} Round ended."
        if result.perfect:
            return f"Perfect! +{result.points_earned}"
        if result.points_earned == 0:
            return "All found, but not perfect"
        return f"Round complete! +{result.points_earned}"

    def _advance(self, game_over: bool) -> None:
        if game_over:
            self._complete_game()
            return
        next_round = self.config.round_number + 1
        self.navigator.on_round_advance(self.session_id, next_round)
        self._setup_round(next_round)

    def _complete_game(self) -> None:
        self.status = SessionStatus.GAME_COMPLETE
        self.totals.game_complete = True
        if self.mode == GameMode.BATTLE:
            self.verdict = battle_verdict(self.totals.score, self.totals.opponent_score)
        if self.high_scores is not None:
            self.high_scores.submit(self.mode, self.totals.score)

        game_logger.log_game_event(
            self.session_id, 'game_complete', mode=self.mode.value, score=self.totals.score,
            rounds_played=len(self.history), opponent_score=self.totals.opponent_score, verdict=self.verdict
        )
        self.render()
        self.navigator.on_game_complete(self.session_id, self.totals.score)

    # ---- views ----

    def _note_at(self, tile_index: int) -> Optional[str]:
        return self.pool.notes.get(self.config.content_at(tile_index)) if self.pool else None

    def _avatar_name(self, avatar: Optional[int]) -> Optional[str]:
        if avatar is None:
            return None
        return self.settings.content['avatar_names'][avatar]

    def live_score(self) -> int:
        """Session total plus the provisional points of the round in play."""
        if self.status == SessionStatus.AWAITING_INPUT and self.progress is not None:
            return self.totals.score + self.scorer.provisional_points(self.validator.hits(self.progress))
        return self.totals.score

    def snapshot(self) -> SessionSnapshot:
        tiles = []
        if self.phase_state is not None:
            for idx, flags in enumerate(self.phase_state.tiles):
                tiles.append({
                    'index': idx,
                    'content': self.assets.get_image(self.config.content_at(idx)) if flags.revealed else None,
                    'revealed': flags.revealed,
                    'highlighted': flags.highlighted,
                    'selected': flags.selected,
                    'outcome': flags.outcome
                })

        time_remaining = None
        if self.countdown is not None and self.status == SessionStatus.AWAITING_INPUT:
            time_remaining = round(self.countdown.remaining(self.now()), 2)

        return SessionSnapshot(
            session_id=self.session_id,
            mode=self.mode.value,
            status=self.status.value,
            phase=self.phase_state.current_phase.value if self.phase_state else None,
            round_number=self.totals.current_round_number,
            max_rounds=self.totals.max_rounds,
            score=self.live_score(),
            time_remaining=time_remaining,
            clicks_used=self.progress.clicks_used if self.progress else 0,
            click_budget=self.progress.click_budget if self.progress else None,
            hits=self.validator.hits(self.progress) if self.progress else 0,
            target_count=self.config.target_count if self.config else 0,
            tiles=tiles,
            feedback=self.feedback,
            game_complete=self.totals.game_complete,
            history=[result.to_dict() for result in self.history],
            high_score=self.high_scores.top_score(self.mode) if self.high_scores is not None else 0,
            opponent_score=self.totals.opponent_score,
            player_avatar=self._avatar_name(self.pool.player_avatar) if self.pool else None,
            opponent_avatar=self._avatar_name(self.pool.opponent_avatar) if self.pool else None,
            verdict=self.verdict
        )

    def render(self) -> None:
        self.renderer.render(self.snapshot())
