"""
Shared test helpers: a manual clock, recording collaborators and a
session harness that drives a SessionController frame by frame.
"""

import random

from memomu.config.game_settings import build_asset_catalog, get_mode_settings
from memomu.models.game import SessionStatus
from memomu.services.collaborators import AssetProvider, NavigationListener, Renderer, SoundSink
from memomu.services.session_controller import SessionController


class ManualClock:
    """Clock in whole milliseconds, advanced by hand."""

    def __init__(self, start_ms=1_000_000):
        self.ms = start_ms

    def __call__(self):
        return self.ms / 1000.0

    def advance(self, ms):
        self.ms += ms


class RecordingRenderer(Renderer):
    def __init__(self):
        self.snapshots = []

    def render(self, snapshot):
        self.snapshots.append(snapshot)

    @property
    def phases(self):
        seen = []
        for snapshot in self.snapshots:
            if snapshot.phase and (not seen or seen[-1] != snapshot.phase):
                seen.append(snapshot.phase)
        return seen


class RecordingSink(SoundSink):
    def __init__(self):
        self.sounds = []

    def play(self, sound_id):
        self.sounds.append(sound_id)


class RecordingNavigator(NavigationListener):
    def __init__(self):
        self.events = []

    def on_round_advance(self, session_id, round_number):
        self.events.append(('round_advance', round_number))

    def on_game_complete(self, session_id, final_score):
        self.events.append(('game_complete', final_score))

    def on_quit(self, session_id):
        self.events.append(('quit', session_id))


class SessionHarness:
    """One controller wired to a manual clock and recording collaborators."""

    def __init__(self, mode, seed=7, high_scores=None, frame_ms=10):
        self.clock = ManualClock()
        self.renderer = RecordingRenderer()
        self.sink = RecordingSink()
        self.navigator = RecordingNavigator()
        self.frame_ms = frame_ms
        self.controller = SessionController(
            get_mode_settings(mode),
            session_id='test-session',
            clock=self.clock,
            rng=random.Random(seed),
            renderer=self.renderer,
            assets=AssetProvider(build_asset_catalog(), self.sink, session_id='test-session'),
            navigator=self.navigator,
            high_scores=high_scores
        )

    def frame(self):
        self.clock.advance(self.frame_ms)
        self.controller.tick()

    def run(self, ms):
        for _ in range(int(ms // self.frame_ms)):
            self.frame()

    def run_until(self, predicate, limit_ms=60_000):
        elapsed = 0
        while not predicate() and elapsed < limit_ms:
            self.frame()
            elapsed += self.frame_ms
        return predicate()

    def run_until_input(self, round_number=None, limit_ms=60_000):
        controller = self.controller

        def ready():
            if controller.status != SessionStatus.AWAITING_INPUT:
                return False
            return round_number is None or controller.config.round_number == round_number

        return self.run_until(ready, limit_ms)

    def click(self, tile_index):
        return self.controller.on_tile_clicked(tile_index)

    def click_targets(self):
        return [self.click(pos) for pos in self.controller.config.target_positions]

    def tile_flags(self):
        return [
            (tile.revealed, tile.highlighted, tile.selected, tile.outcome)
            for tile in self.controller.phase_state.tiles
        ]
