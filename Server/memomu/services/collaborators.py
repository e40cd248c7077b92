"""
Session Collaborators

Small interfaces the session controller talks to: a renderer for
snapshots, an asset provider for sounds and images, and a navigation
listener for round and game transitions. The defaults do nothing, so a
session can run headless.
"""

from typing import Dict, Iterable, Optional

from ..models.game import SessionSnapshot
from ..utils.errors import MissingAsset
from ..utils.game_logger import game_logger


class Renderer:
    """Receives a snapshot after every session mutation."""

    def render(self, snapshot: SessionSnapshot) -> None:
        pass


class NavigationListener:
    def on_round_advance(self, session_id: str, round_number: int) -> None:
        pass

    def on_game_complete(self, session_id: str, final_score: int) -> None:
        pass

    def on_quit(self, session_id: str) -> None:
        pass


class SoundSink:
    """Plays a known sound id. Subclasses push it to a client."""

    def play(self, sound_id: str) -> None:
        pass


class AssetProvider:
    """
    Resolves sound and image ids against the asset catalog.

    Unknown ids are logged and degrade to silence or a missing image; they
    never interrupt a round.
    """

    def __init__(self, catalog: Optional[Dict[str, Iterable[str]]] = None,
                 sink: Optional[SoundSink] = None, sound_on: bool = True,
                 session_id: Optional[str] = None):
        catalog = catalog or {}
        self.sounds = set(catalog.get('sounds', ()))
        self.images = set(catalog.get('images', ()))
        self.sink = sink or SoundSink()
        self.sound_on = sound_on
        self.session_id = session_id

    def _require(self, kind: str, known: set, asset_id: str) -> str:
        if asset_id not in known:
            raise MissingAsset(f"Unknown {kind} '{asset_id}'")
        return asset_id

    def play_sound(self, sound_id: Optional[str]) -> bool:
        """Play a sound if it exists and sound is on. Returns True if played."""
        if not sound_id:
            return False
        try:
            self._require('sound', self.sounds, sound_id)
        except MissingAsset as e:
            game_logger.log_error(None, e, 'play_sound', self.session_id)
            return False
        if not self.sound_on:
            return False
        self.sink.play(sound_id)
        return True

    def get_image(self, image_id: str) -> Optional[str]:
        try:
            return self._require('image', self.images, image_id)
        except MissingAsset as e:
            game_logger.log_error(None, e, 'get_image', self.session_id)
            return None
