"""
Game Service

Registry of live game sessions. Every session operation, whether it comes
from HTTP, SocketIO or the frame loop, goes through one lock so the engine
only ever sees one logical thread.
"""

import random
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..config.game_settings import build_asset_catalog, get_mode_settings
from ..models.game import SelectionOutcome, SessionSnapshot
from ..utils.game_logger import game_logger
from .collaborators import AssetProvider, NavigationListener, Renderer, SoundSink
from .session_controller import SessionController


class GameService:
    """
    Core game service managing multiple game sessions.

    This class handles:
    - Session creation with unique session IDs
    - Start, click, quit and delete on a session
    - Ticking every session once per frame
    - Expiring sessions nobody has touched for session_timeout_seconds
    """

    def __init__(self, high_scores=None, clock: Callable[[], float] = time.monotonic,
                 sound_on: bool = True, collaborator_factory: Optional[Callable] = None,
                 session_timeout_seconds: Optional[float] = None):
        self.sessions: Dict[str, SessionController] = {}
        self.last_activity: Dict[str, float] = {}
        self.session_timeout_seconds = session_timeout_seconds
        self.high_scores = high_scores
        self.clock = clock
        self.sound_on = sound_on
        self.collaborator_factory = collaborator_factory
        self.asset_catalog = build_asset_catalog()
        self.lock = threading.RLock()

    def create_session(self, mode: str, seed: Optional[int] = None) -> str:
        """
        Creates an idle session for a mode.

        Args:
            mode: Mode identifier, e.g. "musicMemory"
            seed: Optional random seed for reproducible rounds

        Returns:
            str: Unique session ID

        Raises:
            ValueError: If the mode is unknown
        """
        settings = get_mode_settings(mode)
        session_id = str(uuid.uuid4())

        renderer, sink, navigator = Renderer(), SoundSink(), NavigationListener()
        if self.collaborator_factory is not None:
            renderer, sink, navigator = self.collaborator_factory(session_id)

        controller = SessionController(
            settings,
            session_id=session_id,
            clock=self.clock,
            rng=random.Random(seed),
            renderer=renderer,
            assets=AssetProvider(self.asset_catalog, sink, self.sound_on, session_id),
            navigator=navigator,
            high_scores=self.high_scores
        )
        with self.lock:
            self.sessions[session_id] = controller
            self._touch(session_id)
        return session_id

    def _touch(self, session_id: str) -> None:
        self.last_activity[session_id] = self.clock()

    def get_session(self, session_id: str) -> Optional[SessionController]:
        with self.lock:
            return self.sessions.get(session_id)

    def get_session_state(self, session_id: str) -> Optional[SessionSnapshot]:
        with self.lock:
            controller = self.sessions.get(session_id)
            if controller is None:
                return None
            self._touch(session_id)
            return controller.snapshot()

    def start_session(self, session_id: str, avatar: Optional[int] = None) -> Optional[SessionSnapshot]:
        with self.lock:
            controller = self.sessions.get(session_id)
            if controller is None:
                return None
            self._touch(session_id)
            return controller.start(avatar)

    def click_tile(self, session_id: str, tile_index: int) -> Optional[Dict]:
        """
        Applies a tile click.

        Returns:
            dict: {'selection': outcome value or None, 'state': snapshot}, or
            None if the session does not exist
        """
        with self.lock:
            controller = self.sessions.get(session_id)
            if controller is None:
                return None
            self._touch(session_id)
            selection: Optional[SelectionOutcome] = controller.on_tile_clicked(tile_index)
            return {
                'selection': selection.value if selection else None,
                'state': controller.snapshot()
            }

    def quit_session(self, session_id: str) -> Optional[SessionSnapshot]:
        with self.lock:
            controller = self.sessions.get(session_id)
            if controller is None:
                return None
            self._touch(session_id)
            return controller.quit()

    def delete_session(self, session_id: str) -> bool:
        """
        Removes a session from memory.

        Returns:
            bool: True if the session was deleted, False if not found
        """
        with self.lock:
            controller = self.sessions.pop(session_id, None)
            self.last_activity.pop(session_id, None)
        if controller is None:
            return False
        controller.scheduler.invalidate()
        return True

    def tick_all(self) -> int:
        """Advance every session by one frame. Returns the number ticked."""
        with self.lock:
            controllers: List[SessionController] = list(self.sessions.values())
            for controller in controllers:
                try:
                    controller.tick()
                except Exception as e:
                    game_logger.log_error(None, e, 'tick', controller.session_id)
            return len(controllers)

    def cleanup_expired_sessions(self) -> Dict[str, Any]:
        """
        Remove sessions with no client activity for session_timeout_seconds.

        Frame-loop ticks do not count as activity, so finished and abandoned
        sessions eventually expire.

        Returns:
            dict: {'cleaned_count': int, 'session_ids': [...]}
        """
        if self.session_timeout_seconds is None:
            return {'cleaned_count': 0, 'session_ids': []}

        with self.lock:
            cutoff = self.clock() - self.session_timeout_seconds
            expired = [sid for sid in self.sessions if self.last_activity.get(sid, cutoff) <= cutoff]
            for session_id in expired:
                controller = self.sessions.pop(session_id)
                self.last_activity.pop(session_id, None)
                controller.scheduler.invalidate()
                game_logger.log_game_event(session_id, 'session_expired', mode=controller.mode.value,
                                           status=controller.status.value, score=controller.totals.score)

        return {'cleaned_count': len(expired), 'session_ids': expired}

    def active_session_count(self) -> int:
        with self.lock:
            return len(self.sessions)


# Global service instance
_game_service = None


def get_game_service() -> Optional[GameService]:
    """Get the global game service instance."""
    return _game_service


def initialize_game_service(high_scores=None, sound_on: bool = True,
                            collaborator_factory: Optional[Callable] = None,
                            clock: Callable[[], float] = time.monotonic,
                            session_timeout_seconds: Optional[float] = None) -> GameService:
    """Initialize the global game service instance."""
    global _game_service
    _game_service = GameService(high_scores=high_scores, clock=clock, sound_on=sound_on,
                                collaborator_factory=collaborator_factory,
                                session_timeout_seconds=session_timeout_seconds)
    return _game_service
