"""
WebSocket Event Handlers

Handles WebSocket events for real-time play: joining a session room, tile
clicks, and the SocketIO collaborators that push state, sounds and
navigation events to the clients in that room.
"""

from dataclasses import asdict

from flask import request
from flask_socketio import emit, join_room, leave_room

from ..services.collaborators import NavigationListener, Renderer, SoundSink
from ..services.game_service import get_game_service
from ..utils.game_logger import game_logger


def session_room(session_id: str) -> str:
    return f"session_{session_id}"


class SocketIORenderer(Renderer):
    """Pushes every snapshot to the session room."""

    def __init__(self, socketio, session_id: str):
        self.socketio = socketio
        self.session_id = session_id

    def render(self, snapshot) -> None:
        self.socketio.emit('state_update', {'success': True, 'state': asdict(snapshot)},
                           to=session_room(self.session_id))


class SocketIOSoundSink(SoundSink):
    def __init__(self, socketio, session_id: str):
        self.socketio = socketio
        self.session_id = session_id

    def play(self, sound_id: str) -> None:
        self.socketio.emit('play_sound', {'sound': sound_id}, to=session_room(self.session_id))


class SocketIONavigator(NavigationListener):
    def __init__(self, socketio):
        self.socketio = socketio

    def on_round_advance(self, session_id: str, round_number: int) -> None:
        self.socketio.emit('round_advance', {'session_id': session_id, 'round_number': round_number},
                           to=session_room(session_id))

    def on_game_complete(self, session_id: str, final_score: int) -> None:
        self.socketio.emit('game_complete', {'session_id': session_id, 'final_score': final_score},
                           to=session_room(session_id))

    def on_quit(self, session_id: str) -> None:
        self.socketio.emit('session_quit', {'session_id': session_id}, to=session_room(session_id))


def socketio_collaborators(socketio):
    """Collaborator factory handed to the GameService."""
    navigator = SocketIONavigator(socketio)

    def factory(session_id: str):
        return SocketIORenderer(socketio, session_id), SocketIOSoundSink(socketio, session_id), navigator

    return factory


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        pass

    @socketio.on('join_session')
    def handle_join_session(data):
        """Join a session room and receive its current state."""
        game_service = get_game_service()
        if not game_service:
            emit('error', {'error': 'Game service unavailable'})
            return

        session_id = (data or {}).get('session_id')
        if not session_id:
            emit('error', {'error': 'Session ID is required'})
            return

        state = game_service.get_session_state(session_id)
        if state is None:
            emit('error', {'error': 'Session not found'})
            return

        join_room(session_room(session_id))
        game_logger.log_user_action(request, 'ws_join_session', session_id)
        emit('state_update', {'success': True, 'state': asdict(state)})

    @socketio.on('leave_session')
    def handle_leave_session(data):
        """Leave a session room."""
        session_id = (data or {}).get('session_id')
        if not session_id:
            emit('error', {'error': 'Session ID is required'})
            return

        leave_room(session_room(session_id))
        game_logger.log_user_action(request, 'ws_leave_session', session_id)

    @socketio.on('tile_click')
    def handle_tile_click(data):
        """Click a tile. The result is returned as the event acknowledgement."""
        game_service = get_game_service()
        if not game_service:
            emit('error', {'error': 'Game service unavailable'})
            return {'success': False, 'error': 'Game service unavailable'}

        data = data or {}
        session_id = data.get('session_id')
        tile = data.get('tile')
        if not session_id or not isinstance(tile, int) or isinstance(tile, bool):
            emit('error', {'error': 'Session ID and integer tile are required'})
            return {'success': False, 'error': 'Session ID and integer tile are required'}

        try:
            game_logger.log_user_action(request, 'ws_tile_click', session_id, tile=tile)
            result = game_service.click_tile(session_id, tile)
            if result is None:
                emit('error', {'error': 'Session not found'})
                return {'success': False, 'error': 'Session not found'}
            return {'success': True, 'selection': result['selection']}

        except Exception as e:
            game_logger.log_error(request, e, 'ws_tile_click', session_id)
            emit('error', {'error': str(e)})
            return {'success': False, 'error': str(e)}
