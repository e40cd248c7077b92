"""
Game Controller

Handles all game-related HTTP endpoints.
"""

from dataclasses import asdict

from flask import Blueprint, request, jsonify

from ..config.game_settings import get_mode_catalog
from ..models.game import GameMode
from ..services.game_service import get_game_service
from ..services.high_score_service import get_high_score_board
from ..utils.errors import InvalidConfiguration
from ..utils.game_logger import game_logger

game_bp = Blueprint('game', __name__)

VALID_MODES = [mode.value for mode in GameMode]


def _service_unavailable():
    return jsonify({
        'success': False,
        'error': 'Game service unavailable'
    }), 500


def _session_not_found(action, session_id):
    error_response = {
        'success': False,
        'error': 'Session not found'
    }
    game_logger.log_server_response(request, action, False, error_response, session_id)
    return jsonify(error_response), 404


def _bad_request(action, message, session_id=None):
    error_response = {
        'success': False,
        'error': message
    }
    game_logger.log_server_response(request, action, False, error_response, session_id)
    return jsonify(error_response), 400


def _server_error(action, error, session_id=None):
    game_logger.log_error(request, error, action, session_id)
    error_response = {
        'success': False,
        'error': str(error)
    }
    game_logger.log_server_response(request, action, False, error_response, session_id)
    return jsonify(error_response), 500


@game_bp.route('/modes', methods=['GET'])
def list_modes():
    """List the playable modes and their difficulty tables."""
    try:
        game_logger.log_user_action(request, 'list_modes')
        response_data = {
            'success': True,
            'modes': get_mode_catalog()
        }
        game_logger.log_server_response(request, 'list_modes', True, {'success': True}, modes=len(VALID_MODES))
        return jsonify(response_data)

    except Exception as e:
        return _server_error('list_modes', e)


@game_bp.route('/sessions', methods=['POST'])
def create_session():
    """Create an idle game session for a mode."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        data = request.get_json(silent=True) or {}
        mode = data.get('mode')

        game_logger.log_user_action(request, 'create_session', extra_data={'mode': mode})

        if mode not in VALID_MODES:
            return _bad_request('create_session', f'Invalid game mode. Must be one of {VALID_MODES}')

        seed = data.get('seed')
        if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool)):
            return _bad_request('create_session', 'Seed must be an integer')

        session_id = game_service.create_session(mode, seed)
        state = game_service.get_session_state(session_id)

        response_data = {
            'success': True,
            'session_id': session_id,
            'state': asdict(state)
        }
        game_logger.log_server_response(request, 'create_session', True, response_data, session_id, mode=mode)
        return jsonify(response_data)

    except Exception as e:
        return _server_error('create_session', e)


@game_bp.route('/sessions/<session_id>/start', methods=['POST'])
def start_session(session_id):
    """Start or restart a session at round 1."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        data = request.get_json(silent=True) or {}
        avatar = data.get('avatar')
        if avatar is not None and (not isinstance(avatar, int) or isinstance(avatar, bool)):
            return _bad_request('start_session', 'Avatar must be an integer index', session_id)

        game_logger.log_user_action(request, 'start_session', session_id, avatar=avatar)

        state = game_service.start_session(session_id, avatar)
        if state is None:
            return _session_not_found('start_session', session_id)

        response_data = {
            'success': True,
            'state': asdict(state)
        }
        game_logger.log_server_response(
            request, 'start_session', True, response_data, session_id,
            round=state.round_number, status=state.status
        )
        return jsonify(response_data)

    except InvalidConfiguration as e:
        game_logger.log_error(request, e, 'start_session', session_id)
        return _bad_request('start_session', str(e), session_id)
    except Exception as e:
        return _server_error('start_session', e, session_id)


@game_bp.route('/sessions/<session_id>/state', methods=['GET'])
def get_state(session_id):
    """Get current session state."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'get_state', session_id)

        state = game_service.get_session_state(session_id)
        if state is None:
            return _session_not_found('get_state', session_id)

        response_data = {
            'success': True,
            'state': asdict(state)
        }
        game_logger.log_server_response(
            request, 'get_state', True, response_data, session_id,
            round=state.round_number, game_complete=state.game_complete
        )
        return jsonify(response_data)

    except Exception as e:
        return _server_error('get_state', e, session_id)


@game_bp.route('/sessions/<session_id>/click', methods=['POST'])
def click_tile(session_id):
    """Click a tile of the current round."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        data = request.get_json(silent=True)
        if not data or 'tile' not in data:
            return _bad_request('tile_click', 'Tile index is required', session_id)

        tile = data['tile']
        if not isinstance(tile, int) or isinstance(tile, bool):
            return _bad_request('tile_click', 'Tile index must be an integer', session_id)

        game_logger.log_user_action(request, 'tile_click', session_id, tile=tile)

        result = game_service.click_tile(session_id, tile)
        if result is None:
            return _session_not_found('tile_click', session_id)

        state = result['state']
        response_data = {
            'success': True,
            'selection': result['selection'],
            'accepted': result['selection'] is not None,
            'state': asdict(state)
        }
        game_logger.log_server_response(
            request, 'tile_click', True, response_data, session_id,
            tile=tile, selection=result['selection'], status=state.status
        )
        return jsonify(response_data)

    except Exception as e:
        return _server_error('tile_click', e, session_id)


@game_bp.route('/sessions/<session_id>/quit', methods=['POST'])
def quit_session(session_id):
    """Abandon a session and return it to idle."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'quit_session', session_id)

        state = game_service.quit_session(session_id)
        if state is None:
            return _session_not_found('quit_session', session_id)

        response_data = {
            'success': True,
            'state': asdict(state)
        }
        game_logger.log_server_response(request, 'quit_session', True, response_data, session_id)
        return jsonify(response_data)

    except Exception as e:
        return _server_error('quit_session', e, session_id)


@game_bp.route('/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    """Delete a session."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'delete_session', session_id)

        success = game_service.delete_session(session_id)
        response_data = {
            'success': success
        }
        game_logger.log_server_response(request, 'delete_session', success, response_data, session_id)

        if not success:
            return jsonify({'success': False, 'error': 'Session not found'}), 404

        game_logger.log_game_event(session_id, 'session_deleted', request.remote_addr)
        return jsonify(response_data)

    except Exception as e:
        return _server_error('delete_session', e, session_id)


@game_bp.route('/highscores/<mode>', methods=['GET'])
def get_high_scores(mode):
    """Top-10 list of a mode."""
    try:
        game_logger.log_user_action(request, 'get_high_scores', mode=mode)

        if mode not in VALID_MODES:
            return _bad_request('get_high_scores', f'Invalid game mode. Must be one of {VALID_MODES}')

        board = get_high_score_board()
        entries = board.get_high_scores(mode) if board else []
        response_data = {
            'success': True,
            'mode': mode,
            'high_scores': [entry.to_dict() for entry in entries]
        }
        game_logger.log_server_response(request, 'get_high_scores', True, response_data, entries=len(entries))
        return jsonify(response_data)

    except Exception as e:
        return _server_error('get_high_scores', e)


@game_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    try:
        game_service = get_game_service()
        board = get_high_score_board()

        game_logger.log_user_action(request, 'health_check')

        log_stats = game_logger.get_log_stats()

        response_data = {
            'status': 'healthy',
            'active_sessions': game_service.active_session_count() if game_service else 0,
            'log_stats': log_stats,
            'high_scores_available': board is not None,
            'high_score_backend': type(board.repository).__name__ if board and board.repository else None
        }
        game_logger.log_server_response(request, 'health_check', True, response_data)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'health_check')
        error_response = {
            'status': 'error',
            'error': str(e)
        }
        game_logger.log_server_response(request, 'health_check', False, error_response)
        return jsonify(error_response), 500
