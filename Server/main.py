"""
MEMOMU Game Server - Main Entry Point

This is the main entry point for the MEMOMU game server.
It initializes all services, starts the frame loop and runs the
Flask-SocketIO application.
"""

import threading
import time
from memomu import create_app
from memomu.config import Config
from memomu.services.game_service import initialize_game_service, get_game_service
from memomu.services.high_score_service import initialize_high_score_board
from memomu.utils.game_logger import game_logger
from memomu.websocket.handlers import socketio_collaborators


def frame_loop_worker(interval_ms: int):
    """
    Background worker that drives every session's timers.

    Calls GameService.tick_all() once per frame so scheduled phases,
    countdowns and round transitions advance without client traffic.
    """
    print(f"Frame loop started - ticking every {interval_ms} ms")
    interval = interval_ms / 1000.0
    while True:
        started = time.monotonic()
        try:
            game_service = get_game_service()
            if game_service:
                game_service.tick_all()
        except Exception as e:
            game_logger.logger.error(f"Error in frame loop worker: {e}")

        time.sleep(max(0.0, interval - (time.monotonic() - started)))


def session_cleanup_worker(interval_seconds: int):
    """
    Background worker that periodically removes expired sessions.
    Runs every interval_seconds and drops sessions with no client activity
    for SESSION_TIMEOUT_SECONDS.
    """
    print("Session cleanup worker started")
    while True:
        try:
            game_service = get_game_service()
            if game_service:
                cleanup_result = game_service.cleanup_expired_sessions()
                if cleanup_result["cleaned_count"] > 0:
                    print(f"Session cleanup removed {cleanup_result['cleaned_count']} expired sessions")
                    game_logger.logger.info(f"Session cleanup: Removed {cleanup_result['cleaned_count']} expired sessions")
        except Exception as e:
            game_logger.logger.error(f"Error in session cleanup worker: {e}")

        time.sleep(interval_seconds)


def main():
    """Main function to initialize services and start the server."""
    try:
        print("Initializing services...")

        # High scores: MongoDB when configured, JSON file otherwise
        high_scores = initialize_high_score_board(Config.MONGO_URI, Config.MONGO_DB, Config.HIGHSCORE_FILE)
        print(f"✓ High score board initialized ({type(high_scores.repository).__name__})")

        # Create Flask app
        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application created successfully")

        # Game service pushes state, sounds and navigation over SocketIO
        game_service = initialize_game_service(
            high_scores=high_scores,
            sound_on=Config.SOUND_ON,
            collaborator_factory=socketio_collaborators(socketio),
            session_timeout_seconds=Config.SESSION_TIMEOUT_SECONDS
        )
        if game_service:
            print("✓ Game service initialized successfully")
        else:
            print("✗ Failed to initialize game service")

        frame_thread = threading.Thread(target=frame_loop_worker, args=(Config.FRAME_INTERVAL_MS,), daemon=True)
        frame_thread.start()
        print("✓ Frame loop worker started")

        cleanup_thread = threading.Thread(
            target=session_cleanup_worker, args=(Config.SESSION_CLEANUP_INTERVAL_SECONDS,), daemon=True
        )
        cleanup_thread.start()
        print(f"✓ Session cleanup worker started - checking every {Config.SESSION_CLEANUP_INTERVAL_SECONDS} seconds")

        game_logger.logger.info("MEMOMU Server Starting - frame loop and structured logging enabled")

        print(f"\nStarting MEMOMU Game Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print(f"Sound: {'on' if Config.SOUND_ON else 'off'}")
        print("=" * 50)

        # Start the server
        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG,
                     use_reloader=False, allow_unsafe_werkzeug=True)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_logger.logger.info("MEMOMU Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise


if __name__ == '__main__':
    main()
