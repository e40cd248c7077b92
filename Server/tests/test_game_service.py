"""
Session registry: lifecycle through the service and expiry of sessions
that no client has touched.
"""

import unittest
from unittest.mock import patch

from memomu.services.game_service import GameService
from tests.support import ManualClock


class TestSessionExpiry(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock()
        self.service = GameService(clock=self.clock, session_timeout_seconds=600)

    def test_only_untouched_sessions_expire(self):
        stale = self.service.create_session("monluck", seed=1)
        active = self.service.create_session("monluck", seed=2)
        self.service.start_session(stale)
        self.service.start_session(active)

        self.clock.advance(300_000)
        self.service.click_tile(active, 0)
        self.clock.advance(400_000)
        # Frame ticks are not client activity
        self.service.tick_all()

        with patch("memomu.services.game_service.game_logger") as logger:
            result = self.service.cleanup_expired_sessions()

        self.assertEqual(result, {'cleaned_count': 1, 'session_ids': [stale]})
        self.assertIsNone(self.service.get_session(stale))
        self.assertIsNotNone(self.service.get_session(active))
        self.assertNotIn(stale, self.service.last_activity)
        logger.log_game_event.assert_called_once()

        self.clock.advance(600_000)
        with patch("memomu.services.game_service.game_logger"):
            self.assertEqual(self.service.cleanup_expired_sessions()['cleaned_count'], 1)
        self.assertEqual(self.service.active_session_count(), 0)

    def test_expired_session_callbacks_are_dropped(self):
        session_id = self.service.create_session("musicMemory", seed=3)
        controller = self.service.get_session(session_id)
        self.service.start_session(session_id)
        generation = controller.scheduler.generation

        self.clock.advance(601_000)
        with patch("memomu.services.game_service.game_logger"):
            self.service.cleanup_expired_sessions()

        self.assertNotEqual(controller.scheduler.generation, generation)
        self.assertEqual(self.service.tick_all(), 0)

    def test_no_timeout_keeps_everything(self):
        service = GameService(clock=self.clock)
        service.create_session("battle")
        self.clock.advance(10_000_000)
        self.assertEqual(service.cleanup_expired_sessions(), {'cleaned_count': 0, 'session_ids': []})
        self.assertEqual(service.active_session_count(), 1)

    def test_delete_forgets_activity(self):
        session_id = self.service.create_session("battle")
        self.assertTrue(self.service.delete_session(session_id))
        self.assertNotIn(session_id, self.service.last_activity)
        self.assertFalse(self.service.delete_session(session_id))


if __name__ == "__main__":
    unittest.main()
