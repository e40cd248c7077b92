"""
HTTP and SocketIO surface: sessions, clicks, high scores and health.
"""

import os
import tempfile
import unittest

from memomu import create_app
from memomu.config import TestingConfig
from memomu.services import game_service as game_service_module
from memomu.services import high_score_service
from memomu.services.game_service import initialize_game_service
from memomu.services.high_score_service import initialize_high_score_board
from tests.support import ManualClock


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.board = initialize_high_score_board(json_path=os.path.join(self.tmp.name, "scores.json"))
        self.clock = ManualClock()
        self.service = initialize_game_service(high_scores=self.board, clock=self.clock)
        self.app, self.socketio = create_app(TestingConfig)
        self.client = self.app.test_client()

    def tearDown(self):
        self.tmp.cleanup()
        game_service_module._game_service = None
        high_score_service._high_score_board = None

    def create_session(self, mode, seed=21):
        response = self.client.post("/api/sessions", json={"mode": mode, "seed": seed})
        self.assertEqual(response.status_code, 200)
        return response.get_json()["session_id"]

    def advance(self, ms, frame_ms=10):
        for _ in range(ms // frame_ms):
            self.clock.advance(frame_ms)
            self.service.tick_all()


class TestSessionEndpoints(ApiTestCase):

    def test_list_modes(self):
        data = self.client.get("/api/modes").get_json()
        self.assertTrue(data["success"])
        self.assertEqual({m["mode"] for m in data["modes"]},
                         {"musicMemory", "memoryClassic", "memoryMemomu", "monluck", "battle"})

    def test_invalid_mode(self):
        response = self.client.post("/api/sessions", json={"mode": "tetris"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()["success"])

    def test_new_session_is_idle(self):
        session_id = self.create_session("musicMemory")
        state = self.client.get(f"/api/sessions/{session_id}/state").get_json()["state"]
        self.assertEqual(state["status"], "idle")
        self.assertEqual(state["tiles"], [])

    def test_monluck_game_through_the_api(self):
        session_id = self.create_session("monluck")
        state = self.client.post(f"/api/sessions/{session_id}/start").get_json()["state"]
        self.assertEqual(state["status"], "awaiting-input")
        self.assertTrue(all(tile["content"] is None for tile in state["tiles"]))

        targets = self.service.get_session(session_id).config.target_positions
        for pos in targets:
            data = self.client.post(f"/api/sessions/{session_id}/click", json={"tile": pos}).get_json()
            self.assertEqual(data["selection"], "accepted")
            self.assertEqual(data["state"]["tiles"][pos]["content"], "monad")
        self.assertEqual(data["state"]["status"], "round-resolved")

        self.advance(1200)
        state = self.client.get(f"/api/sessions/{session_id}/state").get_json()["state"]
        self.assertTrue(state["game_complete"])
        self.assertEqual(state["score"], 5)

        scores = self.client.get("/api/highscores/monluck").get_json()["high_scores"]
        self.assertEqual([entry["score"] for entry in scores], [5])

    def test_click_during_playback_is_not_accepted(self):
        session_id = self.create_session("musicMemory")
        self.client.post(f"/api/sessions/{session_id}/start")
        data = self.client.post(f"/api/sessions/{session_id}/click", json={"tile": 0}).get_json()
        self.assertIsNone(data["selection"])
        self.assertFalse(data["accepted"])

    def test_tile_must_be_an_integer(self):
        session_id = self.create_session("monluck")
        self.client.post(f"/api/sessions/{session_id}/start")
        self.assertEqual(self.client.post(f"/api/sessions/{session_id}/click", json={}).status_code, 400)
        self.assertEqual(self.client.post(f"/api/sessions/{session_id}/click", json={"tile": "3"}).status_code, 400)

    def test_invalid_avatar(self):
        session_id = self.create_session("battle")
        response = self.client.post(f"/api/sessions/{session_id}/start", json={"avatar": 99})
        self.assertEqual(response.status_code, 400)

    def test_quit_and_delete(self):
        session_id = self.create_session("memoryClassic")
        self.client.post(f"/api/sessions/{session_id}/start")
        state = self.client.post(f"/api/sessions/{session_id}/quit").get_json()["state"]
        self.assertEqual(state["status"], "idle")

        self.assertEqual(self.client.delete(f"/api/sessions/{session_id}").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/sessions/{session_id}").status_code, 404)
        self.assertEqual(self.client.get(f"/api/sessions/{session_id}/state").status_code, 404)

    def test_high_scores_for_unknown_mode(self):
        self.assertEqual(self.client.get("/api/highscores/tetris").status_code, 400)

    def test_health(self):
        self.create_session("battle")
        data = self.client.get("/api/health").get_json()
        self.assertEqual(data["status"], "healthy")
        self.assertEqual(data["active_sessions"], 1)
        self.assertEqual(data["high_score_backend"], "JsonHighScoreRepository")


class TestWebSocket(ApiTestCase):

    def test_join_and_click(self):
        session_id = self.create_session("monluck")
        self.client.post(f"/api/sessions/{session_id}/start")
        ws = self.socketio.test_client(self.app)

        ws.emit("join_session", {"session_id": session_id})
        received = ws.get_received()
        self.assertEqual(received[-1]["name"], "state_update")

        target = self.service.get_session(session_id).config.target_positions[0]
        ack = ws.emit("tile_click", {"session_id": session_id, "tile": target}, callback=True)
        self.assertEqual(ack, {"success": True, "selection": "accepted"})

        ack = ws.emit("tile_click", {"session_id": "missing", "tile": 0}, callback=True)
        self.assertFalse(ack["success"])
        ws.disconnect()


if __name__ == "__main__":
    unittest.main()
