"""
Asset lookups degrade quietly when an id is unknown or sound is off, both
for direct calls and for tile images in session snapshots.
"""

import random
import unittest
from unittest.mock import patch

from memomu.config.game_settings import build_asset_catalog, get_mode_settings
from memomu.models.game import GameMode
from memomu.services.collaborators import AssetProvider
from memomu.services.session_controller import SessionController
from tests.support import RecordingSink


class TestAssetProvider(unittest.TestCase):

    def setUp(self):
        self.sink = RecordingSink()
        self.assets = AssetProvider(build_asset_catalog(), self.sink, session_id="s1")

    def test_known_sound_reaches_the_sink(self):
        self.assertTrue(self.assets.play_sound("note3"))
        self.assertEqual(self.sink.sounds, ["note3"])

    def test_unknown_sound_is_logged_and_skipped(self):
        with patch("memomu.services.collaborators.game_logger") as logger:
            self.assertFalse(self.assets.play_sound("trumpet"))
        logger.log_error.assert_called_once()
        self.assertEqual(self.sink.sounds, [])

    def test_sound_off(self):
        assets = AssetProvider(build_asset_catalog(), self.sink, sound_on=False)
        self.assertFalse(assets.play_sound("yupi"))
        self.assertEqual(self.sink.sounds, [])

    def test_images(self):
        self.assertEqual(self.assets.get_image("monad"), "monad")
        with patch("memomu.services.collaborators.game_logger"):
            self.assertIsNone(self.assets.get_image("avatar99"))


class TestSnapshotImages(unittest.TestCase):

    def test_revealed_tiles_resolve_through_the_catalog(self):
        catalog = build_asset_catalog()
        catalog['images'] = [image for image in catalog['images'] if image != "monad"]
        controller = SessionController(
            get_mode_settings(GameMode.MONLUCK), session_id="s1", rng=random.Random(4),
            assets=AssetProvider(catalog, RecordingSink(), session_id="s1")
        )
        controller.start()
        target = controller.config.target_positions[0]
        decoy = controller.config.decoy_positions[0]

        with patch("memomu.services.collaborators.game_logger") as logger:
            controller.on_tile_clicked(target)
            controller.on_tile_clicked(decoy)
            tiles = controller.snapshot().tiles

        self.assertTrue(tiles[target]["revealed"])
        self.assertIsNone(tiles[target]["content"])
        self.assertEqual(tiles[decoy]["content"], controller.config.content_at(decoy))
        self.assertTrue(logger.log_error.called)


if __name__ == "__main__":
    unittest.main()
