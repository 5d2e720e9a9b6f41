import json
import os
import shutil
import unittest
from pathlib import Path

from story_admin import config


class TestConfigFile(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path("/tmp/test_story_admin_config")
        self.config_path = self.test_dir / ".config/story-admin/config.json"

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_load_config_creates_defaults(self):
        loaded = config.load_config(str(self.config_path))
        self.assertTrue(os.path.exists(self.config_path))
        self.assertEqual(loaded, config.DEFAULT_CONFIG)

    def test_load_config_merges_user_values(self):
        os.makedirs(self.config_path.parent, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump({"page_size": 25, "theme": "nord"}, f)

        loaded = config.load_config(str(self.config_path))
        self.assertEqual(loaded["page_size"], 25)
        self.assertEqual(loaded["theme"], "nord")
        self.assertEqual(loaded["api_base_url"], config.DEFAULT_API_BASE_URL)

    def test_save_config(self):
        config.save_config({"theme": "textual-light"}, str(self.config_path))
        with open(self.config_path) as f:
            self.assertEqual(json.load(f), {"theme": "textual-light"})


class TestResolveSettings(unittest.TestCase):
    def test_environment_overrides(self):
        settings = config.resolve_settings(
            dict(config.DEFAULT_CONFIG),
            environ={
                "STORY_ADMIN_API_BASE_URL": "http://localhost:4000/api/v1",
                "UNSPLASH_ACCESS_KEY": "key",
                "STORY_ADMIN_APP_NAME": "moderation",
            },
        )
        self.assertEqual(settings["api_base_url"], "http://localhost:4000/api/v1/")
        self.assertEqual(settings["unsplash_access_key"], "key")
        self.assertEqual(settings["app_name"], "moderation")

    def test_defaults_without_environment(self):
        settings = config.resolve_settings(dict(config.DEFAULT_CONFIG), environ={})
        self.assertEqual(settings["api_base_url"], config.DEFAULT_API_BASE_URL)
        self.assertEqual(settings["page_size"], config.DEFAULT_PAGE_SIZE)

    def test_invalid_page_size_falls_back(self):
        settings = config.resolve_settings({"page_size": "lots"}, environ={})
        self.assertEqual(settings["page_size"], config.DEFAULT_PAGE_SIZE)
        settings = config.resolve_settings({"page_size": 0}, environ={})
        self.assertEqual(settings["page_size"], 1)


if __name__ == "__main__":
    unittest.main()
