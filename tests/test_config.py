import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from stu.config import Config, config_base_dir, default_download_dir


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.base = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write_config(self, payload) -> None:
        (self.base / "config.json").write_text(json.dumps(payload))

    def test_missing_file_uses_defaults(self) -> None:
        config = Config.load(self.base)
        self.assertEqual(config.download_dir, default_download_dir())
        self.assertIsNone(config.default_region)
        self.assertEqual(config.error_log_path(), self.base / "error.log")
        self.assertEqual(config.debug_log_path(), self.base / "debug.log")

    def test_values_are_read(self) -> None:
        self.write_config({"download_dir": str(self.base / "dl"), "default_region": " eu-west-1 "})
        config = Config.load(self.base)
        self.assertEqual(config.download_dir, self.base / "dl")
        self.assertEqual(config.default_region, "eu-west-1")
        self.assertEqual(config.download_file_path("a.txt"), self.base / "dl" / "a.txt")

    def test_invalid_json_falls_back(self) -> None:
        (self.base / "config.json").write_text("{not json")
        with self.assertLogs("stu.config", level="WARNING"):
            config = Config.load(self.base)
        self.assertEqual(config.download_dir, default_download_dir())

    def test_non_object_and_bad_types_fall_back(self) -> None:
        self.write_config(["download_dir"])
        self.assertEqual(Config.load(self.base).download_dir, default_download_dir())
        self.write_config({"download_dir": 3, "default_region": ""})
        config = Config.load(self.base)
        self.assertEqual(config.download_dir, default_download_dir())
        self.assertIsNone(config.default_region)

    def test_config_base_dir_honours_xdg(self) -> None:
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(self.base)}):
            self.assertEqual(config_base_dir(), self.base / "stu")
        with patch.dict(os.environ, {}, clear=True), patch(
            "stu.config.Path.home", return_value=self.base
        ):
            self.assertEqual(config_base_dir(), self.base / ".config" / "stu")


if __name__ == "__main__":
    unittest.main()
