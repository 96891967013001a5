"""Tests for the configuration module."""

import os
import tempfile
import unittest
from unittest.mock import patch

import yaml

from yak_client.config import DEFAULT_API_BASE, DEFAULT_SIGNING_KEY, Config


class TestConfig(unittest.TestCase):
    """Test cases for the Config class."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "config.yaml")
        self.env_path = os.path.join(self.temp_dir.name, ".env")

        self.sample_config = {
            "latitude": 40.7,
            "longitude": -74.0,
            "log_level": "DEBUG",
            "api": {"request_timeout_sec": 5},
            "geocoder": {"url": "http://geocoder.test/reverse", "timeout_sec": 3},
            "feed": {"geocode_timeout_sec": 2, "comment_timeout_sec": 4},
            "monitoring": {"enable_prometheus": True, "prometheus_port": 9100},
        }

        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.sample_config, f)

        with open(self.env_path, "w", encoding="utf-8") as f:
            f.write("YAK_SIGNING_KEY=test_key\n")
            f.write("YAK_USER_ID=0123456789ABCDEF0123456789ABCDEF\n")

        # load_dotenv writes into os.environ; keep it isolated per test
        self.env_patch = patch.dict(os.environ, {}, clear=True)
        self.env_patch.start()

    def tearDown(self):
        """Clean up test environment."""
        self.env_patch.stop()
        self.temp_dir.cleanup()

    def test_load_from_files(self):
        """Test loading configuration from files."""
        config = Config.from_files(self.config_path, self.env_path)

        self.assertEqual(config.api.signing_key, "test_key")
        self.assertEqual(config.user_id, "0123456789ABCDEF0123456789ABCDEF")

        self.assertEqual(config.latitude, 40.7)
        self.assertEqual(config.longitude, -74.0)
        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.api.api_base, DEFAULT_API_BASE)
        self.assertEqual(config.api.request_timeout_sec, 5)
        self.assertEqual(config.geocoder.url, "http://geocoder.test/reverse")
        self.assertEqual(config.geocoder.timeout_sec, 3)
        self.assertEqual(config.feed.geocode_timeout_sec, 2)
        self.assertEqual(config.feed.comment_timeout_sec, 4)
        self.assertTrue(config.monitoring.enable_prometheus)
        self.assertEqual(config.monitoring.prometheus_port, 9100)

    def test_environment_overrides_yaml(self):
        """Test that environment variables win over the YAML file."""
        os.environ["YAK_LATITUDE"] = "51.5"
        os.environ["YAK_API_BASE"] = "http://api.test/api/"

        config = Config.from_files(self.config_path, self.env_path)

        self.assertEqual(config.latitude, 51.5)
        self.assertEqual(config.longitude, -74.0)
        self.assertEqual(config.api.api_base, "http://api.test/api/")

    def test_missing_yaml_uses_defaults(self):
        """Test that a missing YAML file falls back to defaults."""
        config = Config.from_files(os.path.join(self.temp_dir.name, "missing.yaml"), self.env_path)

        self.assertIsNone(config.latitude)
        self.assertEqual(config.feed.geocode_timeout_sec, 10.0)

    def test_log_file_from_yaml_and_environment(self):
        """Test that the log file path defaults, reads from YAML and yields to YAK_LOG_FILE."""
        self.assertEqual(Config().log_file, "logs/yak_client.log")

        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump({**self.sample_config, "log_file": "var/yak.log"}, f)
        config = Config.from_files(self.config_path, self.env_path)
        self.assertEqual(config.log_file, "var/yak.log")

        os.environ["YAK_LOG_FILE"] = "/tmp/yak/env.log"
        config = Config.from_files(self.config_path, self.env_path)
        self.assertEqual(config.log_file, "/tmp/yak/env.log")

    def test_default_signing_key(self):
        """Test that the built-in client key is used when none is configured."""
        empty_env = os.path.join(self.temp_dir.name, "empty.env")
        open(empty_env, "w").close()

        config = Config.from_files(self.config_path, empty_env)

        self.assertEqual(config.api.signing_key, DEFAULT_SIGNING_KEY)

    def test_endpoint_url(self):
        """Test that endpoint URLs join cleanly with or without a trailing slash."""
        config = Config()
        self.assertEqual(config.api.endpoint_url("getMessages"), "https://yikyakapp.com/api/getMessages")
        config.api.api_base = "http://api.test/api"
        self.assertEqual(config.api.endpoint_url("getMessages"), "http://api.test/api/getMessages")

    def test_validate_valid_config(self):
        """Test validation with valid configuration."""
        config = Config.from_files(self.config_path, self.env_path)
        errors = config.validate()
        self.assertEqual(len(errors), 0)

    def test_validate_invalid_config(self):
        """Test validation with invalid configuration."""
        config = Config(latitude=95.0, longitude=-200.0, user_id="not-an-id")
        config.api.signing_key = ""
        config.feed.geocode_timeout_sec = 0
        config.log_file = ""

        errors = ' '.join(config.validate())

        self.assertIn("latitude must be between -90 and 90", errors)
        self.assertIn("longitude must be between -180 and 180", errors)
        self.assertIn("user_id must be 32 uppercase hexadecimal characters", errors)
        self.assertIn("Missing YAK_SIGNING_KEY", errors)
        self.assertIn("feed.geocode_timeout_sec must be greater than 0", errors)
        self.assertIn("log_file must not be empty", errors)

    def test_validate_missing_location(self):
        """Test that a location is required."""
        errors = Config().validate()
        self.assertIn("Both latitude and longitude must be configured", errors)


if __name__ == "__main__":
    unittest.main()
