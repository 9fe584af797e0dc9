"""
Tests for configuration loading.
"""

import json
import os
import tempfile
import unittest

from evmcards.config import Config, apply_env, load_config, save_config
from evmcards.utils.exceptions import ConfigError


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "config.json")

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, content):
        with open(self.path, "w") as f:
            f.write(content)

    def test_missing_file_writes_defaults(self):
        config = load_config(self.path, env={})
        self.assertEqual(config, Config())
        with open(self.path) as f:
            self.assertEqual(json.load(f)["max_poll_attempts"], 600)

    def test_file_values_and_unknown_keys(self):
        self.write(json.dumps({"rpc_url": "http://node:8545", "poll_interval": 0.5, "theme": "dark"}))
        config = load_config(self.path, env={})
        self.assertEqual(config.rpc_url, "http://node:8545")
        self.assertEqual(config.poll_interval, 0.5)

    def test_environment_overrides_file(self):
        self.write(json.dumps({"rpc_url": "http://node:8545"}))
        config = load_config(self.path, env={"ETH_RPC_URL": "http://env:8545", "EVMCARDS_VIEWER": "jq ."})
        self.assertEqual(config.rpc_url, "http://env:8545")
        self.assertEqual(config.viewer, "jq .")

    def test_invalid_files(self):
        for content in ("{not json", "[1, 2]", json.dumps({"poll_interval": 0}), json.dumps({"max_poll_attempts": -1})):
            with self.subTest(content=content):
                self.write(content)
                with self.assertRaises(ConfigError):
                    load_config(self.path, env={})

    def test_overrides_skip_none(self):
        config = Config().with_overrides(rpc_url=None, max_poll_attempts=0)
        self.assertEqual(config.rpc_url, Config().rpc_url)
        self.assertEqual(config.max_poll_attempts, 0)

    def test_private_key_is_never_saved(self):
        config = apply_env(Config(), {"PRIVATE_KEY": "0x" + "1" * 64})
        self.assertEqual(config.private_key, "0x" + "1" * 64)
        save_config(config, self.path)
        with open(self.path) as f:
            self.assertIsNone(json.load(f)["private_key"])


if __name__ == '__main__':
    unittest.main()
