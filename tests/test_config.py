"""
Configuration Test Suite

Tests for settings precedence (environment > config.conf > defaults) and
config.conf parsing.

Author: nftjson Project
License: GNU GPL v3
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from nftjson.config import NftjsonConfig, _parse_bool, load_config_file


CONFIG_TEXT = """
[nftables]
nft_program = /usr/sbin/nft  # comment
list_args = list table inet filter
timeout = 2.5

[logs]
verbose = yes
log_backup_count = 9
"""


def _clean_environ():
    return {k: v for k, v in os.environ.items() if not k.startswith('NFTJSON_')}


class ConfigFileTestCase(unittest.TestCase):
    """Base class writing CONFIG_TEXT to a temporary config.conf."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.config_file = Path(self._tmpdir.name) / 'config.conf'
        self.config_file.write_text(CONFIG_TEXT)

    def tearDown(self):
        self._tmpdir.cleanup()


class TestDefaults(unittest.TestCase):

    def test_defaults(self):
        """Without environment or config.conf the built-in defaults apply."""
        with patch.dict(os.environ, _clean_environ(), clear=True):
            with patch('nftjson.config.find_config_file', return_value=None):
                config = NftjsonConfig()

        self.assertEqual(config.nft_program, 'nft')
        self.assertEqual(config.get_apply_args(), [])
        self.assertEqual(config.get_list_args(), ['list', 'ruleset'])
        self.assertIsNone(config.timeout)
        self.assertFalse(config.verbose)
        self.assertEqual(config.log_backup_count, 5)


class TestPrecedence(ConfigFileTestCase):

    def test_config_file_overrides_defaults(self):
        environ = dict(_clean_environ(), NFTJSON_CONFIG_FILE=str(self.config_file))
        with patch.dict(os.environ, environ, clear=True):
            config = NftjsonConfig()

        self.assertEqual(config.nft_program, '/usr/sbin/nft')
        self.assertEqual(config.get_list_args(), ['list', 'table', 'inet', 'filter'])
        self.assertEqual(config.timeout, 2.5)
        self.assertTrue(config.verbose)
        self.assertEqual(config.log_backup_count, 9)

    def test_environment_overrides_config_file(self):
        environ = dict(
            _clean_environ(),
            NFTJSON_CONFIG_FILE=str(self.config_file),
            NFTJSON_NFT_PROGRAM='/opt/nft',
            NFTJSON_VERBOSE='false',
        )
        with patch.dict(os.environ, environ, clear=True):
            config = NftjsonConfig()

        self.assertEqual(config.nft_program, '/opt/nft')
        self.assertFalse(config.verbose)
        self.assertEqual(config.log_backup_count, 9)

    def test_explicit_arguments_win(self):
        environ = dict(_clean_environ(), NFTJSON_CONFIG_FILE=str(self.config_file))
        with patch.dict(os.environ, environ, clear=True):
            config = NftjsonConfig(nft_program='./nft', apply_args='--check --echo')

        self.assertEqual(config.nft_program, './nft')
        self.assertEqual(config.get_apply_args(), ['--check', '--echo'])


class TestConfigFile(ConfigFileTestCase):

    def test_load_config_file(self):
        values = load_config_file(self.config_file)

        self.assertEqual(values['NFTJSON_NFT_PROGRAM'], '/usr/sbin/nft')
        self.assertEqual(values['NFTJSON_VERBOSE'], 'yes')
        self.assertEqual(values['NFTJSON_TIMEOUT'], '2.5')

    def test_no_config_file(self):
        with patch('nftjson.config.find_config_file', return_value=None):
            self.assertEqual(load_config_file(), {})

    def test_invalid_boolean(self):
        self.config_file.write_text('[logs]\nverbose = maybe\n')
        environ = dict(_clean_environ(), NFTJSON_CONFIG_FILE=str(self.config_file))

        with patch.dict(os.environ, environ, clear=True):
            with self.assertRaises(ValueError):
                NftjsonConfig()


class TestParseBool(unittest.TestCase):

    def test_values(self):
        for value in ('true', 'YES', '1', ' on '):
            self.assertTrue(_parse_bool(value))
        for value in ('false', 'No', '0', 'off', ''):
            self.assertFalse(_parse_bool(value))

    def test_invalid(self):
        with self.assertRaises(ValueError) as ctx:
            _parse_bool('maybe', 'verbose')

        self.assertIn('verbose', str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
