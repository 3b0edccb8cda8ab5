"""
nftjson-check Test Suite

Tests for the command-line validator.

Author: nftjson Project
License: GNU GPL v3
"""

import io
import unittest
from unittest.mock import Mock, patch

from nftjson.codec import decode
from nftjson.main import main, summarize


VALID = ('{"nftables":[{"add":{"table":{"family":"inet","name":"filter"}}},'
         '{"add":{"chain":{"family":"inet","table":"filter","name":"input"}}},'
         '{"add":{"chain":{"family":"inet","table":"filter","name":"output"}}},'
         '{"metainfo":{"json_schema_version":1}}]}')

INVALID = ('{"nftables":[{"add":{"chain":{"family":"inet","table":"filter",'
           '"name":"input","hook":5}}}]}')


def _config():
    return Mock(verbose=False, log_file=None, log_max_bytes=1024, log_backup_count=1)


class TestSummarize(unittest.TestCase):

    def test_counts_by_kind(self):
        counts = summarize(decode(VALID))

        self.assertEqual(counts['add table'], 1)
        self.assertEqual(counts['add chain'], 2)
        self.assertEqual(counts['metainfo'], 1)


@patch('nftjson.main.setup_logging')
@patch('nftjson.main.get_config', side_effect=_config)
class TestMain(unittest.TestCase):

    def test_valid_document(self, mock_config, mock_logging):
        with self.assertLogs('nftjson.main', level='INFO') as logs:
            status = main(stdin=io.StringIO(VALID))

        self.assertEqual(status, 0)
        self.assertIn('OK: 4 objects', logs.output[-1])
        mock_logging.assert_called_once()

    def test_invalid_document(self, mock_config, mock_logging):
        with self.assertLogs('nftjson.main', level='ERROR') as logs:
            status = main(stdin=io.StringIO(INVALID))

        self.assertEqual(status, 1)
        self.assertIn('nftables[0].add.chain.hook', logs.output[0])

    def test_invalid_json(self, mock_config, mock_logging):
        with self.assertLogs('nftjson.main', level='ERROR') as logs:
            status = main(stdin=io.StringIO('{'))

        self.assertEqual(status, 1)
        self.assertIn('<root>', logs.output[0])


if __name__ == '__main__':
    unittest.main()
