"""
nft Helper Test Suite

Tests for running nft:
- Arguments and stdin payload handed to the process
- Exit status and stderr surfaced on failure
- Spawn failures, timeouts and non-UTF-8 output
- Listed output decoded into a document

A stub shell script stands in for nft; a real nft is only exercised when
NFTJSON_NFT_TESTS=1 (requires root).

Author: nftjson Project
License: GNU GPL v3
"""

import os
import stat
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from nftjson import schema
from nftjson.batch import Batch
from nftjson.codec import DecodeError
from nftjson.helper import (
    APPLY_HINT,
    LIST_HINT,
    NftablesError,
    NftablesHelper,
    OutputEncodingError,
    ProcessFailedError,
    ProcessTimeoutError,
    ReadError,
    SpawnFailedError,
)
from nftjson.types import NfFamily


NFT_ERROR = "Error: Could not process rule: No such file or directory\n"

LISTED = """{"nftables": [
  {"metainfo": {"version": "1.0.2", "release_name": "Lester Gooch", "json_schema_version": 1}},
  {"table": {"family": "inet", "name": "filter", "handle": 1}}
]}"""


def _mock_config(**overrides):
    config = Mock(
        nft_program='nft',
        timeout=None,
        get_apply_args=lambda: [],
        get_list_args=lambda: ['list', 'ruleset'],
    )
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def _document():
    batch = Batch()
    batch.add(schema.Table(family=NfFamily.IP, name='t0'))
    return batch.to_nftables()


@unittest.skipUnless(os.path.exists('/bin/sh'), "requires /bin/sh")
class StubNftTestCase(unittest.TestCase):
    """Base class providing a temporary directory for stub nft scripts."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmpdir.name)
        self.helper = NftablesHelper(config=_mock_config())

    def tearDown(self):
        self._tmpdir.cleanup()

    def make_stub(self, body: str, executable: bool = True) -> str:
        path = self.tmpdir / 'nft'
        path.write_text('#!/bin/sh\n' + body + '\n')
        if executable:
            path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return str(path)


class TestApply(StubNftTestCase):
    """Test the apply path (nft -j -f -)."""

    def test_payload_and_arguments(self):
        """The rendered document is written to stdin of `nft -j -f -`."""
        program = self.make_stub(
            f'echo "$@" > {self.tmpdir}/args\n'
            f'cat > {self.tmpdir}/payload'
        )

        self.helper.apply_ruleset(_document(), program=program)

        self.assertEqual((self.tmpdir / 'args').read_text(), '-j -f -\n')
        self.assertEqual(
            (self.tmpdir / 'payload').read_text(),
            '{"nftables":[{"add":{"table":{"family":"ip","name":"t0"}}}]}'
        )

    def test_extra_arguments_come_first(self):
        program = self.make_stub(f'echo "$@" > {self.tmpdir}/args\ncat > /dev/null')

        self.helper.apply_ruleset(_document(), program=program, args=['--check'])

        self.assertEqual((self.tmpdir / 'args').read_text(), '--check -j -f -\n')

    def test_working_directory(self):
        program = self.make_stub(f'pwd > {self.tmpdir}/cwd\ncat > /dev/null')
        workdir = self.tmpdir / 'work'
        workdir.mkdir()

        self.helper.apply_ruleset(_document(), program=program, cwd=str(workdir))

        self.assertEqual(
            os.path.realpath((self.tmpdir / 'cwd').read_text().strip()),
            os.path.realpath(str(workdir))
        )

    def test_failure_carries_status_and_stderr(self):
        program = self.make_stub(
            'cat > /dev/null\n'
            f'printf "{NFT_ERROR.strip()}\\n" >&2\n'
            'exit 1'
        )

        with self.assertRaises(ProcessFailedError) as ctx:
            self.helper.apply_ruleset(_document(), program=program)

        error = ctx.exception
        self.assertEqual(error.returncode, 1)
        self.assertEqual(error.stderr, NFT_ERROR)
        self.assertEqual(error.hint, APPLY_HINT)
        self.assertEqual(error.program, program)
        self.assertIn('No such file or directory', str(error))

    def test_raw_payload(self):
        program = self.make_stub(f'cat > {self.tmpdir}/payload')

        self.helper.apply_ruleset_raw('{"nftables":[]}', program=program)

        self.assertEqual((self.tmpdir / 'payload').read_text(), '{"nftables":[]}')


class TestList(StubNftTestCase):
    """Test the read path (nft -j list ruleset)."""

    def test_listed_ruleset_is_decoded(self):
        program = self.make_stub(
            f'echo "$@" > {self.tmpdir}/args\n'
            "cat <<'EOF'\n" + LISTED + "\nEOF"
        )

        document = self.helper.get_current_ruleset(program=program)

        self.assertEqual((self.tmpdir / 'args').read_text(), '-j list ruleset\n')
        self.assertIsInstance(document.objects[0], schema.Metainfo)
        self.assertEqual(document.objects[1],
                         schema.Table(family=NfFamily.INET, name='filter', handle=1))

    def test_raw_output(self):
        program = self.make_stub('printf \'{"nftables":[]}\'')

        output = self.helper.get_current_ruleset_raw(program=program, args=['list', 'tables'])

        self.assertEqual(output, '{"nftables":[]}')

    def test_failure(self):
        program = self.make_stub('echo "Error: syntax error" >&2\nexit 1')

        with self.assertRaises(ProcessFailedError) as ctx:
            self.helper.get_current_ruleset(program=program)

        self.assertEqual(ctx.exception.returncode, 1)
        self.assertEqual(ctx.exception.stderr, "Error: syntax error\n")
        self.assertEqual(ctx.exception.hint, LIST_HINT)

    def test_non_utf8_output(self):
        program = self.make_stub("printf '\\377\\376'")

        with self.assertRaises(OutputEncodingError):
            self.helper.get_current_ruleset(program=program)

    def test_unparseable_output(self):
        program = self.make_stub("echo 'not json'")

        with self.assertRaises(DecodeError):
            self.helper.get_current_ruleset(program=program)

    def test_read_errors_share_one_except_clause(self):
        program = self.make_stub("echo '{\"nftables\": [{\"bogus\": {}}]}'")

        try:
            self.helper.get_current_ruleset(program=program)
        except ReadError as e:
            self.assertIsInstance(e, DecodeError)
        else:
            self.fail("expected a read error")


class TestErrorHierarchy(unittest.TestCase):
    """Test that read-path errors share the ReadError base class."""

    def test_read_error_is_a_class(self):
        self.assertTrue(issubclass(NftablesError, ReadError))
        self.assertTrue(issubclass(ProcessFailedError, ReadError))
        self.assertTrue(issubclass(DecodeError, ReadError))
        self.assertTrue(issubclass(DecodeError, ValueError))

    def test_read_error_can_be_raised(self):
        with self.assertRaises(ReadError):
            raise ProcessFailedError('nft', LIST_HINT, 1, '', 'Error\n')


class TestProcessErrors(StubNftTestCase):
    """Test failures to run nft at all."""

    def test_missing_binary(self):
        missing = str(self.tmpdir / 'no-such-nft')

        with self.assertRaises(SpawnFailedError) as ctx:
            self.helper.apply_ruleset(_document(), program=missing)

        self.assertIsInstance(ctx.exception.error, OSError)
        self.assertIsInstance(ctx.exception, NftablesError)

    def test_not_executable(self):
        program = self.make_stub('exit 0', executable=False)

        with self.assertRaises(SpawnFailedError):
            self.helper.get_current_ruleset_raw(program=program)

    def test_timeout(self):
        program = self.make_stub('exec sleep 5')

        with self.assertRaises(ProcessTimeoutError) as ctx:
            self.helper.get_current_ruleset_raw(program=program, timeout=0.2)

        self.assertEqual(ctx.exception.timeout, 0.2)

    def test_configured_timeout(self):
        helper = NftablesHelper(config=_mock_config(timeout=0.2))
        program = self.make_stub('exec sleep 5')

        with self.assertRaises(ProcessTimeoutError):
            helper.get_current_ruleset_raw(program=program)


class TestCommandLine(unittest.TestCase):
    """Test the command lines built from configuration (subprocess mocked)."""

    def setUp(self):
        self.result = Mock(returncode=0, stdout=b'{"nftables":[]}', stderr=b'')

    @patch('nftjson.helper.shutil.which', return_value='/usr/sbin/nft')
    @patch('nftjson.helper.subprocess.run')
    def test_apply_command(self, mock_run, mock_which):
        mock_run.return_value = self.result
        helper = NftablesHelper(config=_mock_config(get_apply_args=lambda: ['-c']))

        helper.apply_ruleset(_document())

        mock_which.assert_called_once_with('nft')
        args, kwargs = mock_run.call_args
        self.assertEqual(args[0], ['/usr/sbin/nft', '-c', '-j', '-f', '-'])
        self.assertEqual(
            kwargs['input'],
            b'{"nftables":[{"add":{"table":{"family":"ip","name":"t0"}}}]}'
        )
        self.assertTrue(kwargs['capture_output'])
        self.assertIsNone(kwargs['cwd'])
        self.assertIsNone(kwargs['timeout'])

    @patch('nftjson.helper.shutil.which', return_value=None)
    @patch('nftjson.helper.subprocess.run')
    def test_list_command(self, mock_run, mock_which):
        mock_run.return_value = self.result
        helper = NftablesHelper(config=_mock_config(nft_program='nft-custom', timeout=3.0))

        document = helper.get_current_ruleset()

        args, kwargs = mock_run.call_args
        self.assertEqual(args[0], ['nft-custom', '-j', 'list', 'ruleset'])
        self.assertIsNone(kwargs['input'])
        self.assertEqual(kwargs['timeout'], 3.0)
        self.assertEqual(document.objects, [])

    @patch('nftjson.helper.subprocess.run')
    def test_failure_output_decoded_leniently(self, mock_run):
        mock_run.return_value = Mock(returncode=2, stdout=b'', stderr=b'bad \xff byte')
        helper = NftablesHelper(config=_mock_config())

        with self.assertRaises(ProcessFailedError) as ctx:
            helper.apply_ruleset_raw('{"nftables":[]}', program='/bin/false')

        self.assertEqual(ctx.exception.returncode, 2)
        self.assertEqual(ctx.exception.stderr, 'bad \ufffd byte')


@unittest.skipUnless(os.environ.get('NFTJSON_NFT_TESTS') == '1',
                     "set NFTJSON_NFT_TESTS=1 to run against the real nft (root)")
class TestRealNft(unittest.TestCase):
    """Apply and list against the kernel."""

    TABLE = schema.Table(family=NfFamily.INET, name='nftjson_test')

    def setUp(self):
        self.helper = NftablesHelper(config=_mock_config())

    def tearDown(self):
        batch = Batch()
        batch.delete(self.TABLE)
        try:
            self.helper.apply_ruleset(batch.to_nftables())
        except ProcessFailedError:
            pass

    def test_apply_and_list(self):
        batch = Batch()
        batch.add(self.TABLE)
        self.helper.apply_ruleset(batch.to_nftables())

        document = self.helper.get_current_ruleset(args=['list', 'table', 'inet', 'nftjson_test'])

        names = [o.name for o in document.objects if isinstance(o, schema.Table)]
        self.assertEqual(names, ['nftjson_test'])


if __name__ == '__main__':
    unittest.main()
