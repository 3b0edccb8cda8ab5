"""
nftjson nft Helper - Apply and List Rulesets

Runs the nft binary: the only part of nftjson with side effects.

Operations:
- apply_ruleset: render a document and feed it to `nft -j -f -`
- apply_ruleset_raw: same, for JSON text built elsewhere
- get_current_ruleset: run `nft -j list ruleset` and decode the output
- get_current_ruleset_raw: same, returning the JSON text

nft applies a whole document as one transaction: either every command
succeeds or none does. Nothing here retries, locks or times out unless
the caller asks for a timeout.

Failures raise NftablesError subclasses:
- SpawnFailedError: nft could not be started (missing binary, permissions)
- ProcessFailedError: nft exited non-zero; carries exit code and stderr
- OutputEncodingError: nft printed something that is not UTF-8
- ProcessTimeoutError: the caller-supplied timeout expired
Decoding problems of listed rulesets raise codec.DecodeError. Both
NftablesError and DecodeError derive from codec.ReadError.

Author: nftjson Project
License: GNU GPL v3
"""

import logging
import shutil
import subprocess
from typing import List, Optional

from .codec import ReadError, decode, encode
from .config import get_config
from .schema import Nftables


APPLY_HINT = "applying ruleset"
LIST_HINT = "getting the current ruleset"


class NftablesError(ReadError):
    """Base class of errors raised while running nft."""

    def __init__(self, program: str, hint: str, message: str):
        self.program = program
        self.hint = hint
        super().__init__(f"{program} ({hint}): {message}")


class SpawnFailedError(NftablesError):
    """nft could not be launched."""

    def __init__(self, program: str, hint: str, error: OSError):
        self.error = error
        super().__init__(program, hint, f"could not be started: {error}")


class ProcessFailedError(NftablesError):
    """
    nft exited with a non-zero status.

    Attributes:
        returncode: Exit status of nft
        stdout: Captured standard output
        stderr: Captured error output, verbatim
    """

    def __init__(self, program: str, hint: str, returncode: int, stdout: str, stderr: str):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(program, hint, f"exited with status {returncode}: {stderr.strip()}")


class OutputEncodingError(NftablesError):
    """nft output could not be decoded as UTF-8."""

    def __init__(self, program: str, hint: str, error: UnicodeDecodeError):
        self.error = error
        super().__init__(program, hint, f"output is not valid UTF-8: {error}")


class ProcessTimeoutError(NftablesError):
    """nft did not finish within the timeout given by the caller."""

    def __init__(self, program: str, hint: str, timeout: float):
        self.timeout = timeout
        super().__init__(program, hint, f"timed out after {timeout}s")


ApplyError = NftablesError


class NftablesHelper:
    """
    Runs nft for applying and listing rulesets.

    Each call spawns one nft process and blocks until it exits. Pipes are
    closed and the process is reaped on every path, including errors.
    """

    def __init__(self, config=None):
        """
        Initialize the helper.

        Args:
            config: NftjsonConfig (optional, uses get_config() if None)
        """
        self.config = config or get_config()
        self.logger = logging.getLogger(__name__)

    def _resolve_program(self, program: Optional[str]) -> str:
        program = program or self.config.nft_program
        return shutil.which(program) or program

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self.config.timeout

    def _run(self, cmd: List[str], hint: str, payload: Optional[str] = None,
             cwd: Optional[str] = None, timeout: Optional[float] = None) -> str:
        """
        Run cmd to completion, feeding payload on stdin.

        Returns:
            Captured standard output

        Raises:
            SpawnFailedError, ProcessFailedError, OutputEncodingError,
            ProcessTimeoutError
        """
        program = cmd[0]
        self.logger.debug(f"Running {' '.join(cmd)} ({hint})")

        try:
            result = subprocess.run(
                cmd,
                input=payload.encode('utf-8') if payload is not None else None,
                capture_output=True,
                cwd=cwd,
                timeout=timeout
            )
        except subprocess.TimeoutExpired as e:
            self.logger.error(f"{program} timed out after {timeout}s while {hint}")
            raise ProcessTimeoutError(program, hint, timeout) from e
        except OSError as e:
            self.logger.error(f"Could not start {program} while {hint}: {e}")
            raise SpawnFailedError(program, hint, e) from e

        if result.returncode != 0:
            stdout = result.stdout.decode('utf-8', errors='replace')
            stderr = result.stderr.decode('utf-8', errors='replace')
            self.logger.error(f"{program} failed while {hint}: {stderr.strip()}")
            raise ProcessFailedError(program, hint, result.returncode, stdout, stderr)

        try:
            return result.stdout.decode('utf-8')
        except UnicodeDecodeError as e:
            raise OutputEncodingError(program, hint, e) from e

    # =========================================================================
    # APPLY (document -> nft)
    # =========================================================================

    def apply_ruleset(self, nftables: Nftables, cwd: Optional[str] = None,
                      program: Optional[str] = None, args: Optional[List[str]] = None,
                      timeout: Optional[float] = None):
        """
        Apply a document atomically.

        Args:
            nftables: Document to apply
            cwd: Working directory for nft (relative include paths)
            program: nft binary to run instead of the configured one
            args: Extra arguments placed before '-j -f -'
            timeout: Seconds to wait for nft (default: configured, or none)
        """
        payload = encode(nftables)
        self.apply_ruleset_raw(payload, cwd=cwd, program=program, args=args, timeout=timeout)

    def apply_ruleset_raw(self, payload: str, cwd: Optional[str] = None,
                          program: Optional[str] = None, args: Optional[List[str]] = None,
                          timeout: Optional[float] = None):
        """Apply JSON text with `nft <args> -j -f -`."""
        args = args if args is not None else self.config.get_apply_args()
        cmd = [self._resolve_program(program)] + list(args) + ['-j', '-f', '-']
        self._run(cmd, APPLY_HINT, payload=payload, cwd=cwd, timeout=self._timeout(timeout))
        self.logger.info(f"Applied ruleset ({len(payload)} bytes)")

    # =========================================================================
    # LIST (nft -> document)
    # =========================================================================

    def get_current_ruleset(self, program: Optional[str] = None,
                            args: Optional[List[str]] = None,
                            timeout: Optional[float] = None) -> Nftables:
        """
        Read the current ruleset.

        Args:
            program: nft binary to run instead of the configured one
            args: Arguments following '-j' (default: list ruleset)
            timeout: Seconds to wait for nft (default: configured, or none)

        Returns:
            Decoded document of bare list objects

        Raises:
            NftablesError subclasses, or DecodeError for unparseable output
        """
        output = self.get_current_ruleset_raw(program=program, args=args, timeout=timeout)
        nftables = decode(output)
        self.logger.debug(f"Listed ruleset: {len(nftables.objects)} objects")
        return nftables

    def get_current_ruleset_raw(self, program: Optional[str] = None,
                                args: Optional[List[str]] = None,
                                timeout: Optional[float] = None) -> str:
        """Run `nft -j <args>` and return its output."""
        args = args if args is not None else self.config.get_list_args()
        cmd = [self._resolve_program(program), '-j'] + list(args)
        return self._run(cmd, LIST_HINT, timeout=self._timeout(timeout))


def apply_ruleset(nftables: Nftables, cwd: Optional[str] = None,
                  program: Optional[str] = None, args: Optional[List[str]] = None,
                  timeout: Optional[float] = None):
    """Apply a document with the default helper. See NftablesHelper.apply_ruleset."""
    NftablesHelper().apply_ruleset(nftables, cwd=cwd, program=program, args=args, timeout=timeout)


def apply_ruleset_raw(payload: str, cwd: Optional[str] = None,
                      program: Optional[str] = None, args: Optional[List[str]] = None,
                      timeout: Optional[float] = None):
    NftablesHelper().apply_ruleset_raw(payload, cwd=cwd, program=program, args=args, timeout=timeout)


def get_current_ruleset(program: Optional[str] = None, args: Optional[List[str]] = None,
                        timeout: Optional[float] = None) -> Nftables:
    """Read the current ruleset with the default helper."""
    return NftablesHelper().get_current_ruleset(program=program, args=args, timeout=timeout)


def get_current_ruleset_raw(program: Optional[str] = None, args: Optional[List[str]] = None,
                            timeout: Optional[float] = None) -> str:
    return NftablesHelper().get_current_ruleset_raw(program=program, args=args, timeout=timeout)
