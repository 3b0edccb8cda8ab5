"""
nftjson Check - Ruleset JSON Validator

Reads an nftables JSON document from stdin and checks that it decodes.

Usage:
    nft -j list ruleset | nftjson-check

Exit status is 0 when the document decodes, 1 otherwise; on failure the
JSON path of the first mismatch is logged.

Author: nftjson Project
License: GNU GPL v3
"""

import logging
import sys
from collections import Counter

from .codec import DecodeError, decode
from .config import get_config
from .schema import NfCmd
from .utils.logging import setup_logging


def summarize(nftables) -> Counter:
    """Count document entries by kind ('add table', 'chain', ...)."""
    counts = Counter()
    for obj in nftables.objects:
        if isinstance(obj, NfCmd):
            counts[f"{obj.verb.value} {type(obj.obj).__name__.lower()}"] += 1
        else:
            counts[type(obj).__name__.lower()] += 1
    return counts


def main(stdin=None) -> int:
    """Entry point of nftjson-check."""
    config = get_config()
    setup_logging(
        level=logging.DEBUG if config.verbose else logging.INFO,
        log_file=config.log_file,
        max_bytes=config.log_max_bytes,
        backup_count=config.log_backup_count
    )
    logger = logging.getLogger(__name__)

    text = (stdin or sys.stdin).read()
    try:
        nftables = decode(text)
    except DecodeError as e:
        logger.error(f"Invalid ruleset at {e.path_str or '<root>'}: {e.expected}")
        logger.debug(f"Offending value: {e.actual!r}")
        return 1

    for kind, count in sorted(summarize(nftables).items()):
        logger.info(f"{kind}: {count}")
    logger.info(f"OK: {len(nftables.objects)} objects")
    return 0


if __name__ == '__main__':
    sys.exit(main())
