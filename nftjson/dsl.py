"""
nftjson DSL

Builds Table and Chain objects from nft-style one-liners, so simple
rulesets can be written the way they read in `nft list ruleset`.

Supported forms:
    table inet filter
    chain inet filter forward
    chain inet filter input { type filter hook input priority 0; policy drop; }
    chain netdev filter ingress { type filter hook ingress device eth0 priority -500; }

Priorities may be numbers or the standard names (raw, mangle, dstnat,
filter, security, srcnat), optionally with an offset: "filter + 10".

Author: nftjson Project
License: GNU GPL v3
"""

import re

from .schema import Chain, Table
from .types import NfChainPolicy, NfChainType, NfFamily, NfHook


# Standard priority names (see nft(8), CHAINS)
PRIORITY_NAMES = {
    'raw': -300,
    'mangle': -150,
    'dstnat': -100,
    'filter': 0,
    'security': 50,
    'srcnat': 100,
}

# The bridge family uses its own values for the same names
BRIDGE_PRIORITY_NAMES = {
    'dstnat': -300,
    'filter': -200,
    'out': 100,
    'srcnat': 300,
}

_TABLE_RE = re.compile(r'^table\s+(\S+)\s+(\S+)$')
_CHAIN_RE = re.compile(r'^chain\s+(\S+)\s+(\S+)\s+(\S+)(?:\s*\{(.*)\})?$', re.DOTALL)
_HOOK_RE = re.compile(
    r'^type\s+(\S+)\s+hook\s+(\S+)(?:\s+device\s+(\S+))?\s+priority\s+(.+)$'
)
_POLICY_RE = re.compile(r'^policy\s+(\S+)$')
_PRIORITY_RE = re.compile(r'^(-?\d+|[a-z]+)(?:\s*([+-])\s*(\d+))?$')


def _enum(enum_cls, value: str, what: str, text: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"unknown {what} '{value}' in: {text}") from None


def parse_priority(value: str, family: NfFamily = NfFamily.INET) -> int:
    """
    Turn a chain priority into a number.

    Example:
        >>> parse_priority('filter + 10')
        10
        >>> parse_priority('-150')
        -150
    """
    match = _PRIORITY_RE.match(value.strip())
    if not match:
        raise ValueError(f"invalid priority: {value}")
    base, sign, offset = match.groups()
    if base.lstrip('-').isdigit():
        prio = int(base)
    else:
        names = BRIDGE_PRIORITY_NAMES if family == NfFamily.BRIDGE else PRIORITY_NAMES
        if base not in names:
            raise ValueError(f"unknown priority name: {base}")
        prio = names[base]
    if offset:
        prio += int(offset) if sign == '+' else -int(offset)
    return prio


def _parse_chain(text: str, family: NfFamily, table: str, name: str, body: str) -> Chain:
    fields = {}
    for clause in body.split(';'):
        clause = ' '.join(clause.split())
        if not clause:
            continue

        hook_match = _HOOK_RE.match(clause)
        if hook_match:
            chain_type, hook, device, priority = hook_match.groups()
            fields['type'] = _enum(NfChainType, chain_type, 'chain type', text)
            fields['hook'] = _enum(NfHook, hook, 'hook', text)
            fields['prio'] = parse_priority(priority, family)
            if device:
                fields['dev'] = device
            continue

        policy_match = _POLICY_RE.match(clause)
        if policy_match:
            fields['policy'] = _enum(NfChainPolicy, policy_match.group(1), 'policy', text)
            continue

        raise ValueError(f"unsupported chain clause '{clause}' in: {text}")

    return Chain(family=family, table=table, name=name, **fields)


def nft(text: str):
    """
    Parse a table or chain one-liner.

    Args:
        text: nft-style declaration (see module docstring)

    Returns:
        Table or Chain

    Raises:
        ValueError: If text is not a supported declaration
    """
    text = text.strip()

    table_match = _TABLE_RE.match(text)
    if table_match:
        family = _enum(NfFamily, table_match.group(1), 'family', text)
        return Table(family=family, name=table_match.group(2))

    chain_match = _CHAIN_RE.match(text)
    if chain_match:
        family_name, table, name, body = chain_match.groups()
        family = _enum(NfFamily, family_name, 'family', text)
        return _parse_chain(text, family, table, name, body or '')

    raise ValueError(f"unsupported declaration: {text}")
