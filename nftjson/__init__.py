"""
nftjson - Typed Model of the nftables JSON Ruleset Format

Build rulesets as Python objects, render them to the JSON accepted by
`nft -j -f -`, parse `nft -j list ruleset` output back, and apply
batches atomically.

Author: nftjson Project
License: GNU GPL v3
"""

from . import expr, stmt, types
from .batch import Batch
from .codec import DecodeError, EncodeError, decode, encode, from_dict, to_dict
from .dsl import nft, parse_priority
from .helper import (
    ApplyError,
    NftablesError,
    NftablesHelper,
    OutputEncodingError,
    ProcessFailedError,
    ProcessTimeoutError,
    ReadError,
    SpawnFailedError,
    apply_ruleset,
    apply_ruleset_raw,
    get_current_ruleset,
    get_current_ruleset_raw,
)
from .schema import (
    Chain,
    CmdVerb,
    Counter,
    CounterList,
    CTExpectation,
    CTHelper,
    CTTimeout,
    Element,
    FlowTable,
    Limit,
    Map,
    Metainfo,
    Meter,
    NfCmd,
    Nftables,
    Quota,
    QuotaList,
    Rule,
    Ruleset,
    Set,
    SynProxy,
    Table,
)
from .types import NfChainPolicy, NfChainType, NfFamily, NfHook

__version__ = "0.4.1"

__all__ = [
    'expr',
    'stmt',
    'types',
    'Batch',
    'DecodeError',
    'EncodeError',
    'decode',
    'encode',
    'from_dict',
    'to_dict',
    'nft',
    'parse_priority',
    'ApplyError',
    'NftablesError',
    'NftablesHelper',
    'OutputEncodingError',
    'ProcessFailedError',
    'ProcessTimeoutError',
    'ReadError',
    'SpawnFailedError',
    'apply_ruleset',
    'apply_ruleset_raw',
    'get_current_ruleset',
    'get_current_ruleset_raw',
    'Chain',
    'CmdVerb',
    'Counter',
    'CounterList',
    'CTExpectation',
    'CTHelper',
    'CTTimeout',
    'Element',
    'FlowTable',
    'Limit',
    'Map',
    'Metainfo',
    'Meter',
    'NfCmd',
    'Nftables',
    'Quota',
    'QuotaList',
    'Rule',
    'Ruleset',
    'Set',
    'SynProxy',
    'Table',
    'NfChainPolicy',
    'NfChainType',
    'NfFamily',
    'NfHook',
]
