"""
nftjson Batch Builder

Ordered accumulator of commands to be applied as one nft transaction.

Commands are emitted in exactly the order they were appended. Nothing is
reordered, deduplicated or validated across commands, and no flush is
ever injected: callers wanting "replace the ruleset" semantics append
flush(Ruleset()) themselves before their add commands.

Example:
    batch = Batch()
    batch.add(Table(family=NfFamily.INET, name='filter'))
    batch.add(Chain(family=NfFamily.INET, table='filter', name='input',
                    type=NfChainType.FILTER, hook=NfHook.INPUT, prio=0,
                    policy=NfChainPolicy.DROP))
    apply_ruleset(batch.to_nftables())

Author: nftjson Project
License: GNU GPL v3
"""

from typing import Iterable, List

from .schema import CmdVerb, NfCmd, Nftables, validate_object


class Batch:
    """Ordered list of commands (and, for read-path documents, bare list objects)."""

    def __init__(self):
        self._data: List = []

    def __len__(self) -> int:
        return len(self._data)

    def _append(self, verb: CmdVerb, obj):
        self._data.append(NfCmd(verb=verb, obj=obj))

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def add(self, obj):
        """Add obj; existing objects are left alone."""
        self._append(CmdVerb.ADD, obj)

    def create(self, obj):
        """Like add, but fails if the object already exists."""
        self._append(CmdVerb.CREATE, obj)

    def insert(self, obj):
        """Insert a rule at the start of its chain (or before handle/index)."""
        self._append(CmdVerb.INSERT, obj)

    def replace(self, rule):
        """Replace the rule with the same handle."""
        self._append(CmdVerb.REPLACE, rule)

    def delete(self, obj):
        self._append(CmdVerb.DELETE, obj)

    def list(self, obj):
        self._append(CmdVerb.LIST, obj)

    def flush(self, obj):
        """Empty a table, chain, set, map, meter or the whole Ruleset()."""
        self._append(CmdVerb.FLUSH, obj)

    def reset(self, obj):
        """Zero a counter or quota (or a CounterList / QuotaList)."""
        self._append(CmdVerb.RESET, obj)

    def rename(self, chain):
        """Rename chain to chain.newname."""
        self._append(CmdVerb.RENAME, chain)

    # =========================================================================
    # RAW APPENDS
    # =========================================================================

    def add_cmd(self, cmd: NfCmd):
        """Append a prebuilt command."""
        if not isinstance(cmd, NfCmd):
            raise TypeError(f"expected NfCmd, got {type(cmd).__name__}")
        self._data.append(cmd)

    def add_obj(self, obj):
        """
        Append a bare list object (as found in listed rulesets).

        Raises:
            ValueError: If obj is neither a command nor a list object
        """
        self._data.append(validate_object(obj))

    def add_all(self, objs: Iterable):
        """Append prebuilt commands and/or bare list objects in order."""
        for obj in objs:
            self.add_obj(obj)

    def to_nftables(self) -> Nftables:
        """
        Finalize the batch into a document.

        Returns:
            Nftables document holding every appended object in append order
        """
        return Nftables(objects=list(self._data))
