"""
nftjson Schema Model

Top-level document, commands and list objects of the nftables JSON grammar.

Document layout:
    {"nftables": [<object>, ...]}

where each object is either a command wrapping a list object
    {"add": {"table": {"family": "inet", "name": "filter"}}}
or, on the read path (nft -j list ruleset), a bare list object
    {"table": {"family": "inet", "name": "filter", "handle": 1}}

List objects: Table, Chain, Rule, Set, Map, Element, FlowTable, Counter,
Quota, CTHelper, Limit, Metainfo, CTTimeout, CTExpectation, SynProxy.

Optional fields left as None are omitted from the rendered JSON; the
same fields decode back to None when the key is missing.

Author: nftjson Project
License: GNU GPL v3
"""

from enum import Enum
from typing import Annotated, Any, List, Optional, Union

from pydantic import AfterValidator, Field, StrictBool, StrictInt, StrictStr, model_validator

from .base import NfModel
from .expr import Expression, SetItem
from .stmt import Statement
from .types import (
    CTHProto,
    NfChainPolicy,
    NfChainType,
    NfFamily,
    NfHook,
    NfTimeUnit,
    SynProxyFlag,
)


class CmdVerb(Enum):
    """Command verbs wrapping a list object."""
    ADD = "add"
    REPLACE = "replace"
    CREATE = "create"
    INSERT = "insert"
    DELETE = "delete"
    LIST = "list"
    RESET = "reset"
    FLUSH = "flush"
    RENAME = "rename"


class SetPolicy(Enum):
    PERFORMANCE = "performance"
    MEMORY = "memory"


class SetFlag(Enum):
    CONSTANT = "constant"
    INTERVAL = "interval"
    TIMEOUT = "timeout"
    DYNAMIC = "dynamic"


class LimitUnit(Enum):
    PACKETS = "packets"
    BYTES = "bytes"


class SetTypes(object):
    """
    Common set element type names.

    Set and map types are plain strings on the wire (nft knows many more
    than listed here); these constants only save typing.
    """
    IPV4_ADDR = "ipv4_addr"
    IPV6_ADDR = "ipv6_addr"
    ETHER_ADDR = "ether_addr"
    INET_PROTO = "inet_proto"
    INET_SERVICE = "inet_service"
    MARK = "mark"
    IFNAME = "ifname"
    VERDICT = "verdict"


# =============================================================================
# TABLES, CHAINS AND RULES
# =============================================================================

class Table(NfModel):
    """
    Container for chains, sets, maps and stateful objects.

    Attributes:
        family: Address family
        name: Table name
        handle: Kernel handle (read path only)
        flags: Table flags, e.g. "dormant" (single flag or list)
        comment: Free-form comment
    """
    family: NfFamily
    name: StrictStr
    handle: Optional[StrictInt] = None
    flags: Optional[Union[StrictStr, List[StrictStr]]] = None
    comment: Optional[StrictStr] = None


class Chain(NfModel):
    """
    Ordered container for rules.

    A base chain carries type, hook and prio (and dev for netdev
    ingress/egress hooks) plus an optional policy; a regular chain
    leaves them unset and is only reached by jump/goto.

    Attributes:
        family: Address family of the owning table
        table: Owning table name
        name: Chain name
        newname: New name (rename commands only)
        handle: Kernel handle
        type: Base chain type
        hook: Hook point
        prio: Priority relative to other chains on the same hook
        dev: Bound device(s) (single name or list)
        policy: Base chain default verdict
        comment: Free-form comment
    """
    family: NfFamily
    table: StrictStr
    name: StrictStr
    newname: Optional[StrictStr] = None
    handle: Optional[StrictInt] = None
    type: Optional[NfChainType] = None
    hook: Optional[NfHook] = None
    prio: Optional[StrictInt] = None
    dev: Optional[Union[StrictStr, List[StrictStr]]] = None
    policy: Optional[NfChainPolicy] = None
    comment: Optional[StrictStr] = None


class Rule(NfModel):
    """
    A list of statements evaluated in order.

    Attributes:
        family, table, chain: Address of the owning chain
        handle: Rule handle; for add/insert it names the rule to position
            after/before
        index: Position (0-based) to add/insert at, instead of a handle
        comment: Free-form comment
        expr: Statements (may be left out for delete-by-handle)
    """
    family: NfFamily
    table: StrictStr
    chain: StrictStr
    handle: Optional[StrictInt] = None
    index: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    expr: Optional[List[Statement]] = None


# =============================================================================
# SETS, MAPS AND ELEMENTS
# =============================================================================

class Set(NfModel):
    """
    Named set.

    type is a type name ("ipv4_addr") or a list of names for
    concatenated keys (["ipv4_addr", "inet_service"]); the form given
    is kept on output.
    """
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    type: Union[StrictStr, List[StrictStr]]
    policy: Optional[SetPolicy] = None
    flags: Optional[Union[SetFlag, List[SetFlag]]] = None
    elem: Optional[List[SetItem]] = None
    timeout: Optional[StrictInt] = None
    gc_interval: Optional[StrictInt] = Field(None, alias='gc-interval')
    size: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    stmt: Optional[List[Statement]] = None


class Map(NfModel):
    """Named map: like a Set, with map naming the type of the values."""
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    type: Union[StrictStr, List[StrictStr]]
    map: Union[StrictStr, List[StrictStr]]
    policy: Optional[SetPolicy] = None
    flags: Optional[Union[SetFlag, List[SetFlag]]] = None
    elem: Optional[List[SetItem]] = None
    timeout: Optional[StrictInt] = None
    gc_interval: Optional[StrictInt] = Field(None, alias='gc-interval')
    size: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    stmt: Optional[List[Statement]] = None


class Element(NfModel):
    """Elements to add to (or delete from) the set or map called name."""
    family: NfFamily
    table: StrictStr
    name: StrictStr
    elem: List[SetItem]


# =============================================================================
# FLOWTABLES AND STATEFUL OBJECTS
# =============================================================================

class FlowTable(NfModel):
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    hook: Optional[NfHook] = None
    prio: Optional[StrictInt] = None
    dev: Optional[Union[StrictStr, List[StrictStr]]] = None


class Counter(NfModel):
    """Named counter object."""
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    packets: Optional[StrictInt] = None
    bytes: Optional[StrictInt] = None


class Quota(NfModel):
    """Named quota object; inv=True matches once the quota is exceeded."""
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    bytes: Optional[StrictInt] = None
    used: Optional[StrictInt] = None
    inv: Optional[StrictBool] = None


class CTHelper(NfModel):
    """Named ct helper object; type is the helper name, e.g. "ftp"."""
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    type: StrictStr
    protocol: Optional[CTHProto] = None
    l3proto: Optional[StrictStr] = None


class Limit(NfModel):
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    rate: Optional[StrictInt] = None
    per: Optional[NfTimeUnit] = None
    burst: Optional[StrictInt] = None
    unit: Optional[LimitUnit] = None
    inv: Optional[StrictBool] = None


class CTTimeout(NfModel):
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    protocol: Optional[CTHProto] = None
    state: Optional[StrictStr] = None
    value: Optional[StrictInt] = None
    l3proto: Optional[StrictStr] = None


class CTExpectation(NfModel):
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    l3proto: Optional[StrictStr] = None
    protocol: Optional[CTHProto] = None
    dport: Optional[StrictInt] = None
    timeout: Optional[StrictInt] = None
    size: Optional[StrictInt] = None


class SynProxy(NfModel):
    family: NfFamily
    table: StrictStr
    name: StrictStr
    handle: Optional[StrictInt] = None
    mss: Optional[StrictInt] = None
    wscale: Optional[StrictInt] = None
    flags: Optional[Union[SynProxyFlag, List[SynProxyFlag]]] = None


class Metainfo(NfModel):
    """Version information nft prepends to listed rulesets."""
    version: Optional[StrictStr] = None
    release_name: Optional[StrictStr] = None
    json_schema_version: Optional[StrictInt] = None


# =============================================================================
# COMMAND-ONLY TARGETS
# =============================================================================

class Meter(NfModel):
    """Meter addressed by flush commands."""
    name: StrictStr
    key: Expression
    stmt: Statement


class Ruleset(NfModel):
    """The whole ruleset: {"flush": {"ruleset": null}}."""


class CounterList(NfModel):
    """Several counters reset by one command: {"reset": {"counters": [...]}}."""
    items: List[Counter]


class QuotaList(NfModel):
    items: List[Quota]


LIST_OBJECT_TYPES = (
    Table, Chain, Rule, Set, Map, Element, FlowTable, Counter, Quota,
    CTHelper, Limit, Metainfo, CTTimeout, CTExpectation, SynProxy,
)

FLUSH_TARGET_TYPES = (Table, Chain, Set, Map, Meter, Ruleset)
RESET_TARGET_TYPES = (Counter, Quota, CounterList, QuotaList)

# Verbs restricted to particular targets; all others take any list object
VERB_TARGETS = {
    CmdVerb.REPLACE: (Rule,),
    CmdVerb.RENAME: (Chain,),
    CmdVerb.FLUSH: FLUSH_TARGET_TYPES,
    CmdVerb.RESET: RESET_TARGET_TYPES,
}


def validate_list_object(value: Any) -> Any:
    if isinstance(value, LIST_OBJECT_TYPES):
        return value
    raise ValueError(f"not a list object: {value!r}")


def validate_object(value: Any) -> Any:
    """Check that value is a command or a bare list object."""
    if isinstance(value, NfCmd):
        return value
    return validate_list_object(value)


NfObject = Annotated[Any, AfterValidator(validate_object)]


# =============================================================================
# COMMANDS AND DOCUMENT
# =============================================================================

class NfCmd(NfModel):
    """
    A command applying verb to obj.

    Example:
        NfCmd(verb=CmdVerb.ADD, obj=Table(family=NfFamily.INET, name='filter'))
        renders as {"add": {"table": {"family": "inet", "name": "filter"}}}
    """
    verb: CmdVerb
    obj: Any

    @model_validator(mode='after')
    def check_target(self):
        """Reject targets the verb cannot act on."""
        allowed = VERB_TARGETS.get(self.verb, LIST_OBJECT_TYPES)
        if not isinstance(self.obj, allowed):
            names = ', '.join(cls.__name__ for cls in allowed)
            raise ValueError(
                f"'{self.verb.value}' takes one of {names}, "
                f"not {type(self.obj).__name__}"
            )
        if self.verb == CmdVerb.RENAME and self.obj.newname is None:
            raise ValueError("'rename' requires a chain with newname set")
        return self


class Nftables(NfModel):
    """
    A complete JSON document: an ordered sequence of commands and/or
    bare list objects.
    """
    objects: List[NfObject] = Field(alias='nftables')

    def to_json(self, indent: Optional[int] = None) -> str:
        """Render this document as JSON text."""
        from .codec import encode
        return encode(self, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> 'Nftables':
        """Parse JSON text into a document; raises codec.DecodeError."""
        from .codec import decode
        return decode(text)
