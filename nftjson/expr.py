"""
nftjson Expressions

Value-producing terms used inside statements: immediates, packet field
references, metadata lookups and the ways of combining them.

Expression shapes on the wire:
- Immediates: JSON string, number or boolean
- Lists: JSON array of expressions
- Everything else: a single-key object named after the expression,
  e.g. {"meta": {"key": "iifname"}} or {"range": [1024, 65535]}

In Python an Expression is either a bool/int/str, a list of expressions,
or an instance of one of the models defined here.

Author: nftjson Project
License: GNU GPL v3
"""

from enum import Enum
from typing import Annotated, Any, List, Optional, Union

from pydantic import AfterValidator, StrictInt, StrictStr, model_validator

from .base import NfModel


def validate_expression(value: Any) -> Any:
    """
    Check that a value is a valid Expression.

    Used as a pydantic AfterValidator so that models refuse anything that
    the codec could not render.

    Raises:
        ValueError: If value (or a nested list item) is not an expression
    """
    if isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, list):
        for item in value:
            validate_expression(item)
        return value
    if isinstance(value, EXPRESSION_TYPES):
        return value
    raise ValueError(f"not an expression: {value!r}")


def validate_set_item(value: Any) -> Any:
    """
    Check that a value is a set element: an expression or a SetMapping.

    Arrays inside sets are key/value pairs on the wire, so plain lists are
    refused here; use SetMapping for pairs and Concat for tuples.
    """
    if isinstance(value, SetMapping):
        return value
    if isinstance(value, list):
        raise ValueError(f"set items cannot be lists, use SetMapping or Concat: {value!r}")
    return validate_expression(value)


def validate_mapping_value(value: Any) -> Any:
    """Check the data side of a SetMapping: an expression or a statement."""
    from .stmt import STATEMENT_TYPES
    if isinstance(value, STATEMENT_TYPES):
        return value
    return validate_expression(value)


Expression = Annotated[Any, AfterValidator(validate_expression)]
SetItem = Annotated[Any, AfterValidator(validate_set_item)]
MappingValue = Annotated[Any, AfterValidator(validate_mapping_value)]


# =============================================================================
# ENUMERATIONS
# =============================================================================

class BinaryOperator(Enum):
    """Bitwise operators of binary operation expressions."""
    AND = "&"
    OR = "|"
    XOR = "^"
    LSHIFT = "<<"
    RSHIFT = ">>"


class PayloadBase(Enum):
    """Header a raw payload offset is relative to."""
    LL = "ll"  # link layer
    NH = "nh"  # network header
    TH = "th"  # transport header
    IH = "ih"  # inner header


class MetaKey(Enum):
    """Packet metadata keys."""
    LENGTH = "length"
    PROTOCOL = "protocol"
    PRIORITY = "priority"
    RANDOM = "random"
    MARK = "mark"
    IIF = "iif"
    IIFNAME = "iifname"
    IIFTYPE = "iiftype"
    IIFKIND = "iifkind"
    IIFGROUP = "iifgroup"
    OIF = "oif"
    OIFNAME = "oifname"
    OIFTYPE = "oiftype"
    OIFKIND = "oifkind"
    OIFGROUP = "oifgroup"
    SKUID = "skuid"
    SKGID = "skgid"
    NFTRACE = "nftrace"
    RTCLASSID = "rtclassid"
    IBRIPORT = "ibriport"
    OBRIPORT = "obriport"
    IBRIDGENAME = "ibridgename"
    OBRIDGENAME = "obridgename"
    IBRPVID = "ibrpvid"
    IBRVPROTO = "ibrvproto"
    PKTTYPE = "pkttype"
    CPU = "cpu"
    CGROUP = "cgroup"
    NFPROTO = "nfproto"
    L4PROTO = "l4proto"
    SECPATH = "secpath"
    SECMARK = "secmark"
    TIME = "time"
    DAY = "day"
    HOUR = "hour"
    SDIF = "sdif"
    SDIFNAME = "sdifname"
    BROUTE = "broute"


class RTKey(Enum):
    """Routing data keys."""
    CLASSID = "classid"
    NEXTHOP = "nexthop"
    MTU = "mtu"
    IPSEC = "ipsec"


class RTFamily(Enum):
    IP = "ip"
    IP6 = "ip6"


class CTFamily(Enum):
    IP = "ip"
    IP6 = "ip6"


class CTDir(Enum):
    """Direction of a conntrack lookup."""
    ORIGINAL = "original"
    REPLY = "reply"


class NgMode(Enum):
    """Number generator modes."""
    INC = "inc"
    RANDOM = "random"


class FibResult(Enum):
    OIF = "oif"
    OIFNAME = "oifname"
    TYPE = "type"


class FibFlag(Enum):
    SADDR = "saddr"
    DADDR = "daddr"
    MARK = "mark"
    IIF = "iif"
    OIF = "oif"


class OsfTtl(Enum):
    """TTL handling of passive OS fingerprinting."""
    LOOSE = "loose"
    SKIP = "skip"


class VerdictKind(Enum):
    ACCEPT = "accept"
    DROP = "drop"
    CONTINUE = "continue"
    RETURN = "return"
    JUMP = "jump"
    GOTO = "goto"


# =============================================================================
# COMBINING EXPRESSIONS
# =============================================================================

class BinaryOperation(NfModel):
    """Bitwise operation on two expressions, e.g. {"&": [left, right]}."""
    op: BinaryOperator
    left: Expression
    right: Expression


class Range(NfModel):
    """Inclusive range, rendered as {"range": [low, high]}."""
    low: Expression
    high: Expression


class Concat(NfModel):
    """Concatenation of expressions, e.g. ip saddr . tcp dport."""
    items: List[Expression]


class SetMapping(NfModel):
    """
    A key -> value pair inside a set or map.

    Rendered as a two-element array [key, value]; used for map elements
    and anonymous verdict maps. value may also be a statement, e.g. a
    per-element counter: ["10.0.0.1", {"counter": null}]. Verdicts always
    decode as Verdict expressions.
    """
    key: Expression
    value: MappingValue


class AnonymousSet(NfModel):
    """Anonymous set, rendered as {"set": [...]}."""
    items: List[SetItem]


class Map(NfModel):
    """Map lookup: the data mapped to key."""
    key: Expression
    data: Expression


class Prefix(NfModel):
    """Address prefix, e.g. 10.0.0.0/8."""
    addr: Expression
    len: StrictInt


# =============================================================================
# PACKET DATA
# =============================================================================

class PayloadField(NfModel):
    """Named protocol header field, e.g. protocol='tcp', field='dport'."""
    protocol: StrictStr
    field: StrictStr


class PayloadRaw(NfModel):
    """Raw payload access: len bits at offset relative to base."""
    base: PayloadBase
    offset: StrictInt
    len: StrictInt


class Exthdr(NfModel):
    """IPv6 extension header field."""
    name: StrictStr
    field: Optional[StrictStr] = None
    offset: Optional[StrictInt] = None


class TcpOption(NfModel):
    name: StrictStr
    field: Optional[StrictStr] = None


class SctpChunk(NfModel):
    name: StrictStr
    field: Optional[StrictStr] = None


class Meta(NfModel):
    key: MetaKey


class RT(NfModel):
    key: RTKey
    family: Optional[RTFamily] = None


class CT(NfModel):
    """Conntrack expression, e.g. ct state or ct original saddr."""
    key: StrictStr
    family: Optional[CTFamily] = None
    dir: Optional[CTDir] = None


class Socket(NfModel):
    key: StrictStr


class Osf(NfModel):
    key: StrictStr
    ttl: Optional[OsfTtl] = None


# =============================================================================
# GENERATORS AND HASHES
# =============================================================================

class Numgen(NfModel):
    mode: NgMode
    mod: StrictInt
    offset: Optional[StrictInt] = None


class JHash(NfModel):
    """Jenkins hash of expr, modulus mod."""
    mod: StrictInt
    offset: Optional[StrictInt] = None
    expr: Expression
    seed: Optional[StrictInt] = None


class SymHash(NfModel):
    mod: StrictInt
    offset: Optional[StrictInt] = None


class Fib(NfModel):
    """Forwarding information base lookup."""
    result: FibResult
    flags: Optional[Union[FibFlag, List[FibFlag]]] = None


# =============================================================================
# SET ELEMENTS AND VERDICTS
# =============================================================================

class ElemCounter(NfModel):
    """Per-element counter state."""
    packets: Optional[StrictInt] = None
    bytes: Optional[StrictInt] = None


class Elem(NfModel):
    """Set element carrying per-element options."""
    val: Expression
    timeout: Optional[StrictInt] = None
    expires: Optional[StrictInt] = None
    comment: Optional[StrictStr] = None
    counter: Optional[ElemCounter] = None


class Verdict(NfModel):
    """
    Verdict used as a value, e.g. the data side of a verdict map.

    accept/drop/continue/return render as {"accept": null};
    jump/goto carry a target chain: {"jump": {"target": "other"}}.
    """
    kind: VerdictKind
    target: Optional[StrictStr] = None

    @model_validator(mode='after')
    def check_target(self):
        """Only jump and goto carry a target, and they require one."""
        needs_target = self.kind in (VerdictKind.JUMP, VerdictKind.GOTO)
        if needs_target and self.target is None:
            raise ValueError(f"{self.kind.value} verdict requires a target")
        if not needs_target and self.target is not None:
            raise ValueError(f"{self.kind.value} verdict takes no target")
        return self


EXPRESSION_TYPES = (
    BinaryOperation, Range, Concat, AnonymousSet, Map, Prefix,
    PayloadField, PayloadRaw, Exthdr, TcpOption, SctpChunk,
    Meta, RT, CT, Socket, Osf,
    Numgen, JHash, SymHash, Fib,
    Elem, Verdict,
)
