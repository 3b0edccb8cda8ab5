"""
nftjson Statements

Match-or-action clauses making up the body of a rule.

Each statement is rendered as a single-key object named after it, e.g.
{"counter": {"packets": 0, "bytes": 0}} or {"jump": {"target": "other"}}.
Statements whose fields are all unset render as {"<name>": null}.

Groups:
- Verdicts: Accept, Drop, Continue, Return, Jump, Goto
- Matching and rewriting: Match, Mangle
- Stateful: Counter, Quota, Limit (and their named-object references)
- NAT: SNAT, DNAT, Masquerade, Redirect
- Conntrack: CTHelper, CTCount, CTTimeout, CTExpectation
- Misc: Log, Reject, Set, Meter, Queue, VerdictMap, Flow, Fwd, Dup,
  Notrack, XT, SynProxy, TProxy

Author: nftjson Project
License: GNU GPL v3
"""

from enum import Enum
from typing import Annotated, Any, List, Optional, Union

from pydantic import AfterValidator, Field, StrictBool, StrictInt, StrictStr

from .base import NfModel
from .expr import Expression
from .types import NfTimeUnit, RejectCode, SynProxyFlag


def validate_statement(value: Any) -> Any:
    """
    Check that a value is one of the statement models.

    Raises:
        ValueError: If value is not a statement
    """
    if isinstance(value, STATEMENT_TYPES):
        return value
    raise ValueError(f"not a statement: {value!r}")


Statement = Annotated[Any, AfterValidator(validate_statement)]


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Operator(Enum):
    """Relational and bitwise operators of match statements."""
    AND = "&"
    OR = "|"
    XOR = "^"
    LSHIFT = "<<"
    RSHIFT = ">>"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    LEQ = "<="
    GEQ = ">="
    IN = "in"


class SetOp(Enum):
    """Operations of set and flow statements."""
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class NATFamily(Enum):
    IP = "ip"
    IP6 = "ip6"


class NATFlag(Enum):
    RANDOM = "random"
    FULLY_RANDOM = "fully-random"
    PERSISTENT = "persistent"


class RejectType(Enum):
    TCP_RESET = "tcp reset"
    ICMPX = "icmpx"
    ICMP = "icmp"
    ICMPV6 = "icmpv6"


class LogLevel(Enum):
    EMERG = "emerg"
    ALERT = "alert"
    CRIT = "crit"
    ERR = "err"
    WARN = "warn"
    NOTICE = "notice"
    INFO = "info"
    DEBUG = "debug"
    AUDIT = "audit"


class LogFlag(Enum):
    TCP_SEQUENCE = "tcp sequence"
    TCP_OPTIONS = "tcp options"
    IP_OPTIONS = "ip options"
    SKUID = "skuid"
    ETHER = "ether"
    ALL = "all"


class QueueFlag(Enum):
    BYPASS = "bypass"
    FANOUT = "fanout"


# =============================================================================
# VERDICTS
# =============================================================================

class Accept(NfModel):
    """Terminate ruleset evaluation and accept the packet."""


class Drop(NfModel):
    """Terminate ruleset evaluation and drop the packet."""


class Continue(NfModel):
    """Continue with the next rule."""


class Return(NfModel):
    """Return from the current chain."""


class Jump(NfModel):
    """Continue in target chain, returning here afterwards."""
    target: StrictStr


class Goto(NfModel):
    """Continue in target chain without returning."""
    target: StrictStr


# =============================================================================
# MATCHING AND REWRITING
# =============================================================================

class Match(NfModel):
    """
    Compare left against right with op.

    Example:
        Match(op=Operator.EQ,
              left=PayloadField(protocol='tcp', field='dport'),
              right=22)
    """
    op: Operator
    left: Expression
    right: Expression


class Mangle(NfModel):
    """Write value into the packet or metadata field named by key."""
    key: Expression
    value: Expression


# =============================================================================
# STATEFUL
# =============================================================================

class Counter(NfModel):
    """Anonymous counter; packets/bytes hold the initial or listed values."""
    packets: Optional[StrictInt] = None
    bytes: Optional[StrictInt] = None


class CounterRef(NfModel):
    """Reference to a named counter object: {"counter": "name"}."""
    name: StrictStr


class Quota(NfModel):
    val: StrictInt
    val_unit: StrictStr
    used: Optional[StrictInt] = None
    used_unit: Optional[StrictStr] = None
    inv: Optional[StrictBool] = None


class QuotaRef(NfModel):
    name: StrictStr


class Limit(NfModel):
    """Rate limit; inv=True matches packets over the limit."""
    rate: StrictInt
    rate_unit: Optional[StrictStr] = None
    per: Optional[NfTimeUnit] = None
    burst: Optional[StrictInt] = None
    burst_unit: Optional[StrictStr] = None
    inv: Optional[StrictBool] = None


class LimitRef(NfModel):
    name: StrictStr


# =============================================================================
# FORWARDING
# =============================================================================

class Flow(NfModel):
    """Offload the connection to a flowtable ("@name")."""
    op: SetOp
    flowtable: StrictStr


class Fwd(NfModel):
    dev: Optional[Expression] = None
    family: Optional[NATFamily] = None
    addr: Optional[Expression] = None


class Notrack(NfModel):
    """Disable connection tracking for the packet."""


class Dup(NfModel):
    addr: Expression
    dev: Optional[Expression] = None


# =============================================================================
# NAT
# =============================================================================

class _NAT(NfModel):
    addr: Optional[Expression] = None
    family: Optional[NATFamily] = None
    port: Optional[Expression] = None
    flags: Optional[Union[NATFlag, List[NATFlag]]] = None


class SNAT(_NAT):
    pass


class DNAT(_NAT):
    pass


class Masquerade(_NAT):
    pass


class Redirect(_NAT):
    pass


# =============================================================================
# MISC
# =============================================================================

class Reject(NfModel):
    type: Optional[RejectType] = None
    expr: Optional[RejectCode] = None


class Set(NfModel):
    """Dynamically add, update or delete elem in a named set ("@name")."""
    op: SetOp
    elem: Expression
    set: StrictStr


class Log(NfModel):
    prefix: Optional[StrictStr] = None
    group: Optional[StrictInt] = None
    snaplen: Optional[StrictInt] = None
    queue_threshold: Optional[StrictInt] = Field(None, alias='queue-threshold')
    level: Optional[LogLevel] = None
    flags: Optional[Union[LogFlag, List[LogFlag]]] = None


class Meter(NfModel):
    """Apply stmt per distinct key in the meter called name."""
    name: StrictStr
    key: Expression
    stmt: Statement
    size: Optional[StrictInt] = None


class Queue(NfModel):
    """Pass the packet to userspace queue num."""
    num: Expression
    flags: Optional[Union[QueueFlag, List[QueueFlag]]] = None


class VerdictMap(NfModel):
    """Verdict map lookup: {"vmap": {"key": ..., "data": ...}}."""
    key: Expression
    data: Expression


class XT(NfModel):
    """Legacy xtables match/target; the payload is kept as opaque JSON."""
    value: Optional[Any] = None


# =============================================================================
# CONNTRACK
# =============================================================================

class CTHelper(NfModel):
    """Assign the named ct helper object to the connection."""
    name: StrictStr


class CTCount(NfModel):
    val: Expression
    inv: Optional[StrictBool] = None


class CTTimeout(NfModel):
    """Assign a ct timeout policy object."""
    name: Expression


class CTExpectation(NfModel):
    """Assign a ct expectation object."""
    name: Expression


# =============================================================================
# TCP PROXYING
# =============================================================================

class SynProxy(NfModel):
    mss: Optional[StrictInt] = None
    wscale: Optional[StrictInt] = None
    flags: Optional[Union[SynProxyFlag, List[SynProxyFlag]]] = None


class TProxy(NfModel):
    """Transparently redirect the packet to a local socket."""
    family: Optional[NATFamily] = None
    port: Optional[StrictInt] = None
    addr: Optional[Expression] = None


STATEMENT_TYPES = (
    Accept, Drop, Continue, Return, Jump, Goto,
    Match, Mangle,
    Counter, CounterRef, Quota, QuotaRef, Limit, LimitRef,
    Flow, Fwd, Notrack, Dup,
    SNAT, DNAT, Masquerade, Redirect,
    Reject, Set, Log, Meter, Queue, VerdictMap, XT,
    CTHelper, CTCount, CTTimeout, CTExpectation,
    SynProxy, TProxy,
)
