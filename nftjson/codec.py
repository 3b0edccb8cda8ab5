"""
nftjson Codec

Mapping between the model classes and nftables JSON.

Rendering rules:
- Commands, list objects, statements and expressions are single-key
  objects keyed by their tag ("add", "chain", "counter", "meta", ...)
- Fields holding None are left out, never rendered as null
- A tagged value whose fields are all unset renders as null,
  e.g. {"accept": null}, {"counter": null}, {"flush": {"ruleset": null}}
- Fields accepting a single value or a list keep the form they were
  given in

Parsing rules:
- Expressions are tried as scalars (bool, int, str) first, then as
  arrays, then as single-key objects
- counter/quota/limit statements holding a string are references to
  named objects, anything else is the anonymous form
- null and {} are the same (empty) value for tagged variants
- Unknown tags and unknown fields are errors; aliased fields are only
  known by their wire name ("gc-interval", not "gc_interval")
- The value of a [key, value] set element is an expression, or a
  statement when its tag names no expression

Every decoding failure raises DecodeError carrying the JSON path of the
offending value, e.g. nftables[3].add.rule.expr[0].match.left.

Author: nftjson Project
License: GNU GPL v3
"""

import json
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import ValidationError

from . import expr, schema, stmt
from .base import NfModel


Path = Tuple[Any, ...]


class ReadError(Exception):
    """
    Base class of errors raised while reading a ruleset: nft failures
    (helper.NftablesError) and undecodable JSON (DecodeError).
    """
    pass


class DecodeError(ReadError, ValueError):
    """
    Raised when JSON does not match the nftables grammar.

    Attributes:
        path: Keys and indices from the document root to the bad value
        expected: Description of what was expected there
        actual: The value found (None for a missing field)
    """

    def __init__(self, path: Path, expected: str, actual: Any = None):
        self.path = tuple(path)
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{self.path_str or '<root>'}: {expected} (got {_describe(actual)})"
        )

    @property
    def path_str(self) -> str:
        """Path rendered as nftables[0].add.chain.hook"""
        text = ''
        for part in self.path:
            if isinstance(part, int):
                text += f'[{part}]'
            else:
                text += f'.{part}' if text else str(part)
        return text


class EncodeError(ValueError):
    """Raised when a model holds a value that has no JSON rendering."""
    pass


def _describe(value: Any) -> str:
    try:
        text = json.dumps(value)
    except (TypeError, ValueError):
        text = repr(value)
    if len(text) > 80:
        text = text[:77] + '...'
    return text


# =============================================================================
# VARIANT REGISTRY
# =============================================================================

class _Variant(object):
    """
    How one tagged model class maps to JSON.

    Args:
        tag: Key naming the variant on the wire
        cls: Model class
        nested: Field name -> decoder for fields holding expressions,
            statements or other tagged values
        body: Name of the one field whose value is the whole tagged
            value ({"counter": "name"}, {"concat": [...]})
    """

    def __init__(self, tag: str, cls, nested: Optional[Dict[str, Callable]] = None,
                 body: Optional[str] = None):
        self.tag = tag
        self.cls = cls
        self.nested = nested or {}
        self.body = body

    def __call__(self, value: Any, path: Path):
        if self.body is not None:
            decoder = self.nested.get(self.body)
            if decoder is not None and value is not None:
                value = decoder(value, path)
            return _validate(self.cls, {self.body: value}, path, whole=True)
        if value is None:
            if any(field.is_required() for field in self.cls.model_fields.values()):
                raise DecodeError(path, f"'{self.tag}' requires an object", value)
            value = {}
        return _decode_struct(self.cls, value, path, self.nested)


def _pick_error(errors: list, data: dict) -> dict:
    """
    Choose the error to report.

    For fields taking a single value or a list, pydantic reports one error
    per union member; when the input is a list, the list member's error
    names the offending item.
    """
    first = errors[0]
    field = first['loc'][:1]
    if field and isinstance(data.get(field[0]), list):
        for error in errors:
            loc = error['loc']
            if loc[:1] == field and any(isinstance(p, int) for p in loc[1:]):
                return error
    return first


def _validate(cls, data: dict, path: Path, whole: bool = False):
    """Build a model, turning pydantic errors into a DecodeError at path."""
    try:
        return cls.model_validate(data)
    except ValidationError as e:
        error = _pick_error(e.errors(), data)
        loc = tuple(error['loc'])
        if loc:
            # Everything past the field name is either a list index or a
            # pydantic union member label; keep only the indices
            where = tuple(p for p in loc[1:] if isinstance(p, int))
            where = where if whole else (loc[0],) + where
        else:
            where = ()
        if error['type'] == 'missing':
            raise DecodeError(path + where, 'required field is missing', None) from e
        raise DecodeError(path + where, error['msg'], error.get('input')) from e


def _decode_struct(cls, value: Any, path: Path, nested: Dict[str, Callable]):
    if not isinstance(value, dict):
        raise DecodeError(path, 'expected an object', value)
    # Aliased fields are only known by their wire name
    for name, field in cls.model_fields.items():
        if field.alias and field.alias != name and name in value:
            raise DecodeError(path + (name,), 'Extra inputs are not permitted', value[name])
    data = dict(value)
    for key, decoder in nested.items():
        if data.get(key) is not None:
            data[key] = decoder(data[key], path + (key,))
    return _validate(cls, data, path)


def _single_key(value: Any, path: Path, what: str) -> Tuple[str, Any]:
    if not isinstance(value, dict) or len(value) != 1:
        raise DecodeError(path, f"expected a single-key {what} object", value)
    return next(iter(value.items()))


def _list_of(decoder: Callable) -> Callable:
    def decode_list(value, path):
        if not isinstance(value, list):
            raise DecodeError(path, 'expected an array', value)
        return [decoder(item, path + (i,)) for i, item in enumerate(value)]
    return decode_list


def _pair(value: Any, path: Path, what: str) -> Tuple[Any, Any]:
    if not isinstance(value, list) or len(value) != 2:
        raise DecodeError(path, f"expected a two-element array ({what})", value)
    return (decode_expression(value[0], path + (0,)),
            decode_expression(value[1], path + (1,)))


# =============================================================================
# EXPRESSIONS
# =============================================================================

def decode_expression(value: Any, path: Path = ()):
    """
    Parse one expression.

    Args:
        value: Parsed JSON value
        path: Location of value in the document (for error reporting)

    Returns:
        bool, int, str, list of expressions, or an expression model

    Raises:
        DecodeError: On unknown tags or malformed fields
    """
    if isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, list):
        return [decode_expression(item, path + (i,)) for i, item in enumerate(value)]
    tag, body = _single_key(value, path, 'expression')
    decoder = _EXPRESSIONS.get(tag)
    if decoder is None:
        raise DecodeError(path, 'unknown expression', tag)
    return decoder(body, path + (tag,))


def _decode_binary(op: expr.BinaryOperator) -> Callable:
    def decode(value, path):
        left, right = _pair(value, path, 'left and right operand')
        return _validate(expr.BinaryOperation, {'op': op, 'left': left, 'right': right}, path)
    return decode


def _decode_range(value, path):
    low, high = _pair(value, path, 'low and high bound')
    return _validate(expr.Range, {'low': low, 'high': high}, path)


def _decode_payload(value, path):
    if isinstance(value, dict) and 'base' in value:
        return _decode_struct(expr.PayloadRaw, value, path, {})
    return _decode_struct(expr.PayloadField, value, path, {})


def _decode_verdict(kind: expr.VerdictKind) -> Callable:
    def decode(value, path):
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise DecodeError(path, 'expected an object or null', value)
        if 'kind' in value:
            raise DecodeError(path + ('kind',), 'Extra inputs are not permitted', value['kind'])
        return _validate(expr.Verdict, dict(value, kind=kind), path)
    return decode


def decode_set_item(value: Any, path: Path = ()):
    """Parse a set element: [key, value] for mappings, else an expression."""
    if isinstance(value, list):
        if len(value) != 2:
            raise DecodeError(path, 'expected a two-element array (key and value)', value)
        key = decode_expression(value[0], path + (0,))
        data = _decode_mapping_value(value[1], path + (1,))
        return _validate(expr.SetMapping, {'key': key, 'value': data}, path)
    return decode_expression(value, path)


def _decode_mapping_value(value: Any, path: Path):
    # Expressions win over statements sharing a tag, e.g. accept or set
    if isinstance(value, dict) and len(value) == 1:
        tag = next(iter(value))
        if tag not in _EXPRESSIONS and (tag in _STATEMENTS or tag in _STATEMENT_REFS):
            return decode_statement(value, path)
    return decode_expression(value, path)


_decode_expressions = _list_of(decode_expression)
_decode_set_items = _list_of(decode_set_item)


def _decode_elem_counter(value, path):
    return _decode_struct(expr.ElemCounter, value, path, {})


_EXPRESSION_VARIANTS = [
    _Variant('concat', expr.Concat, {'items': _decode_expressions}, body='items'),
    _Variant('set', expr.AnonymousSet, {'items': _decode_set_items}, body='items'),
    _Variant('map', expr.Map, {'key': decode_expression, 'data': decode_expression}),
    _Variant('prefix', expr.Prefix, {'addr': decode_expression}),
    _Variant('payload', expr.PayloadField),
    _Variant('payload', expr.PayloadRaw),
    _Variant('exthdr', expr.Exthdr),
    _Variant('tcp option', expr.TcpOption),
    _Variant('sctp chunk', expr.SctpChunk),
    _Variant('meta', expr.Meta),
    _Variant('rt', expr.RT),
    _Variant('ct', expr.CT),
    _Variant('numgen', expr.Numgen),
    _Variant('jhash', expr.JHash, {'expr': decode_expression}),
    _Variant('symhash', expr.SymHash),
    _Variant('fib', expr.Fib),
    _Variant('elem', expr.Elem, {'val': decode_expression, 'counter': _decode_elem_counter}),
    _Variant('socket', expr.Socket),
    _Variant('osf', expr.Osf),
]

_EXPRESSIONS: Dict[str, Callable] = {v.tag: v for v in _EXPRESSION_VARIANTS}
_EXPRESSIONS['payload'] = _decode_payload
_EXPRESSIONS['range'] = _decode_range
_EXPRESSIONS.update((op.value, _decode_binary(op)) for op in expr.BinaryOperator)
_EXPRESSIONS.update((kind.value, _decode_verdict(kind)) for kind in expr.VerdictKind)


# =============================================================================
# STATEMENTS
# =============================================================================

def decode_statement(value: Any, path: Path = ()):
    """
    Parse one statement.

    Raises:
        DecodeError: On unknown statements or malformed fields
    """
    tag, body = _single_key(value, path, 'statement')
    if isinstance(body, str) and tag in _STATEMENT_REFS:
        return _STATEMENT_REFS[tag](body, path + (tag,))
    decoder = _STATEMENTS.get(tag)
    if decoder is None:
        raise DecodeError(path, 'unknown statement', tag)
    return decoder(body, path + (tag,))


_decode_statements = _list_of(decode_statement)


def _raw(value, path):
    return value


_NAT_FIELDS = {'addr': decode_expression, 'port': decode_expression}

_STATEMENT_VARIANTS = [
    _Variant('accept', stmt.Accept),
    _Variant('drop', stmt.Drop),
    _Variant('continue', stmt.Continue),
    _Variant('return', stmt.Return),
    _Variant('jump', stmt.Jump),
    _Variant('goto', stmt.Goto),
    _Variant('match', stmt.Match, {'left': decode_expression, 'right': decode_expression}),
    _Variant('mangle', stmt.Mangle, {'key': decode_expression, 'value': decode_expression}),
    _Variant('counter', stmt.Counter),
    _Variant('quota', stmt.Quota),
    _Variant('limit', stmt.Limit),
    _Variant('flow', stmt.Flow),
    _Variant('fwd', stmt.Fwd, {'dev': decode_expression, 'addr': decode_expression}),
    _Variant('notrack', stmt.Notrack),
    _Variant('dup', stmt.Dup, {'addr': decode_expression, 'dev': decode_expression}),
    _Variant('snat', stmt.SNAT, _NAT_FIELDS),
    _Variant('dnat', stmt.DNAT, _NAT_FIELDS),
    _Variant('masquerade', stmt.Masquerade, _NAT_FIELDS),
    _Variant('redirect', stmt.Redirect, _NAT_FIELDS),
    _Variant('reject', stmt.Reject),
    _Variant('set', stmt.Set, {'elem': decode_expression}),
    _Variant('log', stmt.Log),
    _Variant('ct helper', stmt.CTHelper, body='name'),
    _Variant('meter', stmt.Meter, {'key': decode_expression, 'stmt': decode_statement}),
    _Variant('queue', stmt.Queue, {'num': decode_expression}),
    _Variant('vmap', stmt.VerdictMap, {'key': decode_expression, 'data': decode_expression}),
    _Variant('ct count', stmt.CTCount, {'val': decode_expression}),
    _Variant('ct timeout', stmt.CTTimeout, {'name': decode_expression}, body='name'),
    _Variant('ct expectation', stmt.CTExpectation, {'name': decode_expression}, body='name'),
    _Variant('xt', stmt.XT, {'value': _raw}, body='value'),
    _Variant('synproxy', stmt.SynProxy),
    _Variant('tproxy', stmt.TProxy, {'addr': decode_expression}),
]

# Named-object references sharing a tag with the anonymous statement
_STATEMENT_REF_VARIANTS = [
    _Variant('counter', stmt.CounterRef, body='name'),
    _Variant('quota', stmt.QuotaRef, body='name'),
    _Variant('limit', stmt.LimitRef, body='name'),
]

_STATEMENTS: Dict[str, Callable] = {v.tag: v for v in _STATEMENT_VARIANTS}
_STATEMENT_REFS: Dict[str, Callable] = {v.tag: v for v in _STATEMENT_REF_VARIANTS}


# =============================================================================
# LIST OBJECTS AND COMMANDS
# =============================================================================

_SET_FIELDS = {'elem': _decode_set_items, 'stmt': _decode_statements}


def _flat(cls) -> Callable:
    def decode(value, path):
        return _decode_struct(cls, value, path, {})
    return decode


_OBJECT_VARIANTS = [
    _Variant('table', schema.Table),
    _Variant('chain', schema.Chain),
    _Variant('rule', schema.Rule, {'expr': _decode_statements}),
    _Variant('set', schema.Set, _SET_FIELDS),
    _Variant('map', schema.Map, _SET_FIELDS),
    _Variant('element', schema.Element, {'elem': _decode_set_items}),
    _Variant('flowtable', schema.FlowTable),
    _Variant('counter', schema.Counter),
    _Variant('quota', schema.Quota),
    _Variant('ct helper', schema.CTHelper),
    _Variant('limit', schema.Limit),
    _Variant('metainfo', schema.Metainfo),
    _Variant('ct timeout', schema.CTTimeout),
    _Variant('ct expectation', schema.CTExpectation),
    _Variant('synproxy', schema.SynProxy),
]

_OBJECTS: Dict[str, _Variant] = {v.tag: v for v in _OBJECT_VARIANTS}

_TARGET_VARIANTS = [
    _Variant('meter', schema.Meter, {'key': decode_expression, 'stmt': decode_statement}),
    _Variant('ruleset', schema.Ruleset),
    _Variant('counters', schema.CounterList,
             {'items': _list_of(_flat(schema.Counter))}, body='items'),
    _Variant('quotas', schema.QuotaList,
             {'items': _list_of(_flat(schema.Quota))}, body='items'),
]


def _targets(*tags) -> Dict[str, _Variant]:
    pool = dict(_OBJECTS, **{v.tag: v for v in _TARGET_VARIANTS})
    return {tag: pool[tag] for tag in tags}


_VERB_TARGETS = {
    schema.CmdVerb.REPLACE: _targets('rule'),
    schema.CmdVerb.RENAME: _targets('chain'),
    schema.CmdVerb.FLUSH: _targets('table', 'chain', 'set', 'map', 'meter', 'ruleset'),
    schema.CmdVerb.RESET: _targets('counter', 'quota', 'counters', 'quotas'),
}

_VERBS = {verb.value: verb for verb in schema.CmdVerb}


def decode_object(value: Any, path: Path = ()):
    """
    Parse one entry of the "nftables" array: a command or a bare list object.

    Raises:
        DecodeError: On unknown verbs/kinds or malformed objects
    """
    tag, body = _single_key(value, path, 'command or list')
    verb = _VERBS.get(tag)
    if verb is None:
        variant = _OBJECTS.get(tag)
        if variant is None:
            raise DecodeError(path, 'unknown command or list object', tag)
        return variant(body, path + (tag,))

    path = path + (tag,)
    targets = _VERB_TARGETS.get(verb, _OBJECTS)
    kind, target = _single_key(body, path, f"'{tag}' target")
    variant = targets.get(kind)
    if variant is None:
        raise DecodeError(path, f"'{tag}' cannot act on this object", kind)
    obj = variant(target, path + (kind,))
    return _validate(schema.NfCmd, {'verb': verb, 'obj': obj}, path)


def from_dict(data: Any) -> schema.Nftables:
    """
    Build a document from parsed JSON ({"nftables": [...]}).

    Raises:
        DecodeError: If data is not a valid nftables document
    """
    if not isinstance(data, dict):
        raise DecodeError((), 'expected an object with an "nftables" array', data)
    for key in data:
        if key != 'nftables':
            raise DecodeError((key,), 'Extra inputs are not permitted', data[key])
    if 'nftables' not in data:
        raise DecodeError(('nftables',), 'required field is missing', None)
    items = data['nftables']
    if not isinstance(items, list):
        raise DecodeError(('nftables',), 'expected an array', items)
    objects = [decode_object(item, ('nftables', i)) for i, item in enumerate(items)]
    return schema.Nftables(objects=objects)


def decode(text) -> schema.Nftables:
    """
    Parse JSON text (str or bytes) into a document.

    Example:
        >>> doc = decode('{"nftables": [{"add": {"table": {"family": "ip", "name": "t0"}}}]}')
        >>> doc.objects[0].obj.name
        't0'

    Raises:
        DecodeError: On invalid JSON or a grammar mismatch
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(
            (), 'invalid JSON', f"{e.msg} at line {e.lineno} column {e.colno}"
        ) from e
    return from_dict(data)


# =============================================================================
# ENCODING
# =============================================================================

def _encode_fields(model: NfModel) -> dict:
    body = {}
    for name, field in type(model).model_fields.items():
        value = getattr(model, name)
        if value is None:
            continue
        body[field.alias or name] = _encode_value(value)
    return body


def _encode_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_encode_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode_value(item) for key, item in value.items()}
    if isinstance(value, NfModel):
        return _encode_model(value)
    raise EncodeError(f"cannot render {type(value).__name__} value {value!r}")


def _encode_model(model: NfModel) -> Any:
    special = _SPECIAL_ENCODERS.get(type(model))
    if special is not None:
        return special(model)
    variant = _VARIANTS_BY_TYPE.get(type(model))
    if variant is None:
        return _encode_fields(model)
    if variant.body is not None:
        return {variant.tag: _encode_value(getattr(model, variant.body))}
    return {variant.tag: _encode_fields(model) or None}


def _encode_verdict(verdict: expr.Verdict) -> dict:
    if verdict.target is None:
        return {verdict.kind.value: None}
    return {verdict.kind.value: {'target': verdict.target}}


_SPECIAL_ENCODERS = {
    expr.BinaryOperation: lambda m: {m.op.value: [_encode_value(m.left), _encode_value(m.right)]},
    expr.Range: lambda m: {'range': [_encode_value(m.low), _encode_value(m.high)]},
    expr.SetMapping: lambda m: [_encode_value(m.key), _encode_value(m.value)],
    expr.Verdict: _encode_verdict,
    schema.CounterList: lambda m: {'counters': [_encode_fields(c) for c in m.items]},
    schema.QuotaList: lambda m: {'quotas': [_encode_fields(q) for q in m.items]},
    schema.NfCmd: lambda m: {m.verb.value: _encode_model(m.obj)},
}

_VARIANTS_BY_TYPE = {
    v.cls: v
    for v in (_EXPRESSION_VARIANTS + _STATEMENT_VARIANTS + _STATEMENT_REF_VARIANTS
              + _OBJECT_VARIANTS + _TARGET_VARIANTS)
}


def encode_expression(value: Any) -> Any:
    """Render an expression as a JSON-ready Python value."""
    return _encode_value(value)


def encode_statement(statement) -> dict:
    """Render a statement as a JSON-ready dict."""
    return _encode_model(statement)


def encode_object(obj) -> dict:
    """Render a command or list object as a JSON-ready dict."""
    return _encode_model(obj)


def to_dict(document: schema.Nftables) -> dict:
    """Render a document as JSON-ready Python data."""
    if not isinstance(document, schema.Nftables):
        raise EncodeError(f"expected an Nftables document, not {type(document).__name__}")
    return {'nftables': [_encode_model(obj) for obj in document.objects]}


def encode(document: schema.Nftables, indent: Optional[int] = None) -> str:
    """
    Render a document as JSON text.

    Output is compact (no whitespace) unless indent is given.

    Example:
        >>> doc = Nftables(objects=[NfCmd(verb=CmdVerb.ADD,
        ...                               obj=Table(family=NfFamily.IP, name='t0'))])
        >>> encode(doc)
        '{"nftables":[{"add":{"table":{"family":"ip","name":"t0"}}}]}'
    """
    separators = (',', ':') if indent is None else (',', ': ')
    return json.dumps(to_dict(document), indent=indent, separators=separators)
