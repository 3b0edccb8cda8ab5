"""
nftjson Model Base

Common pydantic base class for every schema, statement and expression model.

Models are immutable value objects:
- frozen: fields cannot be reassigned once constructed
- extra='forbid': unknown fields are rejected, never dropped
- populate_by_name: fields with a wire alias (e.g. 'gc-interval') can also
  be passed by their Python name (gc_interval) when building models in
  code; the codec only accepts the wire name
- equality is structural and type-strict: True, 1 and 1.0 are different
  immediates because they render differently

Author: nftjson Project
License: GNU GPL v3
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


def _typed(value: Any) -> Any:
    """Tag immediates with their type so that True != 1."""
    if isinstance(value, (bool, int, float, str)):
        return (type(value), value)
    if isinstance(value, list):
        return [_typed(item) for item in value]
    if isinstance(value, dict):
        return {key: _typed(item) for key, item in value.items()}
    return value


class NfModel(BaseModel):
    """Base class of all nftables JSON models."""

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        populate_by_name=True,
    )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, NfModel):
            return NotImplemented
        if type(self) is not type(other):
            return False
        return all(
            _typed(getattr(self, name)) == _typed(getattr(other, name))
            for name in type(self).model_fields
        )
