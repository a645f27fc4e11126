"""The value tree produced by every parser and consumed by every serializer.

A tree is built only from ``None``, ``bool``, ``int``, ``float``, ``str``,
``list`` and ``dict`` with string keys. ``kind_of`` is the single place that
maps a Python object onto that closed set.
"""
from __future__ import annotations

import enum
from typing import Any, Union

Value = Union[None, bool, int, float, str, list["Value"], dict[str, "Value"]]


class ValueKind(enum.Enum):
  NULL = "null"
  BOOL = "bool"
  NUMBER = "number"
  STRING = "string"
  ARRAY = "array"
  MAP = "map"


def kind_of(value: Any) -> ValueKind:
  """Return the kind of a tree node.

  Raises:
    TypeError: If the object is not part of the value model
  """
  if value is None:
    return ValueKind.NULL
  # bool first: it is a subclass of int
  if isinstance(value, bool):
    return ValueKind.BOOL
  if isinstance(value, (int, float)):
    return ValueKind.NUMBER
  if isinstance(value, str):
    return ValueKind.STRING
  if isinstance(value, (list, tuple)):
    return ValueKind.ARRAY
  if isinstance(value, dict):
    return ValueKind.MAP
  raise TypeError(f"unsupported value type: {type(value).__name__}")


def deep_copy(value: Value) -> Value:
  """Copy a tree so that no container is shared with the original."""
  kind = kind_of(value)
  if kind is ValueKind.ARRAY:
    return [deep_copy(item) for item in value]
  if kind is ValueKind.MAP:
    return {key: deep_copy(item) for key, item in value.items()}
  return value


def is_container(value: Any) -> bool:
  return kind_of(value) in {ValueKind.ARRAY, ValueKind.MAP}


# key a non-map root is written under by formats whose documents must be maps
ROOT_KEY = "value"
