"""Deep merge of value trees with per-path strategies."""
from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from layerconf.values import Value, ValueKind, deep_copy, is_container, kind_of

MapStrategy = Literal["merge", "replace"]
ArrayStrategy = Literal["replace", "append", "prepend", "unique"]
Strategy = Literal["merge", "replace", "append", "prepend", "unique"]

_ARRAY_STRATEGIES = frozenset({"replace", "append", "prepend", "unique"})


class MergeStrategies(BaseModel):
  """How two trees combine.

  ``paths`` maps a dot path (``database.hosts``) to the strategy used for the
  value at exactly that path; everything else falls back to ``default`` for
  maps and ``arrays`` for arrays.
  """

  model_config = ConfigDict(frozen=True, extra="forbid")

  default: MapStrategy = "merge"
  arrays: ArrayStrategy = "replace"
  paths: dict[str, Strategy] = Field(default_factory=dict)


_DEFAULT_STRATEGIES = MergeStrategies()


def _identity(value: Value) -> str:
  # JSON text keeps True and 1 apart
  return json.dumps(value, ensure_ascii=False)


def _merge_arrays(target: list[Value], source: list[Value], strategy: str) -> list[Value]:
  if strategy == "append":
    return deep_copy(target) + deep_copy(source)
  if strategy == "prepend":
    return deep_copy(source) + deep_copy(target)
  if strategy == "unique":
    result = deep_copy(target)
    seen = {_identity(item) for item in result}
    for item in source:
      ident = _identity(item)
      if ident not in seen:
        seen.add(ident)
        result.append(deep_copy(item))
    return result
  return deep_copy(source)


def _merge(target: Value, source: Value, strategies: MergeStrategies, path: str) -> Value:
  if source is None:
    return None
  kind = kind_of(source)
  if kind_of(target) is not kind or not is_container(source):
    return deep_copy(source)
  strategy = strategies.paths.get(path)
  if kind is ValueKind.ARRAY:
    return _merge_arrays(target, source, strategy if strategy in _ARRAY_STRATEGIES else strategies.arrays)
  if (strategy or strategies.default) == "replace":
    return deep_copy(source)
  result = deep_copy(target)
  for key, item in source.items():
    child = f"{path}.{key}" if path else key
    result[key] = _merge(target[key], item, strategies, child) if key in target else deep_copy(item)
  return result


def deep_merge(target: Value, source: Value, strategies: MergeStrategies | None = None) -> Value:
  """Merge ``source`` over ``target`` and return a new tree.

  Neither input is modified. A ``None`` in the source nulls the value; values
  of different kinds are replaced by the source.

  Args:
    target: Base tree
    source: Tree whose values win
    strategies: Merge behaviour, defaults to recursive map merge and array replace

  Returns:
    The merged tree
  """
  return _merge(target, source, strategies or _DEFAULT_STRATEGIES, "")


def merge_all(trees: Iterable[Value], strategies: MergeStrategies | None = None) -> Value:
  """Fold trees left to right; later trees win. No trees gives ``{}``."""
  result: Value = {}
  for tree in trees:
    result = deep_merge(result, tree, strategies)
  return result
