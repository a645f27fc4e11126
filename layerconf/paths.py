"""Dot path access into value trees (``database.hosts[0].name``)."""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from layerconf.values import Value

_MISSING = object()


def to_segments(path: str) -> list[str]:
  """Split a dot path into keys; ``[n]`` brackets become their own segment.

  Args:
    path: Path such as ``a.b[0].c``

  Returns:
    Segments such as ``["a", "b", "0", "c"]``; empty segments are dropped
  """
  segments: list[str] = []
  current = ""
  bracket: str | None = None
  for ch in path:
    if bracket is not None:
      if ch == "]":
        if bracket:
          segments.append(bracket)
        bracket = None
      else:
        bracket += ch
    elif ch == "[":
      if current:
        segments.append(current)
      current = ""
      bracket = ""
    elif ch == ".":
      if current:
        segments.append(current)
      current = ""
    else:
      current += ch
  if current:
    segments.append(current)
  return segments


def _index(segment: str) -> int | None:
  return int(segment) if segment.isdigit() else None


def _child(node: Any, segment: str) -> Any:
  if isinstance(node, dict):
    return node.get(segment, _MISSING)
  if isinstance(node, list):
    index = _index(segment)
    if index is not None and index < len(node):
      return node[index]
  return _MISSING


def _walk(tree: Value, segments: list[str]) -> Any:
  node: Any = tree
  for segment in segments:
    node = _child(node, segment)
    if node is _MISSING:
      break
  return node


def get_path(tree: Value, path: str, default: Any = None) -> Any:
  """Return the value at ``path``, or ``default`` when any segment is missing.

  An empty path returns the tree itself. A stored ``None`` is returned as is.
  """
  node = _walk(tree, to_segments(path))
  return default if node is _MISSING else node


def has_path(tree: Value, path: str) -> bool:
  segments = to_segments(path)
  return bool(segments) and _walk(tree, segments) is not _MISSING


def _assign(node: Any, segment: str, value: Value) -> None:
  if isinstance(node, dict):
    node[segment] = value
    return
  index = _index(segment)
  if index is None:
    raise TypeError(f"cannot use {segment!r} as an array index")
  if index >= len(node):
    node.extend([None] * (index - len(node) + 1))
  node[index] = value


def set_path(tree: Value, path: str, value: Value) -> None:
  """Set the value at ``path`` in place.

  Missing or scalar intermediate values are replaced by a new map, or by an
  array when the following segment is numeric. Arrays grow with ``None``
  padding.

  Raises:
    ValueError: If the path is empty
    TypeError: If the root is not a container or a non-numeric segment indexes an array
  """
  segments = to_segments(path)
  if not segments:
    raise ValueError("empty path")
  if not isinstance(tree, (dict, list)):
    raise TypeError(f"cannot set {path!r} on a {type(tree).__name__}")
  node: Any = tree
  for segment, following in zip(segments, segments[1:]):
    child = _child(node, segment)
    if not isinstance(child, (dict, list)):
      child = [] if _index(following) is not None else {}
      _assign(node, segment, child)
    node = child
  _assign(node, segments[-1], value)


def delete_path(tree: Value, path: str) -> bool:
  """Remove the value at ``path``; returns whether anything was removed."""
  segments = to_segments(path)
  if not segments:
    return False
  parent = _walk(tree, segments[:-1])
  last = segments[-1]
  if isinstance(parent, dict) and last in parent:
    del parent[last]
    return True
  if isinstance(parent, list):
    index = _index(last)
    if index is not None and index < len(parent):
      del parent[index]
      return True
  return False


def leaf_paths(tree: Value, prefix: str = "") -> Iterable[str]:
  """Yield the dot path of every non-map value; arrays count as leaves."""
  if not isinstance(tree, dict):
    return
  for key, value in tree.items():
    path = f"{prefix}.{key}" if prefix else key
    if isinstance(value, dict):
      yield from leaf_paths(value, path)
    else:
      yield path
