"""Scalar coercion for unquoted tokens.

Precedence is fixed: boolean literals, then integers, then fractional numbers,
then plain strings. Formats with extra literals (null in YAML, yes/no in INI)
check those before calling ``coerce``.
"""
from __future__ import annotations

import re

from layerconf.values import Value

_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d*\.\d+")

NULL_TOKENS = frozenset({"null", "Null", "NULL", "~"})
_INI_TRUE = frozenset({"yes", "on"})
_INI_FALSE = frozenset({"no", "off"})


def coerce(token: str) -> Value:
  """Map a raw unquoted token onto a scalar value.

  Args:
    token: Token text as it appeared in the source

  Returns:
    ``bool``, ``int``, ``float`` or the trimmed token itself
  """
  text = token.strip()
  lowered = text.lower()
  if lowered == "true":
    return True
  if lowered == "false":
    return False
  if _INT_RE.fullmatch(text):
    return int(text)
  if _FLOAT_RE.fullmatch(text):
    return float(text)
  return text


def is_null_token(token: str) -> bool:
  return token.strip() in NULL_TOKENS


def coerce_ini(token: str) -> Value:
  """Like ``coerce`` but also accepts yes/no/on/off as booleans."""
  lowered = token.strip().lower()
  if lowered in _INI_TRUE:
    return True
  if lowered in _INI_FALSE:
    return False
  return coerce(token)
