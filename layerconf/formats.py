"""JSON, INI and dotenv formats.

JSON goes through the standard library. INI and dotenv are line based and
share the scalar coercion used by the YAML parser; quoted values always stay
strings.
"""
from __future__ import annotations

import json
import os
import re
from collections.abc import Callable, Iterable, Mapping

from layerconf.coerce import coerce, coerce_ini
from layerconf.errors import ParseError
from layerconf.values import ROOT_KEY, Value, ValueKind, kind_of

JSON_FORMAT = "json"
JSON_EXTENSIONS = (".json",)
JSON_PRIORITY = 50

INI_FORMAT = "ini"
INI_EXTENSIONS = (".ini",)
INI_PRIORITY = 60

ENV_FORMAT = "env"
ENV_EXTENSIONS = (".env",)
ENV_PRIORITY = 70

_ENV_REF_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}|([A-Za-z_][A-Za-z0-9_]*))")
_UNESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}
_UNESCAPE_RE = re.compile(r'\\([ntr"\\])')


def parse_json(text: str, source: str = "<string>") -> Value:
  """Parse a JSON document.

  Raises:
    ParseError: With the line and column reported by the decoder
  """
  try:
    return json.loads(text)
  except json.JSONDecodeError as exc:
    kind = "unterminated_string" if exc.msg.startswith("Unterminated string") else "unexpected_token"
    raise ParseError(f"Invalid JSON: {exc.msg}", source, exc.lineno, exc.colno, kind) from exc


def stringify_json(value: Value) -> str:
  return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


def _closing_quote(text: str) -> int:
  quote = text[0]
  i = 1
  while i < len(text):
    if quote == '"' and text[i] == "\\":
      i += 2
      continue
    if text[i] == quote:
      return i
    i += 1
  return -1


def _strip_comment(text: str, markers: str) -> str:
  for i, ch in enumerate(text):
    if ch in markers and i > 0 and text[i - 1] in " \t":
      return text[:i].rstrip()
  return text.rstrip()


def _read_value(raw: str, markers: str, source: str, lineno: int, column: int) -> tuple[str, str | None]:
  """Split a raw right-hand side into its text and the quote it used, if any."""
  raw = raw.strip()
  if raw[:1] not in ("'", '"'):
    return _strip_comment(raw, markers), None
  end = _closing_quote(raw)
  if end < 0:
    raise ParseError("unterminated quoted value", source, lineno, column, "unterminated_string")
  rest = raw[end + 1:].strip()
  if rest and rest[0] not in markers:
    raise ParseError(f"unexpected text after quoted value: {rest!r}", source, lineno, column, "unexpected_token")
  inner = raw[1:end]
  if raw[0] == '"':
    inner = _UNESCAPE_RE.sub(lambda m: _UNESCAPES[m.group(1)], inner)
  return inner, raw[0]


def _quote(text: str) -> str:
  escaped = text.replace("\\", "\\\\").replace('"', '\\"')
  escaped = escaped.replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r")
  return f'"{escaped}"'


def _format_scalar(value: Value, needs_quotes: Callable[[str], bool], separator: str) -> str:
  kind = kind_of(value)
  if kind is ValueKind.NULL:
    return ""
  if kind is ValueKind.BOOL:
    return "true" if value else "false"
  if kind is ValueKind.NUMBER:
    return repr(value)
  if kind is ValueKind.ARRAY:
    return separator.join(_format_scalar(item, needs_quotes, separator) for item in value if item is not None)
  if kind is ValueKind.MAP:
    return _quote(json.dumps(value, ensure_ascii=False))
  return _quote(value) if needs_quotes(value) else value


def _as_document(value: Value) -> dict[str, Value]:
  return value if kind_of(value) is ValueKind.MAP else {ROOT_KEY: value}


def _ensure_section(root: dict[str, Value], name: str) -> dict[str, Value]:
  target = root
  for part in name.split("."):
    part = part.strip()
    if not isinstance(target.get(part), dict):
      target[part] = {}
    target = target[part]
  return target


def parse_ini(text: str, source: str = "<string>") -> dict[str, Value]:
  """Parse an INI document.

  ``[a.b]`` headers create nested maps. Indented lines without ``=`` continue
  the previous value. Comments start with ``;`` or ``#``.

  Args:
    text: Document text
    source: Name used in error messages

  Returns:
    The root map

  Raises:
    ParseError: For a header without ``]`` or a line that is not ``key = value``
  """
  result: dict[str, Value] = {}
  section = result
  # target map, key, collected lines and whether the value was quoted
  pending: tuple[dict[str, Value], str, list[str], bool] | None = None

  def flush() -> None:
    if pending is not None:
      target, key, parts, quoted = pending
      joined = "\n".join(parts)
      target[key] = joined if quoted else coerce_ini(joined)

  for lineno, line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
    stripped = line.strip()
    if not stripped or stripped[0] in ";#":
      continue
    if stripped.startswith("["):
      end = stripped.find("]")
      if end < 0:
        raise ParseError(
          "Invalid section header: missing closing bracket",
          source,
          lineno,
          len(line.rstrip()),
          "invalid_section_header",
        )
      name = stripped[1:end].strip()
      if not name:
        raise ParseError("Invalid section header: empty name", source, lineno, 1, "invalid_section_header")
      flush()
      pending = None
      section = _ensure_section(result, name)
      continue
    if "=" not in stripped:
      if pending is not None and line[:1] in (" ", "\t"):
        pending[2].append(_strip_comment(stripped, ";#"))
        continue
      raise ParseError("Invalid line: expected key=value pair", source, lineno, len(line), "unexpected_token")
    key, _, raw = stripped.partition("=")
    key = key.strip()
    if not key:
      raise ParseError("Invalid line: empty key", source, lineno, 1, "unexpected_token")
    flush()
    value, quote = _read_value(raw, ";#", source, lineno, line.index("=") + 2)
    pending = (section, key, [value], quote is not None)
  flush()
  return result


def _ini_needs_quotes(text: str) -> bool:
  if not text or text != text.strip():
    return True
  if any(ch in text for ch in ";#=\"'\n\r\t"):
    return True
  return not isinstance(coerce_ini(text), str)


def _dump_ini_section(table: dict[str, Value], name: str) -> Iterable[str]:
  sections = []
  for key, item in table.items():
    if item is None:
      continue
    if isinstance(item, dict):
      sections.append((key, item))
    else:
      yield f"{key} = {_format_scalar(item, _ini_needs_quotes, ', ')}"
  for key, item in sections:
    child = f"{name}.{key}" if name else key
    yield ""
    yield f"[{child}]"
    yield from _dump_ini_section(item, child)


def stringify_ini(value: Value) -> str:
  """Render a tree as INI: top-level scalars first, then one ``[a.b]`` block per nested map.

  Arrays are joined with ``", "`` and ``None`` entries are left out.
  """
  if value is None:
    return ""
  lines = list(_dump_ini_section(_as_document(value), ""))
  if lines and lines[0] == "":
    lines.pop(0)
  return "\n".join(lines) + "\n" if lines else ""


def expand_vars(text: str, env: Mapping[str, str]) -> str:
  """Substitute ``$VAR``, ``${VAR}`` and ``${VAR:-default}``.

  Unset and empty variables expand to the default, or to nothing.
  """
  def replace(match: re.Match) -> str:
    current = env.get(match.group(1) or match.group(3), "")
    if current:
      return current
    return match.group(2) or ""

  return _ENV_REF_RE.sub(replace, text)


def parse_env(text: str, source: str = "<string>", env: Mapping[str, str] | None = None) -> dict[str, Value]:
  """Parse a dotenv file.

  Args:
    text: Document text
    source: Name used in error messages
    env: Variables available for expansion, ``os.environ`` by default

  Returns:
    Flat map of keys to coerced values; single-quoted values are not expanded

  Raises:
    ParseError: For a line that is not ``KEY=value``
  """
  variables = os.environ if env is None else env
  result: dict[str, Value] = {}
  for lineno, line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
      continue
    if stripped.startswith("export "):
      stripped = stripped[len("export "):].lstrip()
    if "=" not in stripped:
      raise ParseError("Invalid line: expected key=value pair", source, lineno, len(line), "unexpected_token")
    key, _, raw = stripped.partition("=")
    key = key.strip()
    if not key:
      raise ParseError("Invalid line: empty key", source, lineno, 1, "unexpected_token")
    value, quote = _read_value(raw, "#", source, lineno, line.index("=") + 2)
    if quote != "'":
      value = expand_vars(value, variables)
    result[key] = value if quote else coerce(value)
  return result


def _env_needs_quotes(text: str) -> bool:
  if text != text.strip():
    return True
  if any(ch in text for ch in " #=$\"'\n\r\t"):
    return True
  return not isinstance(coerce(text), str)


def _format_env_value(value: Value) -> str:
  if isinstance(value, str) and "$" in value and "'" not in value and "\n" not in value:
    # single quotes keep the reference from being expanded on the way back in
    return f"'{value}'"
  return _format_scalar(value, _env_needs_quotes, ",")


def stringify_env(value: Value) -> str:
  """Render a tree as ``KEY=value`` lines.

  Nested maps are written as quoted JSON and arrays joined with ``,``.
  """
  if value is None:
    return ""
  lines = [f"{key}={_format_env_value(item)}" for key, item in _as_document(value).items()]
  return "\n".join(lines) + "\n" if lines else ""
