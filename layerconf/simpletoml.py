"""Cursor based parser and table-style dumper for the TOML subset used in config files."""
from __future__ import annotations

import math
import re
from collections.abc import Iterable
from pathlib import Path

from layerconf.errors import ParseError, ParseErrorKind
from layerconf.values import ROOT_KEY, Value, ValueKind, kind_of

FORMAT = "toml"
EXTENSIONS = (".toml",)
PRIORITY = 60
MAX_DEPTH = 100

_BARE_KEY_RE = re.compile(r"[A-Za-z0-9_-]+")
_DATETIME_RE = re.compile(
  r"\d{4}-\d{2}-\d{2}(?:[Tt ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:[Zz]|[+-]\d{2}:\d{2})?)?"
)
_TIME_RE = re.compile(r"\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?")
_DEC_INT_RE = re.compile(r"[+-]?\d(?:_?\d)*")
_FLOAT_RE = re.compile(
  r"[+-]?\d(?:_?\d)*(?:\.\d(?:_?\d)*(?:[eE][+-]?\d(?:_?\d)*)?|[eE][+-]?\d(?:_?\d)*)"
)
_PREFIXED_INTS = {
  "0x": (16, re.compile(r"[0-9A-Fa-f](?:_?[0-9A-Fa-f])*")),
  "0o": (8, re.compile(r"[0-7](?:_?[0-7])*")),
  "0b": (2, re.compile(r"[01](?:_?[01])*")),
}
_SPECIAL_FLOATS = frozenset({"inf", "+inf", "-inf", "nan", "+nan", "-nan"})
_ESCAPES = {
  "b": "\b",
  "t": "\t",
  "n": "\n",
  "f": "\f",
  "r": "\r",
  '"': '"',
  "\\": "\\",
}
_TOKEN_END = " \t\n,]}#"


class _TomlParser:
  """Single pass over a normalized document.

  ``table`` is the map that bare ``key = value`` lines currently write into;
  section headers move it.
  """

  def __init__(self, text: str, source: str):
    self.text = text
    self.source = source
    self.pos = 0
    self.root: dict[str, Value] = {}
    self.table = self.root

  def error(self, message: str, kind: ParseErrorKind, pos: int | None = None) -> ParseError:
    if pos is None:
      pos = self.pos
    line = self.text.count("\n", 0, pos) + 1
    column = pos - (self.text.rfind("\n", 0, pos) + 1) + 1
    return ParseError(message, self.source, line, column, kind)

  def parse(self) -> dict[str, Value]:
    while True:
      self._skip_lines()
      if self.pos >= len(self.text):
        return self.root
      if self.text[self.pos] == "[":
        self._header()
      else:
        self._key_value(self.table, 0)
      self._end_of_line()

  def _peek(self) -> str:
    return self.text[self.pos] if self.pos < len(self.text) else ""

  def _skip_blank(self) -> None:
    while self._peek() in (" ", "\t"):
      self.pos += 1

  def _skip_comment(self) -> None:
    if self._peek() == "#":
      end = self.text.find("\n", self.pos)
      self.pos = len(self.text) if end < 0 else end

  def _skip_lines(self) -> None:
    """Skip whitespace, line breaks and comments."""
    while True:
      ch = self._peek()
      if ch and ch in " \t\n":
        self.pos += 1
      elif ch == "#":
        self._skip_comment()
      else:
        return

  def _end_of_line(self) -> None:
    self._skip_blank()
    self._skip_comment()
    ch = self._peek()
    if not ch:
      return
    if ch != "\n":
      raise self.error(f"expected end of line, found {ch!r}", "unexpected_token")
    self.pos += 1

  def _header(self) -> None:
    start = self.pos
    is_array = self.text.startswith("[[", self.pos)
    self.pos += 2 if is_array else 1
    self._skip_blank()
    keys = self._dotted_key("invalid_section_header")
    self._skip_blank()
    closing = "]]" if is_array else "]"
    if not self.text.startswith(closing, self.pos):
      raise self.error("missing closing bracket in section header", "invalid_section_header", start)
    self.pos += len(closing)
    if is_array:
      self.table = self._open_array_table(keys, start)
    else:
      self.table = self._open_table(keys, start)

  def _open_table(self, keys: list[str], pos: int) -> dict[str, Value]:
    node = self.root
    for key in keys:
      child = node.setdefault(key, {})
      if isinstance(child, list) and child and isinstance(child[-1], dict):
        # [a.b] after [[a]] extends the latest element
        child = child[-1]
      if not isinstance(child, dict):
        raise self.error(
          f"cannot open table [{'.'.join(keys)}]: '{key}' is not a table", "invalid_section_header", pos
        )
      node = child
    return node

  def _open_array_table(self, keys: list[str], pos: int) -> dict[str, Value]:
    parent = self._open_table(keys[:-1], pos)
    array = parent.setdefault(keys[-1], [])
    if not isinstance(array, list) or not all(isinstance(item, dict) for item in array):
      raise self.error(
        f"cannot open array of tables [[{'.'.join(keys)}]]: '{keys[-1]}' is not an array of tables",
        "invalid_section_header",
        pos,
      )
    table: dict[str, Value] = {}
    array.append(table)
    return table

  def _dotted_key(self, kind: ParseErrorKind) -> list[str]:
    keys = [self._simple_key(kind)]
    while True:
      self._skip_blank()
      if self._peek() != ".":
        return keys
      self.pos += 1
      self._skip_blank()
      keys.append(self._simple_key(kind))

  def _simple_key(self, kind: ParseErrorKind) -> str:
    ch = self._peek()
    if ch == '"':
      return self._basic_string()
    if ch == "'":
      return self._literal_string()
    match = _BARE_KEY_RE.match(self.text, self.pos)
    if match is None:
      found = repr(ch) if ch else "end of input"
      raise self.error(f"expected a key, found {found}", kind)
    self.pos = match.end()
    return match.group(0)

  def _key_value(self, table: dict[str, Value], depth: int) -> None:
    start = self.pos
    keys = self._dotted_key("unexpected_token")
    self._skip_blank()
    if self._peek() != "=":
      raise self.error(f"expected '=' after key '{'.'.join(keys)}'", "unexpected_token")
    self.pos += 1
    self._skip_blank()
    value = self._value(depth)
    target = table
    for key in keys[:-1]:
      child = target.setdefault(key, {})
      if not isinstance(child, dict):
        raise self.error(f"key '{key}' is already defined as a non-table value", "unexpected_token", start)
      target = child
    target[keys[-1]] = value

  def _value(self, depth: int) -> Value:
    if self.text.startswith('"""', self.pos):
      return self._multiline_basic()
    if self.text.startswith("'''", self.pos):
      return self._multiline_literal()
    ch = self._peek()
    if ch == '"':
      return self._basic_string()
    if ch == "'":
      return self._literal_string()
    if ch == "[":
      return self._array(depth + 1)
    if ch == "{":
      return self._inline_table(depth + 1)
    return self._scalar()

  def _check_depth(self, depth: int) -> None:
    if depth > MAX_DEPTH:
      raise self.error(f"nesting deeper than {MAX_DEPTH} levels", "max_depth_exceeded")

  def _escape(self) -> str:
    """Decode the escape sequence whose backslash is at the cursor."""
    esc = self.text[self.pos + 1:self.pos + 2]
    if esc in _ESCAPES:
      self.pos += 2
      return _ESCAPES[esc]
    if esc in ("u", "U"):
      length = 4 if esc == "u" else 8
      digits = self.text[self.pos + 2:self.pos + 2 + length]
      if len(digits) != length or not all(c in "0123456789abcdefABCDEF" for c in digits):
        raise self.error(f"invalid \\{esc} escape", "unexpected_token")
      code = int(digits, 16)
      if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        raise self.error(f"\\{esc}{digits} is not a unicode scalar value", "unexpected_token")
      self.pos += 2 + length
      return chr(code)
    raise self.error(f"invalid escape sequence '\\{esc}'", "unexpected_token")

  def _basic_string(self) -> str:
    start = self.pos
    self.pos += 1
    out: list[str] = []
    while True:
      ch = self._peek()
      if not ch or ch == "\n":
        raise self.error("unterminated string", "unterminated_string", start)
      if ch == '"':
        self.pos += 1
        return "".join(out)
      if ch == "\\":
        if self.text[self.pos + 1:self.pos + 2] in ("", "\n"):
          raise self.error("unterminated string", "unterminated_string", start)
        out.append(self._escape())
        continue
      out.append(ch)
      self.pos += 1

  def _literal_string(self) -> str:
    start = self.pos
    end = self.pos + 1
    while end < len(self.text) and self.text[end] not in "'\n":
      end += 1
    if end >= len(self.text) or self.text[end] == "\n":
      raise self.error("unterminated literal string", "unterminated_string", start)
    self.pos = end + 1
    return self.text[start + 1:end]

  def _close_multiline(self, quote: str) -> str | None:
    """Consume a closing triple quote; up to two extra quotes belong to the content."""
    if not self.text.startswith(quote * 3, self.pos):
      return None
    end = self.pos + 3
    while end < len(self.text) and self.text[end] == quote and end - self.pos < 5:
      end += 1
    extra = quote * (end - self.pos - 3)
    self.pos = end
    return extra

  def _multiline_basic(self) -> str:
    start = self.pos
    self.pos += 3
    if self._peek() == "\n":
      self.pos += 1
    out: list[str] = []
    while True:
      if self.pos >= len(self.text):
        raise self.error("unterminated multi-line string", "unterminated_string", start)
      extra = self._close_multiline('"')
      if extra is not None:
        out.append(extra)
        return "".join(out)
      ch = self.text[self.pos]
      if ch == "\\":
        after = self.pos + 1
        while after < len(self.text) and self.text[after] in " \t":
          after += 1
        if after < len(self.text) and self.text[after] == "\n":
          # line ending backslash: drop the break and the following whitespace
          while after < len(self.text) and self.text[after] in " \t\n":
            after += 1
          self.pos = after
          continue
        out.append(self._escape())
        continue
      out.append(ch)
      self.pos += 1

  def _multiline_literal(self) -> str:
    start = self.pos
    self.pos += 3
    if self._peek() == "\n":
      self.pos += 1
    out: list[str] = []
    while True:
      if self.pos >= len(self.text):
        raise self.error("unterminated multi-line literal string", "unterminated_string", start)
      extra = self._close_multiline("'")
      if extra is not None:
        out.append(extra)
        return "".join(out)
      out.append(self.text[self.pos])
      self.pos += 1

  def _array(self, depth: int) -> list[Value]:
    self._check_depth(depth)
    start = self.pos
    self.pos += 1
    items: list[Value] = []
    while True:
      self._skip_lines()
      ch = self._peek()
      if not ch:
        raise self.error("unterminated array (missing ']')", "unterminated_collection", start)
      if ch == "]":
        self.pos += 1
        return items
      items.append(self._value(depth))
      self._skip_lines()
      ch = self._peek()
      if ch == ",":
        self.pos += 1
      elif not ch:
        raise self.error("unterminated array (missing ']')", "unterminated_collection", start)
      elif ch != "]":
        raise self.error(f"expected ',' or ']' in array, found {ch!r}", "unexpected_token")

  def _inline_table(self, depth: int) -> dict[str, Value]:
    self._check_depth(depth)
    start = self.pos
    self.pos += 1
    table: dict[str, Value] = {}
    while True:
      self._skip_blank()
      ch = self._peek()
      if ch in ("", "\n"):
        raise self.error("unterminated inline table (missing '}')", "unterminated_collection", start)
      if ch == "}":
        self.pos += 1
        return table
      self._key_value(table, depth)
      self._skip_blank()
      ch = self._peek()
      if ch == ",":
        self.pos += 1
      elif ch in ("", "\n"):
        raise self.error("unterminated inline table (missing '}')", "unterminated_collection", start)
      elif ch != "}":
        raise self.error(f"expected ',' or '}}' in inline table, found {ch!r}", "unexpected_token")

  def _token_ends(self, pos: int) -> bool:
    return pos >= len(self.text) or self.text[pos] in _TOKEN_END

  def _scalar(self) -> Value:
    start = self.pos
    for pattern in (_DATETIME_RE, _TIME_RE):
      match = pattern.match(self.text, start)
      if match is not None and self._token_ends(match.end()):
        # date and time literals stay as their text
        self.pos = match.end()
        return match.group(0)
    end = start
    while not self._token_ends(end):
      end += 1
    token = self.text[start:end]
    if not token:
      ch = self._peek()
      found = repr(ch) if ch else "end of input"
      raise self.error(f"expected a value, found {found}", "unexpected_token")
    value = _convert(token)
    if value is None:
      raise self.error(f"invalid value {token!r}", "unexpected_token", start)
    self.pos = end
    return value


def _convert(token: str) -> bool | int | float | None:
  """Booleans and numbers; None when the token is neither."""
  if token == "true":
    return True
  if token == "false":
    return False
  if token in _SPECIAL_FLOATS:
    return float(token)
  if _DEC_INT_RE.fullmatch(token):
    return int(token.replace("_", ""))
  prefixed = _PREFIXED_INTS.get(token[:2])
  if prefixed is not None:
    base, digits = prefixed
    if digits.fullmatch(token[2:]):
      return int(token[2:].replace("_", ""), base)
    return None
  if _FLOAT_RE.fullmatch(token):
    return float(token.replace("_", ""))
  return None


def parse(text: str, source: str = "<string>") -> dict[str, Value]:
  """Parse a TOML document into a value tree.

  Args:
    text: Document text
    source: Name used in error messages (usually the file path)

  Returns:
    The root table; an empty document yields ``{}``

  Raises:
    ParseError: On the first malformed construct
  """
  return _TomlParser(text.replace("\r\n", "\n"), source).parse()


def load(path: Path) -> dict[str, Value]:
  return parse(path.read_text(encoding="utf-8"), str(path))


def _format_number(value: int | float) -> str:
  if isinstance(value, int):
    return str(value)
  if math.isnan(value):
    return "nan"
  if math.isinf(value):
    return "inf" if value > 0 else "-inf"
  return repr(value)


def _format_string(text: str) -> str:
  out = ['"']
  for ch in text:
    if ch == '"':
      out.append('\\"')
    elif ch == "\\":
      out.append("\\\\")
    elif ch in "\b\t\n\f\r":
      out.append({"\b": "\\b", "\t": "\\t", "\n": "\\n", "\f": "\\f", "\r": "\\r"}[ch])
    elif ord(ch) < 0x20 or ch == "\x7f":
      out.append(f"\\u{ord(ch):04x}")
    else:
      out.append(ch)
  out.append('"')
  return "".join(out)


def _format_key(key: str) -> str:
  return key if _BARE_KEY_RE.fullmatch(key) else _format_string(key)


def _format_value(value: Value) -> str:
  kind = kind_of(value)
  if kind is ValueKind.BOOL:
    return "true" if value else "false"
  if kind is ValueKind.NUMBER:
    return _format_number(value)
  if kind is ValueKind.STRING:
    return _format_string(value)
  if kind is ValueKind.ARRAY:
    return "[" + ", ".join(_format_value(item) for item in value if item is not None) + "]"
  if kind is ValueKind.MAP:
    pairs = [f"{_format_key(k)} = {_format_value(v)}" for k, v in value.items() if v is not None]
    return "{ " + ", ".join(pairs) + " }" if pairs else "{}"
  raise TypeError("null has no TOML representation")


def _is_table_array(value: Value) -> bool:
  return kind_of(value) is ValueKind.ARRAY and bool(value) and all(isinstance(item, dict) for item in value)


def _dump_table(table: dict[str, Value], path: list[str]) -> Iterable[str]:
  tables: list[tuple[str, dict[str, Value]]] = []
  arrays: list[tuple[str, list[Value]]] = []
  for key, item in table.items():
    kind = kind_of(item)
    if kind is ValueKind.NULL:
      continue
    if kind is ValueKind.MAP:
      tables.append((key, item))
    elif _is_table_array(item):
      arrays.append((key, item))
    else:
      yield f"{_format_key(key)} = {_format_value(item)}"
  for key, item in tables:
    sub = path + [key]
    yield ""
    yield f"[{'.'.join(_format_key(k) for k in sub)}]"
    yield from _dump_table(item, sub)
  for key, items in arrays:
    sub = path + [key]
    for item in items:
      yield ""
      yield f"[[{'.'.join(_format_key(k) for k in sub)}]]"
      yield from _dump_table(item, sub)


def stringify(value: Value) -> str:
  """Render a value tree as a TOML document.

  Nested maps become ``[section]`` headers and non-empty arrays of maps become
  ``[[section]]`` blocks. ``None`` entries are left out since TOML has no null;
  a root that is not a map is written under ``ROOT_KEY``.
  """
  if value is None:
    return ""
  if kind_of(value) is not ValueKind.MAP:
    value = {ROOT_KEY: value}
  lines = list(_dump_table(value, []))
  if lines and lines[0] == "":
    lines.pop(0)
  return "\n".join(lines) + "\n" if lines else ""
