"""Indentation driven parser and block-style dumper for the YAML subset used in config files."""
from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from layerconf.coerce import coerce, is_null_token
from layerconf.errors import ParseError, ParseErrorKind
from layerconf.values import Value, ValueKind, deep_copy, is_container, kind_of

FORMAT = "yaml"
EXTENSIONS = (".yaml", ".yml")
PRIORITY = 60
MAX_DEPTH = 100

_MERGE_KEY = "<<"
_BLOCK_HEADER_RE = re.compile(r"([|>])([+-]?)([1-9]?)([+-]?)")
_ANCHOR_RE = re.compile(r"[^\s,\[\]{}]+")
_ESCAPES = {
  "n": "\n",
  "t": "\t",
  "r": "\r",
  "0": "\0",
  "b": "\b",
  "f": "\f",
  "/": "/",
  " ": " ",
  "\\": "\\",
  '"': '"',
}
_HEX_LENGTHS = {"x": 2, "u": 4, "U": 8}
_INDICATORS = frozenset("-?:,[]{}#&*!|>'\"%@`")

Where = Callable[[int], tuple[int, int]]


@dataclass
class _ParserState:
  lines: list[str]
  source: str
  index: int = 0
  depth: int = 0
  anchors: dict[str, Value] = field(default_factory=dict)

  def peek(self) -> str | None:
    while self.index < len(self.lines):
      line = self.lines[self.index]
      stripped = line.strip()
      if not stripped or stripped.startswith("#") or _is_document_marker(line):
        self.index += 1
        continue
      return line
    return None

  def pop(self) -> str | None:
    line = self.peek()
    if line is None:
      return None
    self.index += 1
    return line

  @property
  def lineno(self) -> int:
    return self.index + 1

  def error(
    self,
    message: str,
    kind: ParseErrorKind,
    line: int | None = None,
    column: int | None = None,
  ) -> ParseError:
    return ParseError(message, self.source, line if line is not None else self.lineno, column, kind)

  def enter(self, line: int) -> None:
    self.depth += 1
    if self.depth > MAX_DEPTH:
      raise self.error(f"nesting deeper than {MAX_DEPTH} levels", "max_depth_exceeded", line)

  def leave(self) -> None:
    self.depth -= 1

  def indent_of(self, line: str) -> int:
    width = len(line) - len(line.lstrip(" "))
    if line[width:width + 1] == "\t":
      raise self.error("tab character in indentation", "invalid_indentation", column=width + 1)
    return width

  def resolve_alias(self, name: str, line: int, column: int | None = None) -> Value:
    if name not in self.anchors:
      raise self.error(f"undefined alias '*{name}'", "undefined_alias", line, column)
    return deep_copy(self.anchors[name])

  def scan_quoted(
    self,
    text: str,
    start: int,
    where: Where,
    pull: Callable[[], str | None] | None = None,
  ) -> tuple[str, int]:
    """Read the quoted scalar starting at ``text[start]``.

    Line breaks inside the scalar are folded: one break becomes a space, each
    blank line a newline, and the indentation of continuation lines is dropped.

    Args:
      text: Text holding the scalar
      start: Index of the opening quote
      where: Maps an index of ``text`` to a (line, column) pair for errors
      pull: Returns ``text`` extended by the next physical line, or None at
        the end of the input; without it the scalar must close within ``text``

    Returns:
      The unescaped string and the index just past the closing quote
    """
    quote = text[start]
    out: list[str] = []
    # escaped characters are never trimmed by folding
    kept = 0
    i = start + 1
    while True:
      if text[i:] in ("", "\\") and pull is not None:
        extended = pull()
        if extended is not None:
          text = extended
          continue
      if i >= len(text):
        break
      ch = text[i]
      if ch == "\n":
        while len(out) > kept and out[-1] in " \t":
          out.pop()
        blank = 0
        i += 1
        while True:
          while i < len(text) and text[i] in " \t":
            i += 1
          if i >= len(text) and pull is not None:
            extended = pull()
            if extended is not None:
              text = extended
              continue
          if i < len(text) and text[i] == "\n":
            blank += 1
            i += 1
            continue
          break
        out.append("\n" * blank if blank else " ")
        continue
      if quote == "'":
        if ch == "'":
          if text[i + 1:i + 2] == "'":
            out.append("'")
            i += 2
            continue
          return "".join(out), i + 1
        out.append(ch)
        i += 1
        continue
      if ch == '"':
        return "".join(out), i + 1
      if ch == "\\":
        esc = text[i + 1:i + 2]
        if esc in _ESCAPES:
          out.append(_ESCAPES[esc])
          kept = len(out)
          i += 2
          continue
        if esc == "\n":
          # escaped line break: the lines join without a space
          i += 2
          while i < len(text) and text[i] in " \t":
            i += 1
          continue
        if esc in _HEX_LENGTHS:
          digits = text[i + 2:i + 2 + _HEX_LENGTHS[esc]]
          if len(digits) != _HEX_LENGTHS[esc] or not all(c in "0123456789abcdefABCDEF" for c in digits):
            line, column = where(i)
            raise self.error(f"invalid \\{esc} escape", "unexpected_token", line, column)
          out.append(chr(int(digits, 16)))
          kept = len(out)
          i += 2 + len(digits)
          continue
        if not esc:
          break
        line, column = where(i)
        raise self.error(f"invalid escape sequence '\\{esc}'", "unexpected_token", line, column)
      out.append(ch)
      i += 1
    line, column = where(start)
    style = "single" if quote == "'" else "double"
    raise self.error(f"unterminated {style}-quoted string", "unterminated_string", line, column)


def _is_document_marker(line: str) -> bool:
  head = line.rstrip()
  return head in ("---", "...") or head.startswith("--- #")


def _is_sequence_entry(content: str) -> bool:
  return content == "-" or content.startswith("- ")


def _is_comment_or_empty(text: str) -> bool:
  return not text or text.startswith("#")


def _strip_plain_comment(text: str) -> str:
  for i, ch in enumerate(text):
    if ch == "#" and (i == 0 or text[i - 1] in " \t"):
      return text[:i].rstrip()
  return text.rstrip()


def _plain_scalar(token: str) -> Value:
  if is_null_token(token) or not token.strip():
    return None
  return coerce(token)


def _split_key(state: _ParserState, content: str, lineno: int) -> tuple[str, str, bool, str | None] | None:
  """Split ``key: rest`` off a line.

  An anchor in front of the key (``&name key: value``) names the key itself.

  Returns:
    ``(key, rest, plain, anchor)`` or None when the content is not mapping-shaped
  """
  anchor = None
  if content.startswith("&"):
    match = _ANCHOR_RE.match(content, 1)
    if match is None or content[match.end():match.end() + 1] not in (" ", "\t"):
      return None
    anchor = match.group(0)
    content = content[match.end():].lstrip(" \t")
  if content[:1] in ("'", '"'):
    column = len(state.lines[lineno - 1]) - len(content)
    try:
      key, end = state.scan_quoted(content, 0, lambda off: (lineno, column + off + 1))
    except ParseError as exc:
      if exc.kind != "unterminated_string":
        raise
      # a quote left open on this line starts a multi-line scalar, not a key
      return None
    rest = content[end:].lstrip(" \t")
    if rest.startswith(":") and (len(rest) == 1 or rest[1] in " \t"):
      return key, rest[1:].strip(), False, anchor
    return None
  if not content or content[0] in "[{&*!|>%@`":
    return None
  for i, ch in enumerate(content):
    if ch == "#" and (i == 0 or content[i - 1] in " \t"):
      return None
    if ch == ":" and (i + 1 == len(content) or content[i + 1] in " \t"):
      key = content[:i].strip()
      if not key:
        return None
      return key, content[i + 1:].strip(), True, anchor
  return None


def _parse_block(state: _ParserState, indent: int) -> Value:
  line = state.peek()
  lineno = state.lineno
  content = line[indent:]
  state.enter(lineno)
  if _is_sequence_entry(content):
    value = _parse_sequence(state, indent)
  elif _split_key(state, content, lineno) is not None:
    value = _parse_mapping(state, indent)
  else:
    state.pop()
    value = _parse_value(state, content.strip(), indent - 1, lineno, allow_same_indent=False)
  state.leave()
  return value


def _parse_mapping(state: _ParserState, indent: int) -> dict[str, Value]:
  mapping: dict[str, Value] = {}
  while True:
    line = state.peek()
    if line is None:
      break
    current = state.indent_of(line)
    if current < indent:
      break
    lineno = state.lineno
    if current > indent:
      raise state.error("unexpected indentation", "invalid_indentation", column=current + 1)
    content = line[indent:]
    if _is_sequence_entry(content):
      raise state.error("sequence entry where a mapping key was expected", "unexpected_token")
    pair = _split_key(state, content, lineno)
    if pair is None:
      raise state.error(f"expected 'key: value', found {content.strip()!r}", "unexpected_token")
    key, rest, plain, anchor = pair
    if anchor is not None:
      state.anchors[anchor] = key
    state.pop()
    value = _parse_value(state, rest, indent, lineno, allow_same_indent=True)
    if plain and key == _MERGE_KEY:
      _apply_merge(state, mapping, value, lineno)
    else:
      mapping[key] = value
  return mapping


def _apply_merge(state: _ParserState, mapping: dict[str, Value], value: Value, lineno: int) -> None:
  sources = value if isinstance(value, list) else [value]
  for source in sources:
    if not isinstance(source, dict):
      raise state.error("merge key '<<' expects a mapping or a list of mappings", "unexpected_token", lineno)
    for key, item in source.items():
      mapping.setdefault(key, item)


def _parse_sequence(state: _ParserState, indent: int) -> list[Value]:
  items: list[Value] = []
  while True:
    line = state.peek()
    if line is None:
      break
    current = state.indent_of(line)
    if current < indent:
      break
    if current > indent:
      raise state.error("unexpected indentation", "invalid_indentation", column=current + 1)
    content = line[indent:]
    if not _is_sequence_entry(content):
      break
    lineno = state.lineno
    rest = content[1:]
    item_col = indent + 1 + len(rest) - len(rest.lstrip(" "))
    items.append(_parse_item(state, rest.strip(), indent, item_col, lineno))
  return items


def _parse_item(state: _ParserState, rest: str, dash_indent: int, item_col: int, lineno: int) -> Value:
  if _is_comment_or_empty(rest):
    state.pop()
    return _parse_nested(state, dash_indent, allow_same_indent=False)
  if _is_sequence_entry(rest) or _split_key(state, rest, lineno) is not None:
    # compact nested block: re-read the rest of this line at its own column
    state.lines[state.index] = " " * item_col + rest
    return _parse_block(state, item_col)
  state.pop()
  return _parse_value(state, rest, dash_indent, lineno, allow_same_indent=False)


def _parse_nested(state: _ParserState, parent_indent: int, allow_same_indent: bool) -> Value:
  line = state.peek()
  if line is None:
    return None
  current = state.indent_of(line)
  if current > parent_indent:
    return _parse_block(state, current)
  if current == parent_indent and allow_same_indent and _is_sequence_entry(line[current:]):
    return _parse_block(state, current)
  return None


def _parse_value(state: _ParserState, text: str, parent_indent: int, lineno: int, allow_same_indent: bool) -> Value:
  """Parse whatever follows ``key:`` or ``-`` on a line that has been consumed."""
  anchor = None
  if text.startswith("&"):
    match = _ANCHOR_RE.match(text, 1)
    if match is None:
      raise state.error("anchor without a name", "unexpected_token", lineno)
    anchor = match.group(0)
    text = text[match.end():].strip()

  if _is_comment_or_empty(text):
    value = _parse_nested(state, parent_indent, allow_same_indent)
  else:
    header = _BLOCK_HEADER_RE.fullmatch(_strip_plain_comment(text))
    if header is not None:
      value = _read_block_scalar(state, header, parent_indent)
    elif text.startswith("*"):
      name = _strip_plain_comment(text)[1:]
      if not _ANCHOR_RE.fullmatch(name):
        raise state.error(f"invalid alias {text!r}", "unexpected_token", lineno)
      value = state.resolve_alias(name, lineno)
    else:
      value = _parse_inline(state, text, parent_indent, lineno)

  if anchor is not None:
    state.anchors[anchor] = value
  return value


def _parse_inline(state: _ParserState, text: str, parent_indent: int, lineno: int) -> Value:
  column = state.lines[lineno - 1].rfind(text)
  if text[0] in "[{":
    return _FlowParser(state, text, lineno, column).parse()
  if text[0] in ("'", '"'):

    def where(off: int) -> tuple[int, int]:
      newlines = text.count("\n", 0, off)
      if newlines == 0:
        return lineno, column + off + 1
      return lineno + newlines, off - text.rfind("\n", 0, off)

    def pull() -> str | None:
      nonlocal text
      if state.index >= len(state.lines):
        return None
      text += "\n" + state.lines[state.index]
      state.index += 1
      return text

    value, end = state.scan_quoted(text, 0, where, pull)
    remainder = text[end:].strip()
    if remainder and not remainder.startswith("#"):
      raise state.error(f"unexpected text after quoted string: {remainder!r}", "unexpected_token", lineno)
    return value
  parts = [_strip_plain_comment(text)]
  # plain scalars may continue on more-indented lines
  while True:
    line = state.peek()
    if line is None:
      break
    current = state.indent_of(line)
    content = line.strip()
    if current <= parent_indent or _is_sequence_entry(content):
      break
    if _split_key(state, content, state.lineno) is not None:
      break
    parts.append(_strip_plain_comment(content))
    state.pop()
  return _plain_scalar(" ".join(parts))


def _read_block_scalar(state: _ParserState, header: re.Match, parent_indent: int) -> str:
  style = header.group(1)
  chomp = header.group(2) or header.group(4)
  explicit = header.group(3)
  content_indent = max(parent_indent, 0) + int(explicit) if explicit else None
  body: list[str] = []
  while state.index < len(state.lines):
    raw = state.lines[state.index]
    if not raw.strip():
      body.append("")
      state.index += 1
      continue
    width = len(raw) - len(raw.lstrip(" "))
    if width <= parent_indent:
      break
    if content_indent is None:
      if raw[width] == "\t":
        raise state.error("tab character in indentation", "invalid_indentation", column=width + 1)
      content_indent = width
    if width < content_indent:
      break
    body.append(raw[content_indent:])
    state.index += 1

  trailing = 0
  while body and body[-1] == "":
    body.pop()
    trailing += 1
  if not body:
    return "\n" * trailing if chomp == "+" else ""
  text = "\n".join(body) if style == "|" else _fold(body)
  if chomp == "-":
    return text
  if chomp == "+":
    return text + "\n" * (trailing + 1)
  return text + "\n"


def _fold(body: list[str]) -> str:
  out = ""
  for line in body:
    if not line:
      out += "\n"
    elif out and not out.endswith("\n"):
      out += " " + line
    else:
      out += line
  return out


class _FlowParser:
  """Recursive parser for ``[...]`` and ``{...}`` values.

  Pulls further physical lines from the block state while brackets are open.
  """

  def __init__(self, state: _ParserState, text: str, lineno: int, column: int):
    self.state = state
    self.text = text
    self.pos = 0
    self.lineno = lineno
    self.column = column

  def parse(self) -> Value:
    value = self._value(self.state.depth)
    self._skip_space()
    if self.pos < len(self.text):
      line, column = self._where(self.pos)
      raise self.state.error(
        f"unexpected {self.text[self.pos]!r} after flow collection", "unexpected_token", line, column
      )
    return value

  def _where(self, pos: int) -> tuple[int, int]:
    newlines = self.text.count("\n", 0, pos)
    if newlines == 0:
      return self.lineno, self.column + pos + 1
    return self.lineno + newlines, pos - self.text.rfind("\n", 0, pos)

  def _pull(self) -> bool:
    state = self.state
    if state.index >= len(state.lines):
      return False
    self.text += "\n" + state.lines[state.index]
    state.index += 1
    return True

  def _skip_space(self, opened: tuple[str, int] | None = None) -> None:
    """Skip blanks and comments; inside a collection, pull lines until content shows up."""
    text = self.text
    while True:
      while self.pos < len(text):
        ch = text[self.pos]
        if ch in " \t\n":
          self.pos += 1
        elif ch == "#" and (self.pos == 0 or text[self.pos - 1] in " \t\n"):
          end = text.find("\n", self.pos)
          self.pos = len(text) if end < 0 else end
        else:
          return
      if opened is None:
        return
      if not self._pull():
        kind, start = opened
        line, column = self._where(start)
        closing = "]" if kind == "sequence" else "}"
        raise self.state.error(
          f"unterminated flow {kind} (missing '{closing}')", "unterminated_collection", line, column
        )
      text = self.text

  def _value(self, depth: int, opened: tuple[str, int] | None = None) -> Value:
    self._skip_space(opened)
    if self.pos >= len(self.text):
      return None
    ch = self.text[self.pos]
    if ch == "[":
      return self._sequence(depth + 1)
    if ch == "{":
      return self._mapping(depth + 1)
    if ch in ("'", '"'):
      value, self.pos = self.state.scan_quoted(
        self.text, self.pos, self._where, lambda: self.text if self._pull() else None
      )
      return value
    if ch == "*":
      start = self.pos
      match = _ANCHOR_RE.match(self.text, self.pos + 1)
      if match is None:
        line, column = self._where(start)
        raise self.state.error("alias without a name", "unexpected_token", line, column)
      self.pos = match.end()
      line, column = self._where(start)
      return self.state.resolve_alias(match.group(0), line, column)
    if ch == "&":
      match = _ANCHOR_RE.match(self.text, self.pos + 1)
      if match is None:
        line, column = self._where(self.pos)
        raise self.state.error("anchor without a name", "unexpected_token", line, column)
      self.pos = match.end()
      value = self._value(depth, opened)
      self.state.anchors[match.group(0)] = value
      return value
    return _plain_scalar(self._plain())

  def _plain(self, stop: str = ",[]{}\n") -> str:
    text = self.text
    start = self.pos
    while self.pos < len(text):
      ch = text[self.pos]
      if ch in stop:
        break
      if ch == "#" and self.pos > start and text[self.pos - 1] in " \t":
        break
      self.pos += 1
    return text[start:self.pos].strip()

  def _check_depth(self, depth: int) -> None:
    if depth > MAX_DEPTH:
      line, column = self._where(self.pos)
      raise self.state.error(f"nesting deeper than {MAX_DEPTH} levels", "max_depth_exceeded", line, column)

  def _mismatch(self, expected: str) -> ParseError:
    line, column = self._where(self.pos)
    found = self.text[self.pos]
    if found in "]}":
      return self.state.error(
        f"mismatched '{found}', expected '{expected}'", "unterminated_collection", line, column
      )
    return self.state.error(f"expected ',' or '{expected}', found {found!r}", "unexpected_token", line, column)

  def _sequence(self, depth: int) -> list[Value]:
    self._check_depth(depth)
    opened = ("sequence", self.pos)
    self.pos += 1
    items: list[Value] = []
    while True:
      self._skip_space(opened)
      ch = self.text[self.pos]
      if ch == "]":
        self.pos += 1
        return items
      if ch in ",}":
        raise self._mismatch("]")
      items.append(self._value(depth, opened))
      self._skip_space(opened)
      ch = self.text[self.pos]
      if ch == ",":
        self.pos += 1
      elif ch != "]":
        raise self._mismatch("]")

  def _mapping(self, depth: int) -> dict[str, Value]:
    self._check_depth(depth)
    opened = ("mapping", self.pos)
    self.pos += 1
    result: dict[str, Value] = {}
    while True:
      self._skip_space(opened)
      ch = self.text[self.pos]
      if ch == "}":
        self.pos += 1
        return result
      if ch in ",]":
        raise self._mismatch("}")
      key, plain = self._key()
      self._skip_space(opened)
      ch = self.text[self.pos]
      if ch == ":":
        self.pos += 1
        self._skip_space(opened)
        value = None if self.text[self.pos] in ",}" else self._value(depth, opened)
      elif ch in ",}":
        value = None
      else:
        raise self._mismatch("}")
      if plain and key == _MERGE_KEY:
        line, _ = self._where(self.pos)
        _apply_merge(self.state, result, value, line)
      else:
        result[key] = value
      self._skip_space(opened)
      ch = self.text[self.pos]
      if ch == ",":
        self.pos += 1
      elif ch != "}":
        raise self._mismatch("}")

  def _key(self) -> tuple[str, bool]:
    text = self.text
    if text[self.pos] in ("'", '"'):
      key, self.pos = self.state.scan_quoted(text, self.pos, self._where)
      return key, False
    start = self.pos
    while self.pos < len(text):
      ch = text[self.pos]
      if ch in ",{}[]\n":
        break
      if ch == ":" and (self.pos + 1 == len(text) or text[self.pos + 1] in " \t\n,}]"):
        break
      self.pos += 1
    key = text[start:self.pos].strip()
    if not key:
      line, column = self._where(start)
      raise self.state.error("empty key in flow mapping", "unexpected_token", line, column)
    return key, True


def parse(text: str, source: str = "<string>") -> Value:
  """Parse a YAML document into a value tree.

  Args:
    text: Document text
    source: Name used in error messages (usually the file path)

  Returns:
    The parsed tree; an empty document yields ``[]``

  Raises:
    ParseError: On the first malformed construct
  """
  lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
  if lines[-1] == "":
    # the final line break does not open another (blank) line
    lines.pop()
  state = _ParserState(lines, source)
  line = state.peek()
  if line is None:
    return []
  result = _parse_block(state, state.indent_of(line))
  leftover = state.peek()
  if leftover is not None:
    if state.indent_of(leftover) > 0:
      raise state.error("unexpected indentation", "invalid_indentation")
    raise state.error(f"unexpected content {leftover.strip()!r}", "unexpected_token")
  return result


def load(path: Path) -> Value:
  return parse(path.read_text(encoding="utf-8"), str(path))


def _format_number(value: int | float) -> str:
  if isinstance(value, int):
    return str(value)
  if math.isnan(value):
    return ".nan"
  if math.isinf(value):
    return ".inf" if value > 0 else "-.inf"
  # fixed notation: exponents would read back as strings
  text = format(Decimal(repr(value)), "f")
  return text if "." in text else text + ".0"


def _needs_quotes(text: str) -> bool:
  if not text or text != text.strip() or _is_document_marker(text):
    return True
  if text[0] in _INDICATORS or ":" in text or "#" in text:
    return True
  if any(ord(ch) < 0x20 or ch == "\x7f" for ch in text):
    return True
  return is_null_token(text) or not isinstance(coerce(text), str)


def _format_string(text: str) -> str:
  if _needs_quotes(text):
    return json.dumps(text, ensure_ascii=False)
  return text


def _format_key(key: str) -> str:
  if not key or key != key.strip() or key[0] in _INDICATORS or ":" in key or "#" in key:
    return json.dumps(key, ensure_ascii=False)
  if any(ord(ch) < 0x20 for ch in key) or key == _MERGE_KEY:
    return json.dumps(key, ensure_ascii=False)
  return key


def _format_scalar(value: Value) -> str:
  kind = kind_of(value)
  if kind is ValueKind.NULL:
    return "null"
  if kind is ValueKind.BOOL:
    return "true" if value else "false"
  if kind is ValueKind.NUMBER:
    return _format_number(value)
  if kind is ValueKind.STRING:
    return _format_string(value)
  if kind is ValueKind.ARRAY:
    return "[]"
  return "{}"


def _block_scalar(text: str) -> tuple[str, list[str]] | None:
  """Literal block form of a multi-line string, or None if it cannot be written as one."""
  body = text.rstrip("\n")
  if not body or body[0] in " \t" or "\r" in body:
    return None
  lines = body.split("\n")
  if any(line and not line.strip() for line in lines):
    return None
  if any(ord(ch) < 0x20 and ch not in "\t\n" for ch in body):
    return None
  newlines = len(text) - len(body)
  if newlines == 0:
    return "|-", lines
  if newlines == 1:
    return "|", lines
  return "|+", lines + [""] * (newlines - 1)


def _join(label: str, text: str) -> str:
  return f"{label} {text}" if label else text


def _dump_entry(label: str, value: Value, indent: int) -> Iterable[str]:
  kind = kind_of(value)
  if is_container(value) and value:
    yield label
    yield from _dump_lines(value, indent + 2)
    return
  if kind is ValueKind.STRING and "\n" in value:
    block = _block_scalar(value)
    if block is not None:
      header, lines = block
      yield _join(label, header)
      pad = " " * (indent + 2)
      for line in lines:
        yield f"{pad}{line}" if line else ""
      return
  yield _join(label, _format_scalar(value))


def _dump_lines(value: Value, indent: int) -> Iterable[str]:
  prefix = " " * indent
  kind = kind_of(value)
  if kind is ValueKind.MAP and value:
    for key, item in value.items():
      yield from _dump_entry(f"{prefix}{_format_key(key)}:", item, indent)
  elif kind is ValueKind.ARRAY and value:
    for item in value:
      if is_container(item) and item:
        nested = list(_dump_lines(item, indent + 2))
        nested[0] = f"{prefix}- {nested[0][indent + 2:]}"
        yield from nested
      else:
        yield from _dump_entry(f"{prefix}-", item, indent)
  else:
    # only reached for a scalar or empty document root
    yield from _dump_entry("", value, indent)


def stringify(value: Value) -> str:
  """Render a value tree as block-style YAML.

  ``None`` renders as an empty document.
  """
  if value is None:
    return ""
  return "\n".join(_dump_lines(value, 0)) + "\n"
