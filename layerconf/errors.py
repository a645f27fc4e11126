"""Exception hierarchy shared by the parsers, the loader and the CLI."""
from __future__ import annotations

from typing import Any, Literal

ParseErrorKind = Literal[
  "unterminated_string",
  "unterminated_collection",
  "unexpected_token",
  "invalid_indentation",
  "invalid_section_header",
  "undefined_alias",
  "max_depth_exceeded",
]


class ConfigError(Exception):
  """Base class for every error raised by layerconf.

  Args:
    message: Human readable description
    code: Stable identifier for programmatic handling
    context: Extra details (file, path, ...)
  """

  def __init__(self, message: str, code: str, context: dict[str, Any] | None = None):
    self.message = message
    self.code = code
    self.context = context or {}
    super().__init__(message)


class ConfigNotFoundError(ConfigError):
  def __init__(self, path: str):
    self.path = path
    super().__init__(f"Config file not found: {path}", "CONFIG_NOT_FOUND", {"path": path})


class UnsupportedFormatError(ConfigError):
  def __init__(self, path: str):
    self.path = path
    super().__init__(f"No parser registered for {path}", "UNSUPPORTED_FORMAT", {"path": path})


class RequiredFieldError(ConfigError):
  def __init__(self, field: str):
    self.field = field
    super().__init__(f"Required field missing: {field}", "REQUIRED_MISSING", {"field": field})


class ParseError(ConfigError):
  """Raised when a document cannot be parsed.

  The parser never recovers from one of these: a single malformed line fails
  the whole document. ``line`` and ``column`` are 1-based and only set when
  the failing position is known.
  """

  def __init__(
    self,
    message: str,
    file: str,
    line: int | None = None,
    column: int | None = None,
    kind: ParseErrorKind = "unexpected_token",
  ):
    self.file = file
    self.line = line
    self.column = column
    self.kind = kind
    super().__init__(
      message,
      "PARSE_ERROR",
      {"file": file, "line": line, "column": column, "kind": kind},
    )

  def __str__(self) -> str:
    location = self.file
    if self.line is not None:
      location += f":{self.line}"
      if self.column is not None:
        location += f":{self.column}"
    return f"{location}: {self.message}"
