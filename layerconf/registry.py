"""Maps file extensions to the format that reads and writes them."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from layerconf import formats, simpletoml, simpleyaml
from layerconf.values import Value

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Format:
  """A parser/serializer pair and the extensions it claims.

  ``parse`` takes the document text and a source name used in errors.
  """

  name: str
  extensions: tuple[str, ...]
  priority: int
  parse: Callable[[str, str], Value]
  stringify: Callable[[Value], str]

  def describe(self) -> str:
    return f"{self.name} ({', '.join(self.extensions)})"


class FormatRegistry:
  """Extension lookup; for each extension the highest priority registration wins."""

  def __init__(self) -> None:
    self._by_extension: dict[str, Format] = {}

  def register(self, fmt: Format) -> None:
    for ext in fmt.extensions:
      ext = ext.lower()
      current = self._by_extension.get(ext)
      if current is not None and current.priority > fmt.priority:
        log.debug("keeping %s for %s over %s", current.name, ext, fmt.name)
        continue
      self._by_extension[ext] = fmt

  def unregister(self, extension: str) -> None:
    self._by_extension.pop(extension.lower(), None)

  def get(self, extension: str) -> Format | None:
    return self._by_extension.get(extension.lower())

  def by_name(self, name: str) -> Format | None:
    for fmt in self._by_extension.values():
      if fmt.name == name:
        return fmt
    return None

  def detect(self, path: str) -> Format | None:
    """Find the format for a file path.

    A query string is ignored. The longest registered extension that ends the
    path wins, so ``.config.json`` can be claimed apart from ``.json``.

    Args:
      path: File path or URL-like string

    Returns:
      The matching format or None
    """
    bare = str(path).split("?", 1)[0].lower()
    for ext in sorted(self._by_extension, key=len, reverse=True):
      if bare.endswith(ext):
        return self._by_extension[ext]
    dot = bare.rfind(".")
    if dot > 0:
      return self.get(bare[dot:])
    return None

  def extensions(self) -> list[str]:
    return list(self._by_extension)

  def formats(self) -> list[str]:
    seen: list[str] = []
    for fmt in self._by_extension.values():
      label = fmt.describe()
      if label not in seen:
        seen.append(label)
    return seen


def default_registry() -> FormatRegistry:
  """Registry with the built-in JSON, YAML, TOML, INI and dotenv formats."""
  registry = FormatRegistry()
  registry.register(
    Format(
      formats.JSON_FORMAT, formats.JSON_EXTENSIONS, formats.JSON_PRIORITY, formats.parse_json, formats.stringify_json
    )
  )
  registry.register(
    Format(simpleyaml.FORMAT, simpleyaml.EXTENSIONS, simpleyaml.PRIORITY, simpleyaml.parse, simpleyaml.stringify)
  )
  registry.register(
    Format(simpletoml.FORMAT, simpletoml.EXTENSIONS, simpletoml.PRIORITY, simpletoml.parse, simpletoml.stringify)
  )
  registry.register(
    Format(formats.INI_FORMAT, formats.INI_EXTENSIONS, formats.INI_PRIORITY, formats.parse_ini, formats.stringify_ini)
  )
  registry.register(
    Format(formats.ENV_FORMAT, formats.ENV_EXTENSIONS, formats.ENV_PRIORITY, formats.parse_env, formats.stringify_env)
  )
  return registry
