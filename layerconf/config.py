"""Locating, loading and merging configuration files."""
from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from layerconf import paths
from layerconf.errors import ConfigNotFoundError, RequiredFieldError, UnsupportedFormatError
from layerconf.merge import MergeStrategies, merge_all
from layerconf.registry import FormatRegistry, default_registry
from layerconf.values import Value, ValueKind, deep_copy, kind_of

log = logging.getLogger(__name__)

_MISSING = object()

# Environment variables
ENV_VAR = "LAYERCONF_ENV"
CONFIG_HOME_VAR = "XDG_CONFIG_HOME"


def config_home() -> Path:
    """Root of the per-user config directories (``$XDG_CONFIG_HOME`` or ``~/.config``)."""
    return Path(os.environ.get(CONFIG_HOME_VAR) or Path.home() / ".config")


def default_search_dirs(name: str) -> list[Path]:
    """Directories searched by ``discover`` when none are given.

    Args:
        name: Application name

    Returns:
        ``<config home>/<name>`` followed by the working directory
    """
    return [config_home() / name, Path.cwd()]


def load_file(path: str | Path, registry: FormatRegistry | None = None) -> Value:
    """Parse one config file with the format its extension selects.

    Args:
        path: File to load
        registry: Formats to choose from, the built-in ones by default

    Returns:
        Parsed value tree

    Raises:
        ConfigNotFoundError: If the file does not exist
        UnsupportedFormatError: If no format claims the extension
        ParseError: If the content is malformed
    """
    path = Path(path)
    registry = registry or default_registry()
    if not path.is_file():
        raise ConfigNotFoundError(str(path))
    fmt = registry.detect(path.name)
    if fmt is None:
        raise UnsupportedFormatError(str(path))
    log.debug("loading %s as %s", path, fmt.name)
    return fmt.parse(path.read_text(encoding="utf-8"), str(path))


def discover(
    name: str,
    search_dirs: Iterable[str | Path] | None = None,
    env: str | None = None,
    registry: FormatRegistry | None = None,
) -> list[Path]:
    """Find the config files for an application, lowest precedence first.

    Each directory contributes ``<name><ext>`` and then ``<name>.<env><ext>``
    for every registered extension. Later directories override earlier ones.

    Args:
        name: Application name, used as the file stem
        search_dirs: Directories to look in, see ``default_search_dirs``
        env: Environment name, defaults to ``$LAYERCONF_ENV``
        registry: Formats whose extensions are tried

    Returns:
        Existing files in merge order
    """
    registry = registry or default_registry()
    if env is None:
        env = os.environ.get(ENV_VAR) or None
    dirs = [Path(d) for d in search_dirs] if search_dirs is not None else default_search_dirs(name)
    stems = [name] + ([f"{name}.{env}"] if env else [])

    found: list[Path] = []
    seen: set[Path] = set()
    for directory in dirs:
        for stem in stems:
            for ext in registry.extensions():
                candidate = directory / f"{stem}{ext}"
                if not candidate.is_file():
                    continue
                resolved = candidate.resolve()
                if resolved in seen:
                    continue
                seen.add(resolved)
                found.append(candidate)
    log.debug("discovered %d file(s) for %s: %s", len(found), name, [str(p) for p in found])
    return found


def load_config(
    name: str | None = None,
    files: Iterable[str | Path] | None = None,
    search_dirs: Iterable[str | Path] | None = None,
    env: str | None = None,
    strategies: MergeStrategies | None = None,
    required: Iterable[str] = (),
    defaults: dict[str, Value] | None = None,
    registry: FormatRegistry | None = None,
) -> Config:
    """Load, merge and check a layered configuration.

    ``defaults`` sit at the bottom, then discovered files, then explicit
    ``files``, so explicit files win. Files whose top level is not a map are
    skipped.

    Args:
        name: Application name for ``discover``; no discovery when None
        files: Additional files to load in order
        search_dirs: Passed to ``discover``
        env: Passed to ``discover``
        strategies: How the layers are merged
        required: Dot paths that must exist after merging
        defaults: Values underneath every loaded file
        registry: Formats to use, the built-in ones by default

    Returns:
        The merged configuration

    Raises:
        RequiredFieldError: For the first required path that is missing
    """
    registry = registry or default_registry()
    sources: list[Path] = []
    if name:
        sources.extend(discover(name, search_dirs=search_dirs, env=env, registry=registry))
    sources.extend(Path(f) for f in files or ())

    trees: list[Value] = [defaults] if defaults is not None else []
    loaded: list[Path] = []
    for source in sources:
        tree = load_file(source, registry)
        if kind_of(tree) is not ValueKind.MAP:
            log.warning("skipping %s: top level is %s, not a map", source, kind_of(tree).value)
            continue
        trees.append(tree)
        loaded.append(source)

    merged = merge_all(trees, strategies)
    for field in required:
        if not paths.has_path(merged, field):
            raise RequiredFieldError(field)
    return Config(merged, loaded, registry)


class Config:
    """A merged configuration with dot path access.

    The instance owns its tree: values passed in or handed out are copies.
    """

    def __init__(
        self,
        data: dict[str, Value] | None = None,
        files: Iterable[Path] = (),
        registry: FormatRegistry | None = None,
    ):
        self._data: dict[str, Value] = deep_copy(data) if data is not None else {}
        self.files = list(files)
        self._registry = registry or default_registry()

    def get(self, path: str, default: Any = None) -> Any:
        value = paths.get_path(self._data, path, _MISSING)
        return default if value is _MISSING else deep_copy(value)

    def set(self, path: str, value: Value) -> None:
        paths.set_path(self._data, path, deep_copy(value))

    def has(self, path: str) -> bool:
        return paths.has_path(self._data, path)

    def delete(self, path: str) -> bool:
        return paths.delete_path(self._data, path)

    def to_dict(self) -> dict[str, Value]:
        return deep_copy(self._data)

    def dump(self, format_name: str = "json") -> str:
        """Serialize the tree with a registered format.

        Args:
            format_name: Format name such as ``yaml`` or ``toml``

        Returns:
            Document text

        Raises:
            UnsupportedFormatError: If no registered format has that name
        """
        fmt = self._registry.by_name(format_name)
        if fmt is None:
            raise UnsupportedFormatError(format_name)
        return fmt.stringify(self._data)

    def __repr__(self) -> str:
        return f"Config(files={[str(p) for p in self.files]!r})"

