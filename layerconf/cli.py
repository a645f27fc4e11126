from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from layerconf.config import load_file
from layerconf.errors import ConfigError
from layerconf.paths import get_path, leaf_paths
from layerconf.registry import FormatRegistry, default_registry
from layerconf.values import kind_of

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool) -> None:
  logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def cmd_get(args: argparse.Namespace, registry: FormatRegistry) -> int:
  """Print the value at a dot path as JSON.

  Returns:
    0 when the path exists, 2 otherwise
  """
  tree = load_file(args.file, registry)
  missing = object()
  value = get_path(tree, args.path, missing)
  if value is missing:
    print(f"{args.file}: no value at {args.path!r}", file=sys.stderr)
    return 2
  print(json.dumps(value, indent=2, ensure_ascii=False))
  return 0


def cmd_convert(args: argparse.Namespace, registry: FormatRegistry) -> int:
  """Re-serialize a file in another format.

  Args:
    args: Parsed arguments with ``file``, ``to`` and optional ``output``
    registry: Formats to read and write with

  Returns:
    Process exit code
  """
  target = registry.by_name(args.to)
  if target is None:
    print(f"unknown format {args.to!r}", file=sys.stderr)
    return 2
  text = target.stringify(load_file(args.file, registry))
  if args.output:
    Path(args.output).write_text(text, encoding="utf-8")
    log.debug("wrote %s", args.output)
  else:
    sys.stdout.write(text)
  return 0


def cmd_check(args: argparse.Namespace, registry: FormatRegistry) -> int:
  """Parse every file and print a JSON summary; exit 1 if any file fails.

  A parsed file reports its top-level kind and the number of leaf keys.
  """
  results = []
  for name in args.files:
    try:
      tree = load_file(name, registry)
    except ConfigError as exc:
      print(str(exc), file=sys.stderr)
      results.append({"file": name, "ok": False, "code": exc.code, "error": exc.message})
      continue
    results.append({"file": name, "ok": True, "kind": kind_of(tree).value, "keys": len(list(leaf_paths(tree)))})
  print(json.dumps(results, indent=2, ensure_ascii=False))
  return 0 if all(item["ok"] for item in results) else 1


def build_parser(registry: FormatRegistry) -> argparse.ArgumentParser:
  names = sorted({registry.get(ext).name for ext in registry.extensions()})
  parser = argparse.ArgumentParser(prog="layerconf", description="Inspect and convert configuration files")
  parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
  sub = parser.add_subparsers(dest="command", required=True)

  get = sub.add_parser("get", help="print the value at a dot path as JSON")
  get.add_argument("file")
  get.add_argument("path", nargs="?", default="")
  get.set_defaults(handler=cmd_get)

  convert = sub.add_parser("convert", help="convert a file to another format")
  convert.add_argument("file")
  convert.add_argument("--to", required=True, choices=names)
  convert.add_argument("-o", "--output")
  convert.set_defaults(handler=cmd_convert)

  check = sub.add_parser("check", help="parse files and report errors")
  check.add_argument("files", nargs="+")
  check.set_defaults(handler=cmd_check)
  return parser


def main(argv: list[str] | None = None) -> int:
  registry = default_registry()
  args = build_parser(registry).parse_args(argv)
  configure_logging(args.verbose)
  try:
    return args.handler(args, registry)
  except ConfigError as exc:
    print(str(exc), file=sys.stderr)
    return 1


if __name__ == "__main__": # pragma: no cover
  sys.exit(main())
