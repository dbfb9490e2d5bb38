#!/usr/bin/env python3
"""
CLI for the typecore type checker.

The checker consumes syntax trees in the JSON interchange form (see
typecore.serialize); the parser that produces them is a separate tool.

Usage:
    python -m typecore check TREE.json [--config FILE] [--workers N]
                                       [--word-bits {32,64}] [--warn-unreachable]
                                       [--json]
    python -m typecore types TREE.json

Examples:
    # Check a module, print diagnostics, exit 1 if it is rejected
    python -m typecore check shapes.json

    # Machine-readable result (verdict, diagnostics, annotations)
    python -m typecore check shapes.json --json

    # List the types a module declares
    python -m typecore types shapes.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path


def _load_module(path_str: str):
    from .serialize import module_from_json

    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return module_from_json(source_path.read_text(encoding="utf-8"))


def _load_config(args):
    from .config import CheckerConfig, load_config

    config = load_config(args.config) if args.config else CheckerConfig()
    return config.with_overrides(
        workers=args.workers,
        word_bits=args.word_bits,
        warn_unreachable=True if args.warn_unreachable else None,
    )


def cmd_check(args):
    """Type check a module."""
    from .checker import check
    from .config import ConfigError
    from .serialize import TreeFormatError, result_to_json

    try:
        config = _load_config(args)
        module = _load_module(args.file)
    except (ConfigError, TreeFormatError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if module is None:
        return 1

    result = check(module, config)

    if args.json:
        print(json.dumps(result_to_json(result), indent=2))
        return 0 if result.accepted else 1

    for diag in result.diagnostics:
        print(diag.format())

    errors = len(result.errors)
    warnings = len(result.warnings)
    name = Path(args.file).name
    if not result.accepted:
        print(f"FAILED: {name} - {errors} error(s), {warnings} warning(s)")
        if result.truncated:
            print(f"  error limit reached: {result.skipped} declaration(s) not checked")
        return 1

    print(f"OK: {name} - {len(module.functions)} function(s), no errors")
    if warnings:
        print(f"  {warnings} warning(s)")
    return 0


def cmd_types(args):
    """List the types a module declares."""
    from .checker import check
    from .serialize import TreeFormatError
    from .types import AliasType, StructType, InterfaceType

    try:
        module = _load_module(args.file)
    except TreeFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if module is None:
        return 1

    result = check(module)
    registry = result.registry
    print(f"Module: {module.name}")
    for t in registry.user_types():
        if isinstance(t, AliasType):
            print(f"  type {t.name}: {t.underlying}")
        elif isinstance(t, StructType):
            fields = ", ".join(f"{n}: {ft}" for n, ft in t.fields.items())
            print(f"  struct {t.name} {{{fields}}}")
        elif isinstance(t, InterfaceType):
            members = ", ".join(m.describe() for m in t.members.values())
            print(f"  interface {t.name} {{{members}}}")
        for m in registry.methods_of(t).values():
            print(f"    {m.describe()}")
    return 0 if result.accepted else 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="typecore",
        description="Static type checker for typecore syntax trees",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress (-vv for debug output)")
    subparsers = parser.add_subparsers(dest="action", help="Action to perform")

    check_parser = subparsers.add_parser("check", help="Check a module for type errors")
    check_parser.add_argument("file", help="Syntax tree JSON file")
    check_parser.add_argument("--config", metavar="FILE", help="YAML or JSON configuration")
    check_parser.add_argument("--workers", type=int, metavar="N",
                              help="Threads used to check function bodies")
    check_parser.add_argument("--word-bits", type=int, choices=(32, 64),
                              help="Machine word width for layout facts")
    check_parser.add_argument("--warn-unreachable", action="store_true",
                              help="Warn about statements that can never run")
    check_parser.add_argument("--json", action="store_true",
                              help="Print the result as JSON")

    types_parser = subparsers.add_parser("types", help="List declared types")
    types_parser.add_argument("file", help="Syntax tree JSON file")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )

    if args.action == "check":
        return cmd_check(args)
    elif args.action == "types":
        return cmd_types(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
