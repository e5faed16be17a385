#!/usr/bin/env python3
"""
CypherGraph CLI - Main entry point.

Usage:
    cyphergraph init                              # Write a starter cyphergraph.yaml
    cyphergraph check                             # Validate the type graph, list operations
    cyphergraph compile people '{"fields": ["name"]}'   # Print the Cypher for one operation
    cyphergraph serve --driver app.db:session     # Run the HTTP API
"""

from __future__ import annotations

import argparse
import importlib
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import CypherGraphConfig, load_config
from .core.errors import CypherGraphError, GraphConfigError
from .core.selection import SelectionTree
from .runtime.context import ExecutionContext
from .runtime.handlers import operation_names
from .translate import translate_create, translate_delete, translate_read, translate_update


DEFAULT_CONFIG = """# CypherGraph Configuration
auth:
  secret: change-me
  algorithms: [HS256]
  roles_claim: roles

entities:
  Person:
    keys: [id]
    fields:
      id: {type: ID, autogenerate: true}
      name: String
"""

TRANSLATORS = {
    "read": translate_read,
    "create": translate_create,
    "update": translate_update,
    "delete": translate_delete,
}


def _load(args: argparse.Namespace) -> Optional[CypherGraphConfig]:
    config = load_config(args.config)
    if not config:
        print(f"Error: {args.config} not found. Run 'cyphergraph init' first.")
    return config


def cmd_init(args: argparse.Namespace) -> int:
    """Write a starter configuration."""
    config_path = Path(args.config)

    if config_path.exists() and not args.force:
        print(f"Error: {config_path} already exists. Use --force to overwrite.")
        return 1

    config_path.write_text(DEFAULT_CONFIG)
    print(f"Created {config_path}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Validate the configured type graph and list the generated operations."""
    config = _load(args)
    if not config:
        return 1

    try:
        graph = config.type_graph()
    except GraphConfigError as e:
        print("Type graph is invalid:")
        for message in e.errors:
            print(f"  {message}")
        return 1

    print(f"Type graph OK: {len(graph.entities)} entities")
    for name in graph.entity_names:
        names = operation_names(name)
        print(f"  {name}: {', '.join(names[op] for op in TRANSLATORS)}")
    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    """Compile one generated operation and print its text and parameters."""
    config = _load(args)
    if not config:
        return 1

    try:
        graph = config.type_graph()
        selection_data = json.loads(args.selection)
        translate, entity = _find_operation(graph, args.operation)
        selection = SelectionTree.from_dict(args.operation, selection_data)
        query = translate(entity, selection, ExecutionContext(graph=graph))
    except (CypherGraphError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(query.text)
    print(json.dumps(query.params, indent=2, default=str))
    if query.auth_dependent:
        print("(references $auth)")
    return 0


def _find_operation(graph, operation: str):
    for entity in graph.entities.values():
        for kind, name in operation_names(entity.name).items():
            if name == operation:
                return TRANSLATORS[kind], entity
    raise GraphConfigError(f"Unknown operation '{operation}'")


def _import_object(path: str) -> Any:
    """Import "package.module:attribute"."""
    module_name, _, attribute = path.partition(":")
    if not attribute:
        raise GraphConfigError(f"Expected 'module:attribute', got '{path}'")
    return getattr(importlib.import_module(module_name), attribute)


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from .graph import CypherGraph

    config = _load(args)
    if not config:
        return 1

    try:
        driver = _import_object(args.driver) if args.driver else None
        cg = CypherGraph.from_config(config, driver=driver)
    except (CypherGraphError, ImportError, AttributeError) as e:
        print(f"Error: {e}")
        return 1

    if driver is None:
        print("Warning: no --driver given, every operation will fail with 503")

    uvicorn.run(cg.app, host=args.host, port=args.port)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cyphergraph",
        description="CypherGraph - typed graph operations compiled to Cypher"
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument("--config", "-c", default="cyphergraph.yaml", help="Config file path")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Write a starter cyphergraph.yaml")
    init_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing config")

    # check
    subparsers.add_parser("check", help="Validate the type graph")

    # compile
    compile_parser = subparsers.add_parser("compile", help="Print the Cypher for one operation")
    compile_parser.add_argument("operation", help="Generated operation name, e.g. people or createPeople")
    compile_parser.add_argument("selection", nargs="?", default="{}", help="Selection and arguments as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--driver", "-d", help="Connection handle as module:attribute")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve_parser.add_argument("--port", "-p", type=int, default=8000, help="Bind port")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "check": cmd_check,
        "compile": cmd_compile,
        "serve": cmd_serve,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
