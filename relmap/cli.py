"""
Command-line interface for relmap.

Usage:
    python -m relmap.cli tables --models myapp.models       Print table DDL
    python -m relmap.cli create --models myapp.models       Create tables
    python -m relmap.cli dump --models myapp.models Author  Print records as JSON

``--models`` names an importable module exposing a ``registry``
(``RelationshipRegistry``) with its record types registered.
"""

import argparse
import dataclasses
import importlib
import json
import logging
import sys

from sqlalchemy.schema import CreateIndex, CreateTable

from relmap.config import create_repository, load_config, setup_logging
from relmap.mapping.relationships import RelationshipRegistry
from relmap.persistence.tables import build_tables

logger = logging.getLogger(__name__)


def load_registry(module_name: str) -> RelationshipRegistry:
    """Import a models module and return its ``registry``."""
    module = importlib.import_module(module_name)
    registry = getattr(module, "registry", None)
    if not isinstance(registry, RelationshipRegistry):
        raise SystemExit(f"Error: {module_name} has no 'registry' (RelationshipRegistry)")
    return registry


def cmd_tables(args: argparse.Namespace) -> int:
    """Print CREATE statements for every registered table."""
    registry = load_registry(args.models)
    metadata = build_tables(registry)
    for table in metadata.sorted_tables:
        print(f"{str(CreateTable(table)).strip()};")
        for index in sorted(table.indexes, key=lambda i: i.name):
            print(f"{str(CreateIndex(index)).strip()};")
        print()
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    """Create missing tables in the configured database."""
    registry = load_registry(args.models)
    args.config_obj.mapping.create_tables = True
    create_repository(args.config_obj, registry)
    print(f"Tables ready at {args.config_obj.database.url}")
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    """Print records of one registered type as JSON."""
    registry = load_registry(args.models)
    by_name = {t.__name__: t for t in registry.record_types}
    record_type = by_name.get(args.type)
    if record_type is None:
        print(f"Error: unknown record type '{args.type}'. Known: {', '.join(sorted(by_name))}")
        return 1

    repo = create_repository(args.config_obj, registry)
    records = repo.find_all(record_type, limit=args.limit)
    print(json.dumps([dataclasses.asdict(r) for r in records], indent=2, default=str))
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="relmap - relational persistence for dataclass records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level override",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    models_help = "Module exposing a RelationshipRegistry named 'registry'"

    tables_parser = subparsers.add_parser("tables", help="Print table DDL")
    tables_parser.add_argument("--models", "-m", required=True, help=models_help)
    tables_parser.set_defaults(func=cmd_tables)

    create_parser = subparsers.add_parser("create", help="Create tables in the configured database")
    create_parser.add_argument("--models", "-m", required=True, help=models_help)
    create_parser.set_defaults(func=cmd_create)

    dump_parser = subparsers.add_parser("dump", help="Print records of a type as JSON")
    dump_parser.add_argument("--models", "-m", required=True, help=models_help)
    dump_parser.add_argument("type", help="Record type name, e.g. Author")
    dump_parser.add_argument(
        "--limit",
        "-n",
        type=int,
        default=None,
        help="Maximum number of records to print",
    )
    dump_parser.set_defaults(func=cmd_dump)

    args = parser.parse_args()

    # Load config and set up logging
    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config.logging)
    args.config_obj = config

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
