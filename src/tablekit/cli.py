#!/usr/bin/env python3
"""tablekit CLI for schema operations."""

import argparse
import logging

from rich.console import Console
from rich.table import Table

from tablekit.bootstrap import SchemaBootstrap, load_bootstrap_file
from tablekit.config import config
from tablekit.db import Database
from tablekit.fields import FieldTable

console = Console()


def describe(database: Database, table: str) -> None:
    """Print the field table of a table."""
    rows = database.describe(table)
    if not rows:
        console.print(f"[red]Table {table} not found.[/]")
        return

    fields = FieldTable.from_rows(rows)
    output = Table(title=table)
    output.add_column("Column", style="bold")
    output.add_column("Native type")
    output.add_column("Type")
    output.add_column("Default")
    for row in rows:
        descriptor = fields[row["field"]]
        output.add_row(descriptor.column, row["type"], descriptor.type.value, repr(descriptor.default))
    console.print(output)


def bootstrap(database: Database, table: str, spec_path: str) -> None:
    """Create a table, its indexes and its seed rows from a JSON specification."""
    spec = load_bootstrap_file(spec_path)
    SchemaBootstrap(database, table).run(spec)
    console.print(f"[green]Bootstrapped {table}.[/]")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="tablekit CLI")
    parser.add_argument("--url", default=None, help="Database URL (defaults to DATABASE_URL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    describe_parser = subparsers.add_parser("describe", help="Show the field table of a table")
    describe_parser.add_argument("table")

    bootstrap_parser = subparsers.add_parser("bootstrap", help="Bootstrap a table from a JSON spec")
    bootstrap_parser.add_argument("table")
    bootstrap_parser.add_argument("spec")

    args = parser.parse_args(argv)
    logging.basicConfig(level=config.log_level)

    with Database.connect(args.url) as database:
        if args.command == "describe":
            describe(database, args.table)
        elif args.command == "bootstrap":
            bootstrap(database, args.table, args.spec)


if __name__ == "__main__":
    main()
