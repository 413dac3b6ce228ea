"""Command-line interface for gogen.

Usage::

    gogen create shop --entity product --with-s3
    gogen list
    gogen show shop
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from rich.table import Table

from gogen.config import Config
from gogen.errors import ScaffoldError
from gogen.registry import RegistryStore
from gogen.scaffolder import GeneratorOptions, Scaffolder
from gogen.utils import console, print_error, print_success, print_summary_table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gogen",
        description="gogen -- create production-ready Go API projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  gogen create shop\n"
            "  gogen create library --entity book --with-s3\n"
            "  gogen list\n"
        ),
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to the YAML config file (default: $GOGEN_CONFIG or ./config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a new DDD API project")
    create.add_argument("name", help="Project name (also the directory name)")
    create.add_argument("--entity", "-e", default=None, help="Primary entity name (default: item)")
    create.add_argument("--no-auth", action="store_true", help="Generate without authentication")
    create.add_argument("--with-s3", action="store_true", help="Include S3 file upload support")
    create.add_argument(
        "--with-frontend",
        action="store_true",
        help="Allow CORS requests from a separate frontend",
    )
    create.add_argument(
        "--description", "-d",
        default=None,
        help="Project description for CLAUDE.md",
    )
    create.add_argument(
        "--output", "-o",
        default=None,
        help="Directory in which the project folder is created (default: from config)",
    )
    create.add_argument("--no-git", action="store_true", help="Skip git initialization")
    create.add_argument(
        "--skip-mod-init",
        action="store_true",
        help="Skip 'go mod init' and 'go mod tidy'",
    )

    subparsers.add_parser("list", help="List all generated projects")

    show = subparsers.add_parser("show", help="Show one generated project")
    show.add_argument("name", help="Project name")

    return parser


def cmd_create(args: argparse.Namespace, config: Config) -> int:
    config = config.with_overrides(
        entity=args.entity,
        no_auth=args.no_auth,
        with_s3=args.with_s3,
        with_frontend=args.with_frontend,
        output_dir=args.output,
    )
    try:
        options = GeneratorOptions.from_config(
            args.name,
            config,
            description=args.description,
            run_module_init=not args.skip_mod_init,
            run_git=not args.no_git,
        )
    except ScaffoldError as exc:
        print_error(f"Error: {exc}")
        return 1

    scaffolder = Scaffolder(options, config)
    try:
        result = asyncio.run(scaffolder.generate())
    except ScaffoldError as exc:
        print_error(f"Error generating project (step: {exc.step}): {exc}")
        return 1

    console.print()
    print_success(f"Project '{args.name}' created successfully!")
    console.print()
    console.print("Next steps:")
    console.print(f"  cd {result.project_path}")
    console.print("  cp .env.example .env")
    console.print("  make docker-up")
    console.print("  make migrate-up")
    console.print("  make dev")
    console.print()
    console.print(f"Your API will be running at http://localhost:{result.ports.api}")
    if options.include_frontend:
        console.print(
            "CORS is enabled for a frontend at http://localhost:3000 (CORS_ALLOWED_ORIGIN)"
        )
    return 0


def cmd_list(config: Config) -> int:
    try:
        projects = RegistryStore(config.registry_path).list_projects()
    except ScaffoldError as exc:
        print_error(f"Error listing projects: {exc}")
        return 1

    if not projects:
        console.print("No projects generated yet.")
        return 0

    table = Table(title="Generated projects", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Entity")
    table.add_column("API", justify="right")
    table.add_column("DB", justify="right")
    table.add_column("Redis", justify="right")
    table.add_column("Created")
    for p in projects:
        table.add_row(
            str(p.index),
            p.name,
            p.entity,
            str(p.api_port),
            str(p.db_port),
            str(p.redis_port),
            p.created_at.strftime("%Y-%m-%d"),
        )
    console.print(table)
    return 0


def cmd_show(args: argparse.Namespace, config: Config) -> int:
    try:
        record = RegistryStore(config.registry_path).get(args.name)
    except ScaffoldError as exc:
        print_error(f"Error reading registry: {exc}")
        return 1

    if record is None:
        print_error(f"Project '{args.name}' is not registered")
        return 1

    print_summary_table(
        {
            "Name": record.name,
            "Index": str(record.index),
            "Entity": record.entity,
            "API port": str(record.api_port),
            "DB port": str(record.db_port),
            "Redis port": str(record.redis_port),
            "Created": record.created_at.isoformat(),
        },
        title=record.name,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``gogen`` and ``python -m gogen``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.resolve(args.config)
    except (OSError, ScaffoldError) as exc:
        print_error(f"Error loading config: {exc}")
        return 1

    if args.command == "create":
        return cmd_create(args, config)
    if args.command == "list":
        return cmd_list(config)
    return cmd_show(args, config)


if __name__ == "__main__":
    sys.exit(main())
