#!/usr/bin/env python3
"""Command line interface.

Usage:
    graccess [-c CONFIG] [-v] galaxies [--node NODE]
    graccess [-c CONFIG] [-v] provision [--galaxy NAME] [--json]
    graccess [-c CONFIG] [-v] ensure NAME TEMPLATE [--parent PARENT] [--galaxy NAME]
    graccess [-c CONFIG] [-v] export NAME... --output PATH [--format FORMAT] [--galaxy NAME]
    graccess [-c CONFIG] [-v] history [--limit N] [--galaxy NAME]

Environment variables:
    GRACCESS_PASSWORD     Galaxy password (unless galaxy.password_env says otherwise)
    GRACCESS_LOG_LEVEL    Console log level
    GRACCESS_LOG_FILE     Log file; the audit log is written next to it
"""
import argparse
import json
import logging
import sys
from typing import Optional

import yaml

from .config.settings import ExportSettings, Settings, load_settings
from .errors import GalaxyError, NotFoundError
from .galaxy import DEFAULT_EXPORT_FORMAT, create_backend
from .provisioning import InstanceEnsurer, ProvisionRunner, export_objects
from .utils.audit_log import ChangeTracker, get_recent_changes, setup_audit_logging
from .utils.logging_config import get_log_file, global_stats, setup_logging

logger = logging.getLogger("graccess.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graccess",
        description="Ensure and export objects in an ArchestrA galaxy through GRAccess",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # List galaxies on this node
    graccess galaxies

    # Ensure every configured instance and export the package
    graccess -c configs/graccess.yaml provision

    # Ensure a single instance under an area
    graccess ensure MainTank '$UserDefined' --parent MainArea
""",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Settings file (default: ./configs/graccess.yaml, ./graccess.yaml, ~/.config/graccess/graccess.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    galaxies = sub.add_parser("galaxies", help="List galaxies")
    galaxies.add_argument("--node", type=str, help="GR node name (default: from settings)")

    provision = sub.add_parser("provision", help="Ensure configured instances and export")
    provision.add_argument("--galaxy", type=str, help="Galaxy name (default: from settings)")
    provision.add_argument("--json", action="store_true", help="Print the report as JSON")

    ensure = sub.add_parser("ensure", help="Ensure one instance exists")
    ensure.add_argument("name", help="Instance tagname")
    ensure.add_argument("template", help="Template to derive from if the instance is missing")
    ensure.add_argument("--parent", type=str, help="Area or host to assign the instance to")
    ensure.add_argument("--galaxy", type=str, help="Galaxy name (default: from settings)")

    export = sub.add_parser("export", help="Export instances to a package file")
    export.add_argument("names", nargs="+", help="Instance tagnames")
    export.add_argument("-o", "--output", required=True, help="Package file path")
    export.add_argument("--format", default=DEFAULT_EXPORT_FORMAT, help=f"Export type (default: {DEFAULT_EXPORT_FORMAT})")
    export.add_argument("--galaxy", type=str, help="Galaxy name (default: from settings)")

    history = sub.add_parser("history", help="Show recent changes from the audit log")
    history.add_argument("--limit", type=int, default=20, help="Maximum records (default: 20)")
    history.add_argument("--galaxy", type=str, help="Only changes to this galaxy")

    return parser


def _cmd_galaxies(settings: Settings, args: argparse.Namespace) -> int:
    backend = create_backend(settings.backend)
    galaxies = backend.query_galaxies(args.node)
    for name in galaxies.names():
        print(name)
    logger.info(f"{len(galaxies)} galaxies found")
    return 0


def _cmd_provision(settings: Settings, args: argparse.Namespace) -> int:
    runner = ProvisionRunner(create_backend(settings.backend), settings, args.galaxy)
    report = runner.run()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))

    summary = report.to_dict()["summary"]
    logger.info("=" * 60)
    logger.info(f"Galaxy: {report.galaxy}")
    for outcome in report.outcomes:
        status = "CREATED" if outcome.created else "EXISTS"
        parent = f" -> {outcome.relation} {outcome.parent}" if outcome.parent else ""
        logger.info(f"  {outcome.instance_name}: {status}{parent}")
    logger.info(f"Ensured: {summary['ensured']} (created {summary['created']}, reused {summary['reused']})")
    if report.export_path:
        logger.info(f"Exported {len(report.exported)} objects to {report.export_path}")
    logger.info("=" * 60)
    logger.debug(global_stats.summary())
    return 0


def _cmd_ensure(settings: Settings, args: argparse.Namespace) -> int:
    runner = ProvisionRunner(create_backend(settings.backend), settings, args.galaxy)
    galaxy = runner.connect()
    ensurer = InstanceEnsurer(galaxy, ChangeTracker(galaxy.name, settings.galaxy.username))

    parent = None
    if args.parent:
        parent = ensurer.find_instance(args.parent)
        if parent is None:
            raise NotFoundError(f"Parent '{args.parent}' could not be found")

    instance = ensurer.ensure(args.name, args.template, parent)
    outcome = ensurer.outcomes[-1]
    print(f"{instance.tagname}: {'created' if outcome.created else 'exists'}")
    return 0


def _cmd_export(settings: Settings, args: argparse.Namespace) -> int:
    runner = ProvisionRunner(create_backend(settings.backend), settings, args.galaxy)
    galaxy = runner.connect()
    exported = export_objects(
        galaxy,
        ExportSettings(objects=list(args.names), path=args.output, format=args.format),
    )
    print(f"Exported {len(exported)} objects to {args.output}")
    return 0


def _cmd_history(audit_file: str, args: argparse.Namespace) -> int:
    records = get_recent_changes(audit_file, galaxy=args.galaxy, limit=args.limit)
    for record in records:
        params = ", ".join(f"{k}={v}" for k, v in record.parameters.items())
        print(f"{record.timestamp}  {record.galaxy:15s}  {record.operation:16s}  {params}")
    if not records:
        logger.info("No changes recorded")
    return 0


COMMANDS = {
    "galaxies": _cmd_galaxies,
    "provision": _cmd_provision,
    "ensure": _cmd_ensure,
    "export": _cmd_export,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else None)
    audit_file = setup_audit_logging(str(get_log_file().parent))

    if args.command == "history":
        return _cmd_history(audit_file, args)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid settings: {e}")
        return 1

    try:
        return COMMANDS[args.command](settings, args)
    except GalaxyError as e:
        logger.error(str(e))
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
