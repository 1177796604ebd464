"""
Command-line interface for tickpy.

Subcommands:
- heal: check (and optionally repair in place) a store JSON file
- migrate: migrate a store JSON file, or preview the migration
- simulate: run a number of cycles over a store with synthetic CPU readings
- serve: start the inspection API with uvicorn
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from ..config import load_settings
from ..core.context import HostContext, ProcessContext, SimulatedCpu
from ..memory.migration_manager import MemoryMigrationManager
from ..memory.self_healer import MemorySelfHealer, SelfHealerConfig
from ..runtime import loop
from ..utils.logging import configure_logging

logger = logging.getLogger(__name__)


def _read_store(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _write_store(path: str, store: Dict[str, Any]) -> None:
    tmp_path = f"{path}.tmp"
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(store, f, indent=2, sort_keys=True)
        f.write('\n')
    os.replace(tmp_path, path)


def _print_json(data: Any) -> None:
    sys.stdout.write(json.dumps(data, indent=2, sort_keys=True) + '\n')


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="tickpy", description="tickpy execution core tools")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--env-file", default=None, help="dotenv file to load settings from")
    subparsers = parser.add_subparsers(dest="command", required=True)

    heal = subparsers.add_parser("heal", help="Check a store file for corruption")
    heal.add_argument("store", help="Path to the store JSON file")
    heal.add_argument("--write", action="store_true", help="Write repairs back to the file")

    migrate = subparsers.add_parser("migrate", help="Migrate a store file to the current schema")
    migrate.add_argument("store", help="Path to the store JSON file")
    migrate.add_argument("--dry-run", action="store_true", help="Show pending migrations without applying")

    simulate = subparsers.add_parser("simulate", help="Run cycles over a store with synthetic CPU")
    simulate.add_argument("store", help="Path to the store JSON file")
    simulate.add_argument("--cycles", type=int, default=1, help="Number of cycles to run")
    simulate.add_argument("--cpu-limit", type=float, default=20.0, help="CPU limit per cycle")
    simulate.add_argument("--bucket", type=float, default=10000.0, help="CPU bucket level")
    simulate.add_argument("--start-tick", type=int, default=0, help="Tick of the first cycle")
    simulate.add_argument("--cost", type=float, default=0.0, help="CPU charged by a synthetic workload process")
    simulate.add_argument("--write", action="store_true", help="Write the resulting store back to the file")

    serve = subparsers.add_parser("serve", help="Start the inspection API")
    serve.add_argument("--host", default=os.getenv('TICKPY_HOST', '127.0.0.1'), help="Host to bind to")
    serve.add_argument("--port", type=int, default=int(os.getenv('TICKPY_PORT') or '8000'), help="Port to bind to")

    return parser.parse_args(argv)


def handle_heal(args, settings) -> int:
    """Handle the heal command."""
    store = _read_store(args.store)
    healer = MemorySelfHealer(SelfHealerConfig(auto_repair=args.write, log_repairs=settings.log_repairs))
    result = healer.check_and_repair(store)
    _print_json(result.to_dict())

    if result.requires_reset:
        print("✗ Store requires an emergency reset", file=sys.stderr)
        return 2

    if args.write and result.issues_repaired:
        _write_store(args.store, store)
        print(f"✓ Wrote {len(result.issues_repaired)} repair(s) to {args.store}", file=sys.stderr)

    return 0 if result.is_healthy or args.write else 1


def handle_migrate(args, settings) -> int:
    """Handle the migrate command."""
    store = _read_store(args.store)
    manager = MemoryMigrationManager(settings.schema_version)

    if args.dry_run:
        preview = manager.preview_migration(store)
        _print_json(preview.to_dict())
        return 0 if preview.success else 1

    result = manager.migrate(store)
    _print_json(result.to_dict())
    if not result.success:
        print(f"✗ Migration failed; {args.store} left unchanged", file=sys.stderr)
        return 1

    if result.from_version != result.to_version:
        _write_store(args.store, store)
        print(f"✓ Migrated {args.store} to v{result.to_version}", file=sys.stderr)
    return 0


def handle_simulate(args, settings) -> int:
    """Handle the simulate command."""
    store = _read_store(args.store)
    cost = args.cost

    def workload(context: ProcessContext) -> None:
        context.cpu.charge(cost)

    reports = []
    for offset in range(args.cycles):
        host = HostContext(
            time=args.start_tick + offset,
            cpu=SimulatedCpu(limit=args.cpu_limit, bucket=args.bucket),
        )
        processes = [("workload", 0, workload)] if cost > 0 else []
        report = loop(host, store, settings=settings, processes=processes)
        if report is None:
            print(f"✗ Cycle {host.time} failed", file=sys.stderr)
            return 1
        reports.append(report.to_dict())

    _print_json({"cycles": reports, "store": store})

    if args.write:
        _write_store(args.store, store)
    return 0


def handle_serve(args, settings) -> int:
    """Handle the serve command."""
    import uvicorn

    from ..api.app import create_app

    logger.info(f"Starting tickpy inspector on {args.host}:{args.port}")
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


HANDLERS = {
    "heal": handle_heal,
    "migrate": handle_migrate,
    "simulate": handle_simulate,
    "serve": handle_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    settings = load_settings(args.env_file, log_level='DEBUG' if args.debug else None)
    configure_logging(settings.log_level, routine_interval=settings.routine_log_interval)

    try:
        return HANDLERS[args.command](args, settings)
    except FileNotFoundError as e:
        print(f"✗ Store file not found: {e.filename}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"✗ Store file is not valid JSON: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
