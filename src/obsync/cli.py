"""Command-line interface for one-shot syncs.

Commands:
    obsync init    Pull every remote file into the vault (first run)
    obsync pull    Apply remote changes to the vault
    obsync push    Scan the vault and commit local changes
    obsync status  Show stored sync state
    obsync reset   Forget the stored reference and tree

Exit status is 0 on success, 1 on a failed sync and 2 on a
configuration error.
"""

import argparse
import asyncio
import json
import logging
import sys

import yaml

from . import __version__
from .config_loader import ensure_config
from .core.result import Err, Ok
from .logger import setup_logging
from .session import (
    SyncSession,
    load_logging_config,
    open_session,
    resolve_config,
)
from .sync.reporter import (
    format_pull_report,
    format_push_report,
    report_to_json,
)

logger = logging.getLogger(__name__)


def _emit(report, as_json: bool, formatter) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(formatter(report))


async def _cmd_init(session: SyncSession, args: argparse.Namespace) -> int:
    if session.initialised and not args.force:
        print(
            "Vault is already initialised; use --force to pull every file again.",
            file=sys.stderr,
        )
        return 1
    match await session.initialise():
        case Ok(report):
            _emit(report, args.json, format_pull_report)
            return 0
        case Err(error):
            print(f"Initialisation failed: {error}", file=sys.stderr)
            return 1


async def _cmd_pull(session: SyncSession, args: argparse.Namespace) -> int:
    if not session.initialised:
        print(
            "Vault is not initialised; run 'obsync init' first.",
            file=sys.stderr,
        )
        return 1
    match await session.coordinator.pull():
        case Ok(report):
            _emit(report, args.json, format_pull_report)
            return 1 if report.errors else 0
        case Err(error):
            print(f"Pull failed: {error}", file=sys.stderr)
            return 1


async def _cmd_push(session: SyncSession, args: argparse.Namespace) -> int:
    if not session.initialised:
        print(
            "Vault is not initialised; run 'obsync init' first.",
            file=sys.stderr,
        )
        return 1
    scanned = await session.coordinator.scan()
    if isinstance(scanned, Err):
        print(f"Scan failed: {scanned.error}", file=sys.stderr)
        return 1
    logger.info("Found %d local change(s)", scanned.value)

    match await session.coordinator.push():
        case Ok(report):
            _emit(report, args.json, format_push_report)
            return 0
        case Err(error):
            print(f"Push failed: {error}", file=sys.stderr)
            return 1


async def _cmd_status(session: SyncSession, args: argparse.Namespace) -> int:
    status = session.status()
    if args.json:
        print(json.dumps(status, indent=2))
        return 0
    for key, value in status.items():
        print(f"{key.replace('_', ' ').capitalize():<17} {value}")
    return 0


async def _cmd_reset(session: SyncSession, args: argparse.Namespace) -> int:
    await session.reset_state()
    print("Sync state cleared; run 'obsync init' to pull every file again.")
    return 0


_COMMANDS = {
    "init": _cmd_init,
    "pull": _cmd_pull,
    "push": _cmd_push,
    "status": _cmd_status,
    "reset": _cmd_reset,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="obsync",
        description="Sync a local vault of text files with a GitHub repository",
    )
    parser.add_argument("--owner", help="Repository owner (overrides OBSYNC_OWNER)")
    parser.add_argument("--repo", help="Repository name (overrides OBSYNC_REPO)")
    parser.add_argument("--branch", help="Branch (overrides OBSYNC_BRANCH)")
    parser.add_argument(
        "--token",
        help="Access token (visible in process list -- prefer OBSYNC_TOKEN)",
    )
    parser.add_argument("--vault", help="Vault directory (overrides OBSYNC_VAULT)")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--json", action="store_true", help="Print machine-readable output"
    )
    parser.add_argument(
        "--version", action="version", version=f"obsync version {__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    init = commands.add_parser("init", help="Pull every remote file into the vault")
    init.add_argument(
        "--force",
        action="store_true",
        help="Initialise again even if the vault already is",
    )
    init.add_argument(
        "--write-config",
        action="store_true",
        help="Create a starter .obsync/config.yml if none exists",
    )
    commands.add_parser("pull", help="Apply remote changes to the vault")
    commands.add_parser("push", help="Scan the vault and commit local changes")
    commands.add_parser("status", help="Show stored sync state")
    commands.add_parser("reset", help="Forget the stored reference and tree")
    return parser


async def _run(session: SyncSession, args: argparse.Namespace) -> int:
    try:
        return await _COMMANDS[args.command](session, args)
    finally:
        await session.coordinator.queue.join()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        log_settings = load_logging_config()
    except (ValueError, OSError, yaml.YAMLError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or log_settings.file,
        level=log_settings.level,
    )

    if getattr(args, "write_config", False):
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)

    overrides = {
        "owner": args.owner,
        "repo": args.repo,
        "branch": args.branch,
        "credential": args.token,
        "vault_root": args.vault,
        "insecure": args.insecure,
        "debug": args.debug,
    }
    try:
        config = resolve_config(overrides)
        session = open_session(config)
    except (ValueError, OSError, yaml.YAMLError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        return asyncio.run(_run(session, args))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
