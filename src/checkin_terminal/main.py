from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

from checkin_terminal.app import CameraSource, CheckInTerminal, PayloadSource
from checkin_terminal.config.logging_config import setup_logging
from checkin_terminal.config.settings import Settings, settings
from checkin_terminal.services import CheckInStats, LineReader, NoRosterAvailable, QRScanner, ScanDecision

TONE_MARKERS = {"success": "[OK]", "warning": "[!!]", "error": "[XX]"}


def print_decision(decision: ScanDecision) -> None:
    marker = TONE_MARKERS.get(decision.tone, "[--]")
    print(f"{marker} {decision.title} - {decision.message}")


def print_stats(stats: CheckInStats) -> None:
    print(f"Checked in: {stats.checked_in}  Pending sync: {stats.pending_sync}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="checkin-terminal",
        description="Offline-tolerant event check-in terminal.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Load the roster and check in scanned payloads.")
    run_parser.add_argument(
        "--source",
        default="stdin",
        help="'camera', 'stdin' (default) or a path to a file with one payload per line.",
    )
    run_parser.add_argument("--camera-index", type=int, default=None, help="Camera to open with --source camera.")

    scan_parser = subparsers.add_parser("scan", help="Process the given payloads once and exit.")
    scan_parser.add_argument("payloads", nargs="+")

    subparsers.add_parser("refresh", help="Reload the roster from the roster authority.")

    import_parser = subparsers.add_parser("import", help="Seed the roster from a JSON file.")
    import_parser.add_argument("path", type=Path)

    subparsers.add_parser("sync", help="Attempt delivery of every pending check-in once.")
    subparsers.add_parser("status", help="Show check-in counters.")

    reset_parser = subparsers.add_parser("reset", help="Clear roster, scan records and pending sync.")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the reset.")

    return parser


def _make_source(terminal_settings: Settings, args: argparse.Namespace) -> PayloadSource:
    if args.source == "camera":
        camera_index = args.camera_index if args.camera_index is not None else terminal_settings.qr_camera_index
        return CameraSource(QRScanner(camera_index=camera_index))
    if args.source == "stdin":
        return LineReader(sys.stdin)
    return LineReader.open(args.source)


async def _run(terminal: CheckInTerminal, terminal_settings: Settings, args: argparse.Namespace) -> int:
    if args.command == "run":
        await terminal.run(_make_source(terminal_settings, args))
        return 0

    try:
        if args.command == "scan":
            await terminal.load_roster()
            await terminal.dispatcher.set_online(terminal.roster.loaded_from_remote)
            for payload in args.payloads:
                terminal.process(payload)
            print_stats(terminal.stats.current())
            return 0

        if args.command == "refresh":
            participants = await terminal.load_roster()
            origin = "roster authority" if terminal.roster.loaded_from_remote else "stored snapshot"
            print(f"Loaded {len(participants)} participants from {origin}.")
            return 0

        if args.command == "sync":
            pending = terminal.queue.size()
            synced = await terminal.dispatcher.sweep()
            print(f"Synced {synced} of {pending} pending check-ins.")
            print_stats(terminal.stats.current())
            return 0 if synced == pending else 1
    finally:
        await terminal.stop()

    return 2


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    terminal_settings = settings
    setup_logging(terminal_settings.log_level, terminal_settings.log_file)

    if args.command == "reset" and not args.yes:
        print("Refusing to clear local state without --yes.", file=sys.stderr)
        return 2

    terminal = CheckInTerminal(
        terminal_settings,
        on_decision=print_decision,
    )

    if args.command == "status":
        print_stats(terminal.stats.current())
        pending = terminal.queue.all()
        if pending:
            print("Pending ids: " + ", ".join(str(participant_id) for participant_id in pending))
        return 0

    if args.command == "reset":
        terminal.reset()
        print("Local storage cleared.")
        return 0

    if args.command == "import":
        try:
            participants = terminal.roster.import_file(args.path)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            print(f"Unable to import roster: {exc}", file=sys.stderr)
            return 1
        print(f"Imported {len(participants)} participants.")
        return 0

    try:
        return asyncio.run(_run(terminal, terminal_settings, args))
    except NoRosterAvailable as exc:
        print(f"Data Loading Failed - {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
