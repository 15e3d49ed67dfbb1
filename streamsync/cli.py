"""
cli.py
------
Command-line entry point.

Subcommands:
- serve:   launch the web UI.
- fix:     headless correction (analyze unless an offset is given, then export).
- preview: play a clip on this machine with a given offset until Enter.
"""
import argparse
import logging
import sys

from . import config
from .playback import ffplay_exists
from .session import SyncSession
from .utils import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="streamsync", description="Fix audio/video sync drift in a clip.")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="launch the web UI")
    serve.add_argument("--host", default=config.HOST)
    serve.add_argument("--port", type=int, default=config.PORT)
    serve.add_argument("--no-browser", action="store_true", help="do not open a browser window")

    fix = sub.add_parser("fix", help="detect the offset and write a corrected copy")
    fix.add_argument("input", help="clip to correct")
    fix.add_argument("--offset-ms", type=float, default=None,
                     help="skip detection and apply this offset (positive = audio delayed)")
    fix.add_argument("-o", "--output", default=None, help="output path (default: <name>_synced.mp4)")

    preview = sub.add_parser("preview", help="play the clip with an offset applied")
    preview.add_argument("input", help="clip to preview")
    preview.add_argument("--offset-ms", type=float, required=True)
    return parser


def cmd_serve(args) -> int:
    from .ui import run_app
    run_app(host=args.host, port=args.port, open_browser=not args.no_browser)
    return 0


def cmd_fix(args) -> int:
    session = SyncSession()
    try:
        if not session.select(args.input):
            print(f"Error: {session.error}", file=sys.stderr)
            return 1

        if args.offset_ms is None:
            # No automatic preview in headless mode.
            session.analysis.preview = None
            result = session.analyze()
            if result is None:
                print(f"Error: {session.error}", file=sys.stderr)
                return 1
            print(result.summary())
            if result.offset_ms is None:
                print("Error: the server did not report an offset", file=sys.stderr)
                return 1
        else:
            session.set_offset(args.offset_ms)

        output = session.export(args.output)
        if output is None:
            print(f"Error: {session.error}", file=sys.stderr)
            return 1
        print(f"Corrected version saved to: {output}")
        return 0
    finally:
        session.close()


def cmd_preview(args) -> int:
    if not ffplay_exists():
        print(f"Error: {config.FFPLAY_BIN} not found", file=sys.stderr)
        return 1
    session = SyncSession()
    try:
        if not session.select(args.input):
            print(f"Error: {session.error}", file=sys.stderr)
            return 1
        session.set_offset(args.offset_ms)
        session.preview()
        input(f"Previewing with {session.offsets.get():+.0f} ms, press Enter to stop...")
        session.stop()
        return 0
    finally:
        session.close()


COMMANDS = {
    "serve": cmd_serve,
    "fix": cmd_fix,
    "preview": cmd_preview,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    return COMMANDS[args.command](args)
