"""Datastore Manager entry point.

``dsmanager serve`` starts the API server.  The other subcommands drive the
console store against a running server, so the whole API can be used from a
terminal.
"""

import argparse
import asyncio
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from dsmanager.config import get_settings
from dsmanager.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _package_version() -> str:
    try:
        return get_version("dsmanager")
    except PackageNotFoundError:
        from dsmanager import __version__

        return __version__


def _print_json(data) -> None:
    from rich.console import Console

    Console().print_json(data=data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dsmanager",
        description="Admin console for Roblox Open Cloud datastores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dsmanager serve                                Start the API server
  dsmanager login --universe-id 123 --api-token KEY
  dsmanager keys Players --search user_          List matching keys
  dsmanager versions Players user_1              Show version history
  dsmanager restore Players user_1 VERSION --yes Restore an old version
""",
    )
    parser.add_argument(
        "--version", "-v", action="version", version=f"%(prog)s {_package_version()}"
    )
    parser.add_argument(
        "--url", default=None, help="API root for console commands (default: from settings)"
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: from settings)")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Start the API server")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", "-p", type=int, default=8888, help="Port (default: 8888)")
    serve.add_argument("--dev", action="store_true", help="Development mode with auto-reload")

    login = sub.add_parser("login", help="Check and remember credentials")
    login.add_argument("--universe-id", required=True)
    login.add_argument("--api-token", required=True)

    sub.add_parser("logout", help="Forget saved credentials")
    sub.add_parser("datastores", help="List datastores")

    create = sub.add_parser("create", help="Create a datastore")
    create.add_argument("name")

    keys = sub.add_parser("keys", help="List entry keys")
    keys.add_argument("name")
    keys.add_argument("--search", default=None, help="Key prefix to search for")
    keys.add_argument("--all", action="store_true", help="Follow every page")

    get = sub.add_parser("get", help="Show an entry's value")
    get.add_argument("name")
    get.add_argument("key")

    set_ = sub.add_parser("set", help="Write an entry's value")
    set_.add_argument("name")
    set_.add_argument("key")
    set_.add_argument("value", help="JSON value")

    delete = sub.add_parser("delete", help="Delete an entry")
    delete.add_argument("name")
    delete.add_argument("key")

    increment = sub.add_parser("increment", help="Increment a numeric entry")
    increment.add_argument("name")
    increment.add_argument("key")
    increment.add_argument("by", type=int)

    versions = sub.add_parser("versions", help="List an entry's versions")
    versions.add_argument("name")
    versions.add_argument("key")

    restore = sub.add_parser("restore", help="Overwrite an entry with an older version")
    restore.add_argument("name")
    restore.add_argument("key")
    restore.add_argument("version_id")
    restore.add_argument("--yes", action="store_true", help="Confirm the overwrite")

    live = sub.add_parser("live", help="Re-list a datastore's keys on an interval")
    live.add_argument("name")
    live.add_argument("--interval", type=float, default=5.0)
    live.add_argument("--search", default=None)

    return parser


async def run_console_command(args: argparse.Namespace, console) -> int:
    """Run one console subcommand.  Returns the process exit code."""
    from dsmanager.console import ConfirmationRequired, EntryVersion

    cmd = args.command
    if cmd == "login":
        names = await console.connect(args.universe_id, args.api_token)
        print(f"Connected. {len(names)} datastore(s).")
    elif cmd == "logout":
        console.clear_credentials()
        print("Credentials cleared.")
    elif cmd == "datastores":
        _print_json(await console.fetch_datastores())
    elif cmd == "create":
        await console.create_datastore(args.name)
        print(f"Datastore {args.name!r} created.")
    elif cmd == "keys":
        if args.all:
            _print_json([key async for key in console.iter_entries(args.name, args.search)])
        else:
            page = await console.fetch_entries(args.name, search=args.search)
            _print_json({"keys": page.keys, "nextPageCursor": page.next_page_cursor})
    elif cmd == "get":
        _print_json(await console.fetch_entry(args.name, args.key))
    elif cmd == "set":
        try:
            value = json.loads(args.value)
        except json.JSONDecodeError as e:
            print(f"Value is not valid JSON: {e}", file=sys.stderr)
            return 2
        _print_json(await console.save_entry(args.name, args.key, value))
    elif cmd == "delete":
        await console.delete_entry(args.name, args.key)
        print(f"Deleted {args.key!r}.")
    elif cmd == "increment":
        _print_json(await console.increment_entry(args.name, args.key, args.by))
    elif cmd == "versions":
        versions = await console.fetch_versions(args.name, args.key)
        _print_json(
            [
                {
                    "version": v.version,
                    "createdTime": v.created_time,
                    "contentLength": v.content_length,
                    "deleted": v.deleted,
                    "isLatest": v.is_latest,
                }
                for v in versions
            ]
        )
    elif cmd == "restore":
        try:
            await console.restore_version(
                args.name, args.key, EntryVersion(version=args.version_id), confirm=args.yes
            )
        except ConfirmationRequired as e:
            print(f"{e}. Re-run with --yes to confirm.", file=sys.stderr)
            return 1
        print(f"Restored {args.key!r} to version {args.version_id}.")
    elif cmd == "live":
        console.select_datastore(args.name)
        async for page in console.live(args.name, args.interval, search=args.search):
            print(f"{len(page.keys)} key(s): {', '.join(page.keys[:10])}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)

    if args.command == "serve":
        from dsmanager.api.serve import run_api_server

        run_api_server(host=args.host, port=args.port, dev=args.dev)
        return 0

    from dsmanager.console import ConsoleError, DatastoreConsole, Preferences

    console = DatastoreConsole(args.url or settings.console_api_url, preferences=Preferences())
    try:
        return asyncio.run(run_console_command(args, console))
    except ConsoleError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
