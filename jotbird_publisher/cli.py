"""Command-line interface for JotBird Publisher."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from jotbird_publisher.api.errors import ApiError
from jotbird_publisher.config import ConfigError, load_config
from jotbird_publisher.core.publisher import Publisher, create_publisher_from_config
from jotbird_publisher.version import __version__

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Prints notifications and asks for confirmation on the terminal."""

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    def notify(self, message: str) -> None:
        print(message)

    def copy(self, text: str) -> None:
        print(text)

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            return True
        try:
            answer = input(f"{message} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")


def _on_off(value: str) -> bool:
    if value not in ("on", "off"):
        raise argparse.ArgumentTypeError("expected 'on' or 'off'")
    return value == "on"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jotbird",
        description="Publish Obsidian notes to JotBird.",
    )
    parser.add_argument("--version", action="version", version=f"jotbird {__version__}")
    parser.add_argument("--vault", type=Path, default=Path("."), help="Vault directory (default: .)")
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    publish = commands.add_parser("publish", help="Publish or update a note")
    publish.add_argument("path", help="Note path relative to the vault")

    unpublish = commands.add_parser("unpublish", help="Remove a published note")
    unpublish.add_argument("path", help="Note path relative to the vault")
    unpublish.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    link = commands.add_parser("link", help="Print a published note's link")
    link.add_argument("path", help="Note path relative to the vault")

    commands.add_parser("list", help="List documents in your account")
    commands.add_parser("status", help="Show account status")

    connect = commands.add_parser("connect", help="Connect a JotBird account")
    connect.add_argument("token", help="API key (jb_...)")

    commands.add_parser("disconnect", help="Forget the stored API key")
    commands.add_parser("upgraded", help="Refresh notes after upgrading to Pro")
    commands.add_parser("portal", help="Print the subscription management URL")

    settings = commands.add_parser("settings", help="Show or change settings")
    settings.add_argument("--strip-tags", type=_on_off, metavar="on|off")
    settings.add_argument("--auto-copy", type=_on_off, metavar="on|off")
    settings.add_argument("--store-frontmatter", type=_on_off, metavar="on|off")

    return parser


async def run_command(publisher: Publisher, args: argparse.Namespace) -> int:
    """Run one command against a publisher, returning the exit status."""
    await publisher.reconcile_metadata()

    if args.command == "publish":
        await publisher.publish(Path(args.path).as_posix())
    elif args.command == "unpublish":
        await publisher.unpublish(Path(args.path).as_posix())
    elif args.command == "link":
        if publisher.copy_link(Path(args.path).as_posix()) is None:
            return 1
    elif args.command == "list":
        documents = await publisher.list_documents()
        if not documents:
            print("No published documents found.")
        for doc in documents:
            print(f"{doc.title or doc.slug}\t{doc.updated_at[:10]}\t{doc.url}")
    elif args.command == "status":
        if not publisher.settings.api_key:
            print("Not connected. Links expire after 30 days.")
        elif await publisher.check_status():
            print("Connected (Pro). Links never expire.")
        else:
            print("Connected.")
        print(f"Published notes: {len(publisher.records)}")
    elif args.command == "connect":
        await publisher.connect(args.token)
    elif args.command == "disconnect":
        publisher.disconnect()
        print("Disconnected.")
    elif args.command == "upgraded":
        await publisher.handle_upgrade()
    elif args.command == "portal":
        print(await publisher.portal_url())
    elif args.command == "settings":
        settings = publisher.settings
        changes = {
            "strip_tags": args.strip_tags,
            "auto_copy_link": args.auto_copy,
            "store_frontmatter": args.store_frontmatter,
        }
        for key, value in changes.items():
            if value is not None:
                setattr(settings, key, value)
        if any(value is not None for value in changes.values()):
            publisher.save()
        for key in ("strip_tags", "auto_copy_link", "store_frontmatter"):
            print(f"{key}: {'on' if getattr(settings, key) else 'off'}")
    return 0


async def _main(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    notifier = ConsoleNotifier(assume_yes=getattr(args, "yes", False))
    publisher = create_publisher_from_config(args.vault, config, notifier)
    try:
        return await run_command(publisher, args)
    finally:
        await publisher.client.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='[%(levelname)s] %(message)s',
    )

    try:
        return asyncio.run(_main(args))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ApiError as e:
        # Already reported to the user by the publisher
        logger.debug("Command failed: %s", e)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
