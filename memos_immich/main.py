#!/usr/bin/env python3
# memos_immich/main.py
"""
Command-line entry point for inspecting and exercising the Immich bridge.

It runs the same operations the Memos host performs (listing albums and
assets for the picker, resolving pasted links, adding assets to the
configured album) against the deployment configured in the environment,
and prints the results as JSON.
"""

# The config_service MUST be the very first import to ensure logging is
# configured before any other modules attempt to log.
try:
    from memos_immich.services import config
except ImportError:
    import sys
    print("FATAL: Could not import services. Please run this script as a module: `python -m memos_immich.main`", file=sys.stderr)
    sys.exit(1)

import argparse
import json
import logging
import sys

from memos_immich.services import immich_service
from memos_immich.exceptions import ImmichBridgeError, ServiceError
from memos_immich.references import extract_asset_id_from_link

logger = logging.getLogger(__name__)

# The CLI operator is trusted in the same way a logged-in Memos user is.
CLI_USER = "cli"


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2))


def run_albums(args: argparse.Namespace) -> int:
    _print_json(immich_service.list_albums(CLI_USER))
    return 0


def run_assets(args: argparse.Namespace) -> int:
    _print_json(immich_service.list_assets(CLI_USER, page_size=args.size, page_token=args.page))
    return 0


def run_extract(args: argparse.Namespace) -> int:
    asset_id, found = extract_asset_id_from_link(args.link, config.immich)
    _print_json({"assetId": asset_id, "found": found})
    return 0 if found else 1


def run_attach(args: argparse.Namespace) -> int:
    attachment = immich_service.prepare_external_attachment(args.link, add_to_album=not args.no_album)
    _print_json(attachment.to_dict())
    return 0


def run_ensure_album(args: argparse.Namespace) -> int:
    ok = immich_service.ensure_album_membership(args.asset_id)
    _print_json({"assetId": args.asset_id, "added": ok})
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Memos Immich bridge")
    subparsers = parser.add_subparsers(dest="command", required=True)

    albums = subparsers.add_parser("albums", help="List Immich albums.")
    albums.set_defaults(func=run_albums)

    assets = subparsers.add_parser("assets", help="List one page of Immich assets, newest first.")
    assets.add_argument("--page", type=str, default=None, help="Page token returned by a previous call.")
    assets.add_argument("--size", type=int, default=None, help="Page size (default 60).")
    assets.set_defaults(func=run_assets)

    extract = subparsers.add_parser("extract", help="Extract an asset ID from a pasted link.")
    extract.add_argument("link")
    extract.set_defaults(func=run_extract)

    attach = subparsers.add_parser("attach", help="Resolve a link into the attachment Memos would store.")
    attach.add_argument("link")
    attach.add_argument("--no-album", action="store_true", help="Do not add the asset to the configured album.")
    attach.set_defaults(func=run_attach)

    ensure = subparsers.add_parser("ensure-album", help="Add an asset to the configured album.")
    ensure.add_argument("asset_id")
    ensure.set_defaults(func=run_ensure_album)

    return parser


def main(argv=None) -> int:
    """
    Main entry point. Parses arguments and runs the requested command within
    a top-level error handler so every failure is logged.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logger.debug(f"Running command '{args.command}'")

    try:
        return args.func(args)
    except ServiceError as e:
        logger.error(f"{args.command} failed ({e.http_status}): {e}")
        return 2
    except ImmichBridgeError as e:
        logger.critical(f"FATAL: {args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
