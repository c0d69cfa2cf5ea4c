"""CLI for the container registry browser."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from .config import Config
from .exceptions import RegistryBrowserError
from .factory import Factory


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Browse tags and images in container registries."
    )
    parser.add_argument(
        "-c",
        "--config-file",
        "--file",
        type=Path,
        help="browser config file (defaults apply if omitted)",
        default=None,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
        default=False,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    tags = sub.add_parser("tags", help="list all tags of an image")
    tags.add_argument(
        "registry", help="ghcr, dockerhub, quay, gcr, or custom"
    )
    tags.add_argument("owner")
    tags.add_argument("image")
    tags.add_argument(
        "-u", "--url", help="base URL of a custom registry", default=None
    )

    images = sub.add_parser("images", help="list images under an owner")
    images.add_argument(
        "registry", help="ghcr, dockerhub, quay, gcr, or custom"
    )
    images.add_argument("owner")
    images.add_argument(
        "-u", "--url", help="base URL of a custom registry", default=None
    )
    images.add_argument(
        "-n", "--page-size", type=int, help="page size", default=25
    )
    images.add_argument(
        "-t",
        "--token",
        help="bearer token (a GitHub PAT, for ghcr)",
        default=None,
    )
    images.add_argument(
        "-p", "--next-page", help="cursor from a previous page", default=None
    )

    detect = sub.add_parser("detect", help="probe a custom registry URL")
    detect.add_argument("url")
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> Config:
    cfg = Config.from_file(args.config_file) if args.config_file else Config()
    if args.debug:
        cfg.debug = True
    return cfg


async def _run(args: argparse.Namespace, cfg: Config) -> Any:
    async with Factory.standalone(cfg) as factory:
        if args.command == "detect":
            result = await factory.create_detector().detect(args.url)
            return result.to_dict()
        client = factory.create_client_by_name(args.registry, args.url)
        browser = factory.create_browser()
        if args.command == "tags":
            return {
                "tags": await browser.list_tags(client, args.owner, args.image)
            }
        listing = await browser.list_images(
            client,
            args.owner,
            page_size=args.page_size,
            auth_token=args.token,
            next_page=args.next_page,
        )
        return listing.to_dict()


def main(argv: list[str] | None = None) -> int:
    """Run one browsing command and print its result as JSON."""
    args = _parse_args(argv)
    cfg = _load_config(args)
    try:
        output = asyncio.run(_run(args, cfg))
    except ValueError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2
    except RegistryBrowserError as exc:
        retry = " (retryable)" if exc.retryable else ""
        print(f"{exc.code}: {exc}{retry}", file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2))
    return 0
