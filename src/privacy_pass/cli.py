"""Command line interface for inspecting and managing the token pool."""

from __future__ import annotations

import argparse
import logging
from dataclasses import fields
from typing import Optional, Sequence

from .core.config import ClientSettings, load_settings
from .core.errors import UnknownConfigVariant
from .core.registry import ConfigRegistry
from .tokens.storage import JsonFileTokenStorage
from .tokens.store import TokenStore


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Privacy Pass token pool manager")
    parser.add_argument("--config-id", type=int, default=None, help="Configuration bundle to use")
    parser.add_argument("--token-file", default=None, help="JSON file holding the token pools")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("count", help="Show the number of stored tokens")
    subparsers.add_parser("clear", help="Delete every stored token")
    subparsers.add_parser("configs", help="List the known configuration bundles")
    show = subparsers.add_parser("show", help="Print the parameters of a bundle")
    show.add_argument("bundle_id", type=int)
    return parser.parse_args(argv)


def _open_store(settings: ClientSettings) -> TokenStore:
    registry = ConfigRegistry(initial_id=settings.config_id)
    return TokenStore(JsonFileTokenStorage(settings.token_file), registry)


def print_bundle(registry: ConfigRegistry, bundle_id: int) -> None:
    bundle = registry.get(bundle_id)
    for item in fields(bundle):
        value = getattr(bundle, item.name)
        print(f"{item.name}: {getattr(value, 'value', value)}")


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    settings = load_settings(config_id=args.config_id, token_file=args.token_file)
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))

    try:
        if args.command == "configs":
            registry = ConfigRegistry(initial_id=settings.config_id)
            for bundle_id in registry.known_ids():
                bundle = registry.get(bundle_id)
                marker = "*" if bundle_id == registry.active_id else " "
                print(f"[{marker}] {bundle_id} {bundle.variant.value}")
            return 0

        if args.command == "show":
            print_bundle(ConfigRegistry(initial_id=settings.config_id), args.bundle_id)
            return 0

        store = _open_store(settings)
        if args.command == "count":
            print(store.count())
        elif args.command == "clear":
            store.clear_all()
            print(f"[+] Tokens removed from {settings.token_file}")
    except UnknownConfigVariant as exc:
        print(f"[!] {exc}")
        return 2
    return 0


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
