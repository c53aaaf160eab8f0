"""Command-line interface for operating a local UMP lookup index.

The commands drive the same callbacks an overlay host would, which makes the
CLI handy for seeding a development index and checking lookups by hand.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from .config import ConfigurationError, load_lookup_config, set_default_config_path
from .docs import UMP_LOOKUP_DOCS
from .pushdrop import DecodeError
from .query import InvalidQueryError
from .record_store import StorageError
from .service import UMPLookupService, create_lookup_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _parse_output_index(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"output index must be an integer: {raw}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"output index must be non-negative: {raw}")
    return value


def _add_outpoint_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("txid", help="Transaction id of the output")
    parser.add_argument("output_index", type=_parse_output_index, help="Output index within the transaction")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="UMP lookup service CLI")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--db-path", default=None, help="SQLite database holding the index")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup_parser = subparsers.add_parser("lookup", help="find the current token for an account")
    key_group = lookup_parser.add_mutually_exclusive_group(required=True)
    key_group.add_argument("--presentation-hash", help="Hex presentation key hash")
    key_group.add_argument("--recovery-hash", help="Hex recovery key hash")
    key_group.add_argument("--outpoint", help="Output reference as <txid>.<outputIndex>")
    lookup_parser.add_argument(
        "--json", dest="as_json", action="store_true", help="Emit the result as JSON"
    )

    admit_parser = subparsers.add_parser("admit", help="index an admitted UMP token output")
    _add_outpoint_arguments(admit_parser)
    admit_parser.add_argument("script_hex", help="Hex-encoded locking script")
    admit_parser.add_argument("--topic", default=None, help="Topic the output was admitted under")

    spend_parser = subparsers.add_parser("spend", help="remove a spent token output")
    _add_outpoint_arguments(spend_parser)
    spend_parser.add_argument("--topic", default=None, help="Topic the output was admitted under")

    evict_parser = subparsers.add_parser("evict", help="remove an evicted token output")
    _add_outpoint_arguments(evict_parser)

    subparsers.add_parser("info", help="show service metadata and index size")
    subparsers.add_parser("docs", help="print the service documentation")
    return parser


def _service_from_args(args: argparse.Namespace) -> UMPLookupService:
    if args.config:
        set_default_config_path(args.config)
    overrides: dict[str, Any] = {}
    if args.db_path:
        overrides["db_path"] = args.db_path
    config = load_lookup_config(overrides=overrides)
    return create_lookup_service(config=config)


def cmd_lookup(service: UMPLookupService, args: argparse.Namespace) -> None:
    if args.presentation_hash:
        query = {"presentationHash": args.presentation_hash}
    elif args.recovery_hash:
        query = {"recoveryHash": args.recovery_hash}
    elif args.outpoint:
        query = {"outpoint": args.outpoint}
    else:  # pragma: no cover - argparse enforces the group
        raise CLIError("lookup requires a query key")

    results = service.lookup(query)
    if args.as_json:
        print(json.dumps([ref.to_dict() for ref in results], indent=2))
        return
    if not results:
        print("No matching UMP token found.")
        return
    for ref in results:
        print(f"{ref.txid}.{ref.output_index}")


def cmd_admit(service: UMPLookupService, args: argparse.Namespace) -> None:
    topic = args.topic or service.topic
    if topic != service.topic:
        logger.info("Topic %s is not tracked (tracking %s); nothing indexed", topic, service.topic)
    service.output_added(args.txid, args.output_index, args.script_hex, topic)


def cmd_spend(service: UMPLookupService, args: argparse.Namespace) -> None:
    service.output_spent(args.txid, args.output_index, args.topic or service.topic)


def cmd_evict(service: UMPLookupService, args: argparse.Namespace) -> None:
    service.output_evicted(args.txid, args.output_index)


def cmd_info(service: UMPLookupService) -> None:
    metadata = service.get_metadata()
    print(f"{metadata['name']}: {metadata['shortDescription']}")
    print(f"  topic: {service.topic}")
    print(f"  strict queries: {'yes' if service.strict_queries else 'no'}")
    print(f"  indexed tokens: {service.store.count()}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "docs":
            print(UMP_LOOKUP_DOCS)
            return

        service = _service_from_args(args)
        try:
            if args.command == "lookup":
                cmd_lookup(service, args)
            elif args.command == "admit":
                cmd_admit(service, args)
            elif args.command == "spend":
                cmd_spend(service, args)
            elif args.command == "evict":
                cmd_evict(service, args)
            elif args.command == "info":
                cmd_info(service)
            else:  # pragma: no cover - argparse enforces choices
                raise CLIError(f"Unknown command: {args.command}")
        finally:
            service.store.close()
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (
        CLIError,
        ConfigurationError,
        DecodeError,
        InvalidQueryError,
        StorageError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
