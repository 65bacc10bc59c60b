"""
======================================================================
 campfire-stream: Campfire streaming API client
 Streams one or more rooms and prints every message as it arrives.
======================================================================
"""

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from runtime.version import as_string
from services.campfire.api.stream import CampfireStreamClient
from services.campfire.models.message import CampfireMessage
from shared.config.campfire import ConfigError, load_settings
from shared.logging.logger import get_logger

log = get_logger("campfire.cli")


def _print_message(as_json: bool):
    def _on_stream(_client, payload) -> None:
        message = CampfireMessage.from_payload(payload)
        if as_json:
            out = message.to_event() if message else payload
            print(json.dumps(out, ensure_ascii=False), flush=True)
        elif message:
            print(message.format_line(), flush=True)
        else:
            print(json.dumps(payload, ensure_ascii=False), flush=True)

    return _on_stream


def _print_error(_client, *args) -> None:
    print(" ".join(str(arg) for arg in args), file=sys.stderr, flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campfire-stream",
        description="Receive the Campfire streaming API for one or more rooms",
    )
    parser.add_argument("--token", help="API token (or set CAMPFIRE_TOKEN)")
    parser.add_argument(
        "--rooms",
        help="Comma separated room ids, the id is in the room url (or set CAMPFIRE_ROOMS)",
    )
    parser.add_argument("--host", help="Service host (default campfirenow.com)")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print every message as a JSON event instead of 'id: body'",
    )
    parser.add_argument("--version", action="version", version=as_string())
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        settings = load_settings(token=args.token, rooms=args.rooms, host=args.host)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1

    client = CampfireStreamClient(settings.token, settings.rooms, host=settings.host)
    client.on("stream", _print_message(args.json))
    client.on("error", _print_error)

    log.info("Streaming %d room(s) from %s", len(settings.rooms), settings.host)

    try:
        asyncio.run(client.run())
    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received; shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
