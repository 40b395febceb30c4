"""CLI entrypoint for nostr-media.

Exit codes: 0 success (relay failures are reported, not fatal), 2 invalid
input or key, 3 media error, 4 download/upload error, 1 anything else.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from pynostr.event import Event

from . import __version__
from .config import DEFAULT_BLOSSOM_SERVER, DEFAULT_DIFFICULTY, PublishConfig
from .errors import KeyDecodeError, MediaError, NetworkError, NostrMediaError, ValidationError
from .event import event_to_json
from .pipeline import MediaPublisher
from .relay import RelayResult, resolve_relays
from .signer import LocalSigner

KEY_ENV = "NOSTR_SECRET_KEY"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_MEDIA = 3
EXIT_NETWORK = 4


def exit_code_for(error: NostrMediaError) -> int:
    if isinstance(error, (ValidationError, KeyDecodeError)):
        return EXIT_USAGE
    if isinstance(error, MediaError):
        return EXIT_MEDIA
    if isinstance(error, NetworkError):
        return EXIT_NETWORK
    return EXIT_FAILURE


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--key", default=None, help=f"Private key, hex or nsec (default: ${KEY_ENV})")
    parser.add_argument("--title", default=None, help="Event title")
    parser.add_argument("--description", default="", help="Event content")
    parser.add_argument("--published-at", dest="published_at", default=None, help="Unix timestamp of first publication")
    parser.add_argument("--relay", default=None, help="Relay URL or path to a JSON file of relay URLs")
    parser.add_argument("-r", dest="relay_short", default=None, help="Relay URL or file, used when --relay yields none")
    parser.add_argument("--transmit", action="store_true", help="Publish to the default relays if no relay is given")
    parser.add_argument("--blossom", default=None, help=f"Blossom server (default: {DEFAULT_BLOSSOM_SERVER})")
    parser.add_argument("--diff", type=int, default=None, help=f"Proof of work difficulty in bits (default: {DEFAULT_DIFFICULTY})")
    parser.add_argument("--pow-timeout", dest="pow_timeout", type=float, default=None, help="Give up proof of work after N seconds")
    parser.add_argument("--hashtags", action="store_true", help="Add a t tag for every #hashtag in the description")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nostr-media", description="Publish NIP-68 picture and NIP-71 video events to Nostr"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    picture = subparsers.add_parser("picture", help="Publish a picture event (kind 20)")
    _add_common_arguments(picture)
    picture.add_argument("--file", dest="files", action="append", default=[], help="Local image to upload (repeatable)")
    picture.add_argument("--url", dest="urls", action="append", default=[], help="Remote image URL (repeatable)")

    video = subparsers.add_parser("video", help="Publish a video event (kind 21/22, legacy 34235/34236)")
    _add_common_arguments(video)
    source = video.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", default=None, help="Local video to upload")
    source.add_argument("--url", default=None, help="Remote video URL")
    video.add_argument("--descriptor", default=None, help="d tag value for legacy events (default: content hash)")
    video.add_argument("--legacy", action="store_true", help="Use the addressable legacy kinds 34235/34236")
    video.add_argument("--duration", type=int, default=0, help="Video duration in seconds")
    return parser


def select_relays(args: argparse.Namespace, config: PublishConfig) -> List[str]:
    """Relay targets for this run. Empty means do not publish."""
    if args.relay or args.relay_short:
        relays = resolve_relays(args.relay, args.relay_short)
        if not relays:
            raise ValidationError("no relays found in --relay/-r")
        return relays
    if args.transmit:
        return list(config.default_relays)
    return []


async def _create_event(publisher: MediaPublisher, args: argparse.Namespace) -> Event:
    if args.command == "picture":
        return await publisher.create_picture_event(
            files=args.files,
            urls=args.urls,
            title=args.title,
            description=args.description,
            published_at=args.published_at,
            hashtags=args.hashtags,
        )
    return await publisher.create_video_event(
        file=args.file,
        url=args.url,
        title=args.title,
        description=args.description,
        published_at=args.published_at,
        descriptor=args.descriptor,
        legacy=args.legacy,
        duration=args.duration,
        hashtags=args.hashtags,
    )


async def run(args: argparse.Namespace) -> int:
    config = PublishConfig.from_env(
        blossom_server=args.blossom, difficulty=args.diff, pow_timeout=args.pow_timeout
    )
    key = args.key or os.getenv(KEY_ENV)
    if not key:
        raise ValidationError(f"a private key is required (--key or ${KEY_ENV})")
    signer = LocalSigner(key)
    relays = select_relays(args, config)

    publisher = MediaPublisher(signer, config)
    event = await _create_event(publisher, args)
    print(event_to_json(event))

    results = await publisher.publish(event, relays)
    for result in results:
        report(result)
    return EXIT_OK


def report(result: RelayResult) -> None:
    if result.ok:
        print(result.describe())
    else:
        sys.stderr.write(result.describe() + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except NostrMediaError as e:
        sys.stderr.write(f"ERROR: {type(e).__name__}: {e}\n")
        return exit_code_for(e)
    except KeyboardInterrupt:
        sys.stderr.write("ERROR: interrupted\n")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
