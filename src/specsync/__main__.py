"""Command line entry point: push a parsed content spec to the server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from specsync.cancellation import CancellationToken
from specsync.config import SPECSYNC_SERVER_URL
from specsync.processor import ProcessingOptions, ProcessResult, Processor
from specsync.rest_backend import RestBackend
from specsync.schemas import ContentSpec, User
from specsync.validation import SpecValidator

logger = logging.getLogger("specsync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="specsync",
        description="Save a parsed content spec (JSON) to the content server.",
    )
    parser.add_argument("spec", help="Path to the parsed content spec JSON file")
    parser.add_argument("--server-url", default=SPECSYNC_SERVER_URL, help="REST API root URL")
    parser.add_argument("--user", help="Username requesting the save; becomes the assigned writer")
    parser.add_argument("--mode", choices=("new", "edited"), default="new", help="Create or edit the content spec")
    parser.add_argument("--locale", help="Override the content spec locale")
    parser.add_argument("--validate-only", action="store_true", help="Validate without saving")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def load_spec(path: str) -> ContentSpec:
    spec_path = Path(path)
    if not spec_path.is_file():
        raise FileNotFoundError(f"Content spec file not found: {spec_path}")
    return ContentSpec.model_validate_json(spec_path.read_text(encoding="utf-8"))


async def run(args: argparse.Namespace) -> ProcessResult:
    content_spec = load_spec(args.spec)
    user = User(username=args.user) if args.user else None
    options = ProcessingOptions(
        validate_only=args.validate_only,
        mode=args.mode,
        override_locale=args.locale,
    )

    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except NotImplementedError:
        # Not available on Windows event loops.
        pass

    async with RestBackend(args.server_url) as backend:
        processor = Processor(backend, SpecValidator(backend), options=options, token=token)
        return await processor.process(content_spec, user)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(run(args))
    except (FileNotFoundError, ValidationError) as exc:
        logger.error("Could not load content spec: %s", exc)
        return 2

    if result:
        logger.info(result.summary)
        return 0
    logger.error(result.summary)
    return 130 if result.shutdown else 1


if __name__ == "__main__":
    sys.exit(main())
