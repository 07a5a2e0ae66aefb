"""Command line entrypoint: ``python -m resilienthttp URL``."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Optional

import httpx

from resilienthttp.client import do
from resilienthttp.config import DEFAULT_RETRY_BUDGET, DEFAULT_TIMEOUT, default_config
from resilienthttp.errors import ResilientHTTPError
from resilienthttp.models import new_request

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _retries_type(value: str) -> int:
    try:
        retries = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--retries must be an integer") from exc
    if retries < 1:
        raise argparse.ArgumentTypeError("--retries must be at least 1")
    return retries


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resilienthttp",
        description="GET a URL, retrying server errors with exponential backoff.",
    )
    parser.add_argument("url")
    parser.add_argument("--retries", type=_retries_type, default=DEFAULT_RETRY_BUDGET)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_VALID_LOG_LEVELS,
        default="WARNING",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = default_config(timeout=args.timeout, retry_budget=args.retries)
    try:
        with do(config, new_request("GET", args.url)) as response:
            body = response.read()
    except (ResilientHTTPError, httpx.HTTPError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        config.transport.close()
    sys.stdout.write(body.decode(errors="replace"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
