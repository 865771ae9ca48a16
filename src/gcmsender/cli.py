"""Command-line entrypoint: send one multicast message."""

from __future__ import annotations

import argparse
import json
import logging as py_logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .config import load_config
from .errors import ErrorCode, GcmError, user_facing_error
from .logging import LOG_LEVELS, configure_logging
from .message import new_message
from .sender import Sender
from .transport import HttpRequester


def _data_item_type(value: str) -> tuple[str, str]:
    key, separator, item = value.partition("=")
    if not separator or not key.strip():
        raise argparse.ArgumentTypeError("--data must look like KEY=VALUE")
    return key.strip(), item


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("expected an integer") from exc
    if number < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return number


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in LOG_LEVELS:
        accepted = ", ".join(sorted(LOG_LEVELS))
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gcmsender")
    parser.add_argument("registration_ids", nargs="+", metavar="REGISTRATION_ID")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--api-key", default=None)
    parser.add_argument("--endpoint", default=None)
    parser.add_argument("--data", type=_data_item_type, action="append", default=[])
    parser.add_argument("--collapse-key", default="")
    parser.add_argument("--ttl", type=_non_negative_int, default=None, help="time to live in seconds")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--retries", type=_non_negative_int, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def run_send(namespace: argparse.Namespace, *, requester: HttpRequester | None = None) -> int:
    config = load_config(namespace.config)
    if namespace.api_key is not None:
        config.api_key = namespace.api_key
    if namespace.endpoint is not None:
        try:
            config.endpoint = namespace.endpoint
        except ValueError as exc:
            raise GcmError(
                f"Invalid endpoint: {namespace.endpoint}",
                code=ErrorCode.CONFIG_ERROR,
                hint="Use an http(s) URL.",
            ) from exc
    retries = config.retries if namespace.retries is None else namespace.retries

    message = new_message(dict(namespace.data), *namespace.registration_ids)
    message.collapse_key = namespace.collapse_key
    message.time_to_live = namespace.ttl
    message.dry_run = namespace.dry_run

    sender = Sender.from_config(config, requester=requester)
    response = sender.send(message, retries)
    print(json.dumps(response.to_dict(), indent=2))
    if response.failure:
        return int(ErrorCode.DELIVERY_FAILED)
    return int(ErrorCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    requester: HttpRequester | None = None,
) -> int:
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code in (None, 0):
            return int(ErrorCode.SUCCESS)
        return int(ErrorCode.INVALID_ARGS)

    logger = configure_logging(level=namespace.log_level, log_file=namespace.log_file)
    try:
        return run_send(namespace, requester=requester)
    except GcmError as exc:
        logger.error(
            "Handled GcmError (code=%s status=%s): %s",
            int(exc.code),
            exc.status_code,
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
