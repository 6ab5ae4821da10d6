"""appstore-notary command line interface."""

from __future__ import annotations

import argparse
import json
import logging
import os

import httpx

from appstore_notary.client import NotaryClient, resolve_token_duration
from appstore_notary.connect_token import ConnectTokenEncoder
from appstore_notary.errors import (
    AppStoreConnectError,
    SubmissionFailedError,
    SubmissionIncompleteError,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_IN_PROGRESS = 2


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--key-id", default=None, help="App Store Connect API key id")
    parser.add_argument("--issuer-id", default=None, help="App Store Connect API issuer id")
    parser.add_argument("--key-path", default=None, help="Path to AuthKey_<id>.p8")
    parser.add_argument("--api-url", default=None, help="Notary API base URL")
    parser.add_argument("--json", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appstore-notary",
        description="App Store Connect tokens and Notary API submissions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    token_parser = subparsers.add_parser("token", help="Mint an App Store Connect API token")
    token_parser.add_argument("--duration", type=int, default=None)
    _add_common_arguments(token_parser)

    status_parser = subparsers.add_parser("status", help="Show the status of a submission")
    status_parser.add_argument("submission_id")
    _add_common_arguments(status_parser)

    log_parser = subparsers.add_parser("log", help="Print the developer log of a submission")
    log_parser.add_argument("submission_id")
    _add_common_arguments(log_parser)

    return parser


def _encoder_from_args(args: argparse.Namespace) -> ConnectTokenEncoder:
    key_id = args.key_id or os.environ.get("APP_STORE_CONNECT_API_KEY_ID")
    issuer_id = args.issuer_id or os.environ.get("APP_STORE_CONNECT_API_ISSUER_ID")
    if not key_id or not issuer_id:
        raise ValueError(
            "API key id and issuer id are required (--key-id/--issuer-id or "
            "APP_STORE_CONNECT_API_KEY_ID/APP_STORE_CONNECT_API_ISSUER_ID)",
        )
    if args.key_path:
        return ConnectTokenEncoder.from_ecdsa_pem_path(key_id, issuer_id, args.key_path)
    return ConnectTokenEncoder.from_api_key_id(key_id, issuer_id)


def _run(args: argparse.Namespace) -> int:
    encoder = _encoder_from_args(args)

    if args.command == "token":
        token = encoder.new_token(resolve_token_duration(args.duration))
        if args.json:
            print(json.dumps({"command": "token", "key_id": encoder.key_id, "token": token}, sort_keys=True))
        else:
            print(token)
        return EXIT_OK

    with NotaryClient(encoder, base_url=args.api_url) as client:
        if args.command == "log":
            print(json.dumps(client.get_submission_log(args.submission_id), indent=2, sort_keys=True))
            return EXIT_OK

        submission = client.get_submission(args.submission_id)
        status = submission.status
        if args.json:
            print(
                json.dumps(
                    {
                        "command": "status",
                        "id": submission.data.id,
                        "name": submission.data.attributes.name,
                        "status": submission.data.attributes.raw_status,
                        "terminal": status.is_terminal,
                    },
                    sort_keys=True,
                )
            )
        else:
            print(f"id: {submission.data.id}")
            print(f"name: {submission.data.attributes.name}")
            print(f"status: {submission.data.attributes.raw_status}")

        try:
            client.submission_result(submission)
        except SubmissionIncompleteError:
            return EXIT_IN_PROGRESS
        except SubmissionFailedError as error:
            if not args.json:
                print(f"error: {error}")
            return EXIT_FAILED
        return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        return _run(args)
    except (AppStoreConnectError, httpx.HTTPError, ValueError) as error:
        parser.exit(EXIT_FAILED, f"appstore-notary: error: {error}\n")


if __name__ == "__main__":
    raise SystemExit(main())
