"""
Command-line runner for the practice backend.

Usage:
    interviewai run solution.py --language 71
    interviewai run main.cpp --language 54 --stdin-file input.txt
    interviewai languages
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from client import BackendClient
from errors import AppError, SubmissionTimeoutError
from poller import CLI_POLICY, PollPolicy, SubmissionPoller

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_TIMED_OUT = 2


async def _run(args: argparse.Namespace) -> int:
    try:
        source = Path(args.file).read_text(encoding="utf-8")
        stdin = args.stdin or ""
        if args.stdin_file:
            stdin = Path(args.stdin_file).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    policy = PollPolicy(interval=args.interval, max_attempts=args.attempts)
    poller = SubmissionPoller(BackendClient(args.backend), policy)
    outcome = await poller.run(source, args.language, stdin)

    try:
        outcome.raise_for_state()
    except SubmissionTimeoutError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_TIMED_OUT
    except AppError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    print(outcome.output, end="" if outcome.output.endswith("\n") else "\n")
    status = outcome.result.status
    if status is not None and status.description:
        print(f"[{status.description}]", file=sys.stderr)
    return EXIT_OK


async def _languages(args: argparse.Namespace) -> int:
    client = BackendClient(args.backend)
    try:
        languages = await client.list_languages()
    except (AppError, httpx.HTTPError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    for lang in languages:
        print(f"{lang['id']:>4}  {lang['name']}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="interviewai", description="Run code through the practice backend")
    parser.add_argument("--backend", default="http://localhost:3001", help="Backend base URL")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Submit a file and wait for its output")
    run.add_argument("file")
    run.add_argument("--language", "-l", type=int, required=True, help="Judge0 language id (71 = Python 3)")
    stdin_group = run.add_mutually_exclusive_group()
    stdin_group.add_argument("--stdin", help="Standard input text")
    stdin_group.add_argument("--stdin-file", help="Read standard input from a file")
    run.add_argument("--interval", type=float, default=CLI_POLICY.interval, help="Seconds between polls")
    run.add_argument("--attempts", type=int, default=CLI_POLICY.max_attempts, help="Maximum polls")
    run.set_defaults(handler=_run)

    langs = sub.add_parser("languages", help="List available languages")
    langs.set_defaults(handler=_languages)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    sys.exit(main())
