import argparse
import asyncio
import logging
import re
import sys

from bugboard.adapters.sink.base import BugBoardError
from bugboard.core.config import BugBoardConfig, create_detector, create_sink
from bugboard.core.models import Bug, BugData

logger = logging.getLogger("bugboard.cli")


def _load_config(args: argparse.Namespace) -> BugBoardConfig:
    overrides = {
        "agent_name": args.agent_name,
        "api_url": args.api_url,
        "timeout_ms": args.timeout_ms,
    }
    if args.config:
        return BugBoardConfig.from_yaml(args.config, **overrides)
    return BugBoardConfig.from_env(**overrides)


def _format_bug(bug: Bug) -> str:
    return f"{bug.id}\t{bug.status.value}\t+{bug.upvotes}\t{bug.agent_name}\t{bug.title}"


def _print_bug_details(bug: Bug) -> None:
    print(f"Bug {bug.id}: {bug.title}")
    print(f"  agent:   {bug.agent_name}")
    print(f"  status:  {bug.status.value}")
    print(f"  upvotes: {bug.upvotes}  bounty: {bug.bounty}")
    if bug.error_message:
        print(f"  error:   {bug.error_message}")
    if bug.fix_url:
        print(f"  fix:     {bug.fix_url}")
        if bug.fix_explanation:
            print(f"           {bug.fix_explanation}")


async def _report(config: BugBoardConfig, args: argparse.Namespace) -> None:
    detector = create_detector(config)
    result = await detector.report_bug(BugData(input=args.input, logs=args.logs, error=args.error))
    print(f"Reported bug {result.id}: {result.url}")


async def _list(config: BugBoardConfig, args: argparse.Namespace) -> None:
    for bug in await create_sink(config).list_bugs():
        print(_format_bug(bug))


async def _show(config: BugBoardConfig, args: argparse.Namespace) -> None:
    _print_bug_details(await create_sink(config).get_bug(args.bug_id))


async def _upvote(config: BugBoardConfig, args: argparse.Namespace) -> None:
    bug = await create_sink(config).upvote_bug(args.bug_id)
    print(f"Bug {bug.id} now has {bug.upvotes} upvotes")


async def _resolve(config: BugBoardConfig, args: argparse.Namespace) -> None:
    bug = await create_sink(config).resolve_bug(args.bug_id, args.fix_url, args.explanation)
    print(f"Bug {bug.id} marked {bug.status.value}")


def _watch(config: BugBoardConfig, args: argparse.Namespace) -> None:
    """Track agent output piped on stdin, one output per line."""
    failure_re = re.compile(args.failure_pattern) if args.failure_pattern else None
    detector = create_detector(config)
    for line in sys.stdin:
        line = line.rstrip("\n")
        if args.echo:
            print(line)
        if failure_re is not None and failure_re.search(line):
            detector.track_build_failure()
        else:
            detector.track_output(line)
    detector.join()


_ASYNC_COMMANDS = {
    "report": _report,
    "list": _list,
    "show": _show,
    "upvote": _upvote,
    "resolve": _resolve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bugboard", description="BugBoard AI agent CLI")
    parser.add_argument("--agent-name", help="Agent name reports are filed under")
    parser.add_argument("--api-url", help="BugBoard API base URL")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--timeout-ms", type=int, help="Inactivity timeout for stuck detection")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    report_parser = subparsers.add_parser("report", help="Report a bug manually")
    report_parser.add_argument("--input", required=True, help="Input the agent was given")
    report_parser.add_argument("--logs", required=True, help="Agent logs")
    report_parser.add_argument("--error", help="Error message")

    subparsers.add_parser("list", help="List bugs on the board")

    show_parser = subparsers.add_parser("show", help="Show one bug")
    show_parser.add_argument("bug_id")

    upvote_parser = subparsers.add_parser("upvote", help="Upvote a bug")
    upvote_parser.add_argument("bug_id")

    resolve_parser = subparsers.add_parser("resolve", help="Submit a fix for a bug")
    resolve_parser.add_argument("bug_id")
    resolve_parser.add_argument("--fix-url", required=True, help="Link to the fix")
    resolve_parser.add_argument("--explanation", help="What the fix does")

    watch_parser = subparsers.add_parser("watch", help="Watch agent output on stdin for stuck loops")
    watch_parser.add_argument(
        "--failure-pattern", help="Regex marking a line as a build failure"
    )
    watch_parser.add_argument("--echo", action="store_true", help="Echo input lines to stdout")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = _load_config(args)
        if args.command == "watch":
            _watch(config, args)
        else:
            asyncio.run(_ASYNC_COMMANDS[args.command](config, args))
    except (BugBoardError, ValueError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
