from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from typing import Any

from mcp_asterisk_status.core.console import ConsoleCommandGateway
from mcp_asterisk_status.core.errors import CommandRejected
from mcp_asterisk_status.core.models import LogEvent
from mcp_asterisk_status.core.runner import CommandRunner
from mcp_asterisk_status.core.settings import AsteriskSettings, resolve_settings
from mcp_asterisk_status.core.status_service import AsteriskStatusService
from mcp_asterisk_status.core.validation import PjsipValidation
from mcp_asterisk_status.server.pbx_server import configure_logging


def _verbosity(s: str) -> int:
    try:
        value = int(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError("verbosity must be an integer 1-10") from e
    if not 1 <= value <= 10:
        raise argparse.ArgumentTypeError("verbosity must be an integer 1-10")
    return value


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _format_event(e: LogEvent) -> str:
    ts = e.timestamp.isoformat(sep=" ") if e.timestamp else "-"
    return f"{ts} [{e.level.value}] {e.source}: {e.message}" if e.source else e.raw


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="asterisk-status",
        description="Asterisk PBX status over AMI and the CLI.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    ep = sub.add_parser("endpoint", help="Status of one PJSIP endpoint")
    ep.add_argument("name")
    ep.add_argument("--no-cli", action="store_true", help="Skip the CLI fallback")

    sub.add_parser("endpoints", help="All PJSIP endpoints known to AMI")

    tr = sub.add_parser("trunk", help="Trunk status with reachability and latency")
    tr.add_argument("name")

    ch = sub.add_parser("channel", help="Codec and RTP stats of a live channel")
    ch.add_argument("name")

    vt = sub.add_parser("validate-trunk", help="Check trunk endpoint, qualify and AOR")
    vt.add_argument("name")

    ve = sub.add_parser("validate-extension", help="Check an extension's registration")
    ve.add_argument("name")

    rt = sub.add_parser("route", help="Find the dialplan route for a number")
    rt.add_argument("from_extension")
    rt.add_argument("to")
    rt.add_argument("--context", default=None, help="Dialplan context (default: from settings)")

    ex = sub.add_parser("exec", help="Run an Asterisk CLI command (denylist enforced)")
    ex.add_argument("cli_command", nargs="+")

    er = sub.add_parser("errors", help="Recent errors and warnings from the log")
    er.add_argument("--lines", type=int, default=100)

    tl = sub.add_parser("tail", help="Follow the Asterisk log until interrupted")
    tl.add_argument("--verbosity", type=_verbosity, default=5)

    return p


async def _run(args: argparse.Namespace, settings: AsteriskSettings) -> int:
    if args.command in ("endpoint", "endpoints", "trunk", "channel"):
        service = AsteriskStatusService.from_settings(
            settings, cli_fallback=args.command == "endpoint" and not args.no_cli
        )
        if args.command == "endpoint":
            _dump((await service.get_endpoint_details(args.name)).model_dump(mode="json"))
        elif args.command == "endpoints":
            endpoints = await service.get_all_registered_endpoints()
            _dump([e.model_dump(mode="json") for e in endpoints])
        elif args.command == "trunk":
            _dump((await service.get_trunk_status(args.name)).model_dump(mode="json"))
        else:
            codec = await service.get_channel_codec_info(args.name)
            rtp = await service.get_rtp_stats(args.name)
            _dump({"codec": codec.model_dump(mode="json"), "rtp": rtp.model_dump(mode="json")})
        return 0

    if args.command in ("validate-trunk", "validate-extension", "route"):
        validation = PjsipValidation(CommandRunner.from_settings(settings))
        if args.command == "validate-trunk":
            result = await validation.validate_trunk_connection(args.name)
        elif args.command == "validate-extension":
            result = await validation.validate_extension_registration(args.name)
        else:
            result = await validation.test_call_routing(
                args.from_extension, args.to, args.context or settings.dialplan_context
            )
        _dump(result.model_dump(mode="json", by_alias=True))
        return 0 if not result.errors else 1

    gateway = ConsoleCommandGateway.from_settings(settings)
    if args.command == "exec":
        result = await gateway.execute_command(" ".join(args.cli_command))
        if result.output:
            print(result.output)
        if not result.success:
            print(result.error, file=sys.stderr)
            return 1
        return 0

    if args.command == "errors":
        for e in await gateway.get_recent_errors(args.lines):
            print(_format_event(e))
        return 0

    # Never set: the tail runs until Ctrl+C cancels it.
    stop = asyncio.Event()
    await gateway.stream_live_output(
        lambda e: print(_format_event(e), flush=True), stop, args.verbosity
    )
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        settings = resolve_settings()
        code = asyncio.run(_run(args, settings))
    except CommandRejected as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
