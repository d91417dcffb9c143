"""Query a server from the command line: ``python -m slpclient host[:port]``"""
import argparse
import asyncio
import logging
import sys

from .connector import ConnectionConfig
from .errors import ServerError
from .logger import Logger
from .status import ForgeModInfo, StatusResponse, UnknownModInfo
from .text import Text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slpclient", description="Ask a Minecraft server for its status."
    )
    parser.add_argument("address", help="host or host:port")
    parser.add_argument("--port", type=int, default=None, help="overrides the port in the address")
    parser.add_argument("--protocol", type=int, default=None, help="protocol version to announce")
    parser.add_argument(
        "--timeout", type=float, default=5.0, help="seconds before giving up (default 5)"
    )
    parser.add_argument("--raw", action="store_true", help="print the JSON as the server sent it")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--sentry-dsn", default=None)
    return parser


def make_config(args: argparse.Namespace) -> ConnectionConfig:
    config = ConnectionConfig.parse(args.address, timeout=args.timeout)
    if args.port is not None:
        config = config.with_port(args.port)
    if args.protocol is not None:
        config = config.with_protocol_version(args.protocol)
    return config


def summarize(status: StatusResponse) -> str:
    lines = [
        f"Version: {Text.c_filter(status.version.name)} (protocol {status.version.protocol})",
        f"Players: {status.players.online}/{status.players.max}",
    ]
    if status.players.sample:
        lines.append(
            "  " + ", ".join(Text.c_filter(p.name) for p in status.players.sample)
        )

    lines.append("MOTD:")
    lines.append(Text.color_ansi(status.description.get_legacy()))

    if isinstance(status.modinfo, ForgeModInfo):
        lines.append(f"Mods ({len(status.modinfo.mod_list)}):")
        lines.extend(f"  {m.modid} {m.version}" for m in status.modinfo.mod_list)
    elif isinstance(status.modinfo, UnknownModInfo):
        lines.append(f"Mods: unknown loader {status.modinfo.type!r}")
    if status.forge_data is not None:
        lines.append(f"Forge mods ({len(status.forge_data.mods)}):")
        lines.extend(f"  {m.mod_id} {m.mod_marker}" for m in status.forge_data.mods)

    return "\n".join(lines)


async def query(config: ConnectionConfig, raw: bool) -> str:
    async with await config.connect() as conn:
        if raw:
            return await conn.status_raw()
        return summarize(await conn.status())


async def run(args: argparse.Namespace, logger: Logger) -> int:
    config = make_config(args)
    logger.debug(f"Querying {config.host}:{config.port} with protocol {config.protocol_version}")

    try:
        out = await asyncio.wait_for(
            logger.async_timer(query, config, args.raw), timeout=args.timeout
        )
    except asyncio.TimeoutError:
        logger.error(f"Timed out after {args.timeout} seconds")
        return 1
    except ServerError as err:
        logger.error(f"{type(err).__name__}: {err}", exception=err)
        return 1

    logger.print(out)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = Logger(
        debug=args.debug,
        level=logging.INFO,
        log_file=args.log_file,
        sentry_dsn=args.sentry_dsn,
    )

    try:
        return asyncio.run(run(args, logger))
    except ValueError as err:
        # bad port in the address, or a value the handshake can't carry
        logger.error(str(err))
        return 2


if __name__ == "__main__":
    sys.exit(main())
