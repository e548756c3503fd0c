"""list-apps / start-apps / stop-apps コマンドラインインターフェース。

Usage:
    list-apps
    start-apps --app "demo-*"
    stop-apps --app ".*-sandbox$"
    appfleet stop --app "eapi-dev" --verbose
    appfleet serve

標準出力にはJSON（インベントリまたはBatchSummary）のみを出力し、
ログは標準エラーに出力する。
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

import uvicorn
from starlette.middleware import Middleware

from appfleet.config import FleetConfig, ServerConfig
from appfleet.middleware import TokenAuthMiddleware
from appfleet.models.errors import FleetError
from appfleet.models.fleet import OperationKind
from appfleet.server import create_server
from appfleet.services.executor import AnypointCliExecutor, LifecycleExecutor
from appfleet.services.matcher import is_regex_like
from appfleet.services.orchestrator import BatchOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ABORTED = 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser, with_pattern: bool) -> None:
    if with_pattern:
        parser.add_argument(
            "--app",
            dest="pattern",
            default=None,
            help="Application name pattern: glob (* and ?) or regular expression. Omit to target all apps.",
        )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def create_parser() -> argparse.ArgumentParser:
    """appfleet コマンドの引数パーサーを作成する。"""
    parser = argparse.ArgumentParser(
        prog="appfleet",
        description="Bulk lifecycle operations for Runtime Manager applications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list                          # Print the raw application inventory
  %(prog)s start --app "demo-*"          # Start every app whose name starts with demo-
  %(prog)s stop --app ".*-sandbox$"      # Regular expressions are used as-is
  %(prog)s serve                         # Serve the same operations as MCP tools over HTTP
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_common_arguments(subparsers.add_parser("list", help="List applications"), with_pattern=False)
    _add_common_arguments(subparsers.add_parser("start", help="Start matching applications"), with_pattern=True)
    _add_common_arguments(subparsers.add_parser("stop", help="Stop matching applications"), with_pattern=True)
    _add_common_arguments(subparsers.add_parser("serve", help="Serve MCP tools over HTTP"), with_pattern=False)
    return parser


async def _list(executor: LifecycleExecutor) -> None:
    records = await BatchOrchestrator(executor).list_applications()
    payload = [r.raw for r in records]
    print(json.dumps(payload, indent=2, ensure_ascii=False))


async def _run_batch(executor: LifecycleExecutor, operation: OperationKind, pattern: str | None) -> None:
    if pattern:
        kind = "regular expression" if is_regex_like(pattern) else "glob"
        logger.info("Applying %s to apps matching %s pattern: %s", operation, kind, pattern)
    else:
        logger.info("Applying %s to ALL apps (no pattern passed)", operation)

    summary = await BatchOrchestrator(executor).run(operation, pattern)
    print(summary.model_dump_json(indent=2))


def run_command(
    command: str,
    pattern: str | None = None,
    executor: LifecycleExecutor | None = None,
) -> int:
    """コマンドを実行して終了コードを返す。

    実行自体が中断した場合（取得失敗・パターン不正・認証情報なし）のみ1を返す。
    個別アプリの失敗はサマリーに含まれ、終了コードは0のまま。
    """
    try:
        if executor is None:
            executor = AnypointCliExecutor(FleetConfig())
        if command == "list":
            asyncio.run(_list(executor))
        else:
            operation: OperationKind = "start" if command == "start" else "stop"
            asyncio.run(_run_batch(executor, operation, pattern))
    except FleetError as e:
        logger.error("%s aborted: %s", command, e)
        return EXIT_ABORTED
    return EXIT_OK


def serve(server_config: ServerConfig | None = None) -> int:
    """MCPツールをstreamable HTTPで公開する。"""
    if server_config is None:
        server_config = ServerConfig()
    mcp = create_server(FleetConfig())
    app = mcp.http_app(
        transport="streamable-http",
        middleware=[Middleware(TokenAuthMiddleware, url_token=server_config.url_token)],
    )
    logger.info("Serving MCP tools on %s:%d", server_config.host, server_config.port)
    uvicorn.run(app, host=server_config.host, port=server_config.port)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """appfleet {list,start,stop,serve} のエントリポイント。"""
    args = create_parser().parse_args(argv)
    _configure_logging(args.verbose)
    if args.command == "serve":
        return serve()
    return run_command(args.command, getattr(args, "pattern", None))


def _single_command_main(command: str, argv: Sequence[str] | None) -> int:
    parser = argparse.ArgumentParser(prog=f"{command}-apps")
    _add_common_arguments(parser, with_pattern=command != "list")
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return run_command(command, getattr(args, "pattern", None))


def list_apps_main(argv: Sequence[str] | None = None) -> int:
    return _single_command_main("list", argv)


def start_apps_main(argv: Sequence[str] | None = None) -> int:
    return _single_command_main("start", argv)


def stop_apps_main(argv: Sequence[str] | None = None) -> int:
    return _single_command_main("stop", argv)


if __name__ == "__main__":
    sys.exit(main())
