"""FastMCPベースのMCPサーバーエントリポイント。"""

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from appfleet.config import FleetConfig
from appfleet.services.executor import AnypointCliExecutor, LifecycleExecutor
from appfleet.services.orchestrator import BatchOrchestrator
from appfleet.tools.fleet import register_fleet_tools


def create_server(
    config: FleetConfig | None = None,
    executor: LifecycleExecutor | None = None,
) -> FastMCP:
    """appfleet MCPサーバーを作成し、ツールを登録する。

    Args:
        config: CLI実行設定。Noneの場合は環境変数から読み込む。
        executor: 実行層。Noneの場合はAnypointCliExecutorを使用。

    Returns:
        設定済みのFastMCPインスタンス。
    """
    if executor is None:
        executor = AnypointCliExecutor(config if config is not None else FleetConfig())

    mcp = FastMCP("appfleet")

    orchestrator = BatchOrchestrator(executor)
    register_fleet_tools(mcp, orchestrator)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return mcp
