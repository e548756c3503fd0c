"""フリート操作のMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from appfleet.models.errors import FleetError
from appfleet.services.orchestrator import BatchOrchestrator


def register_fleet_tools(mcp: FastMCP, orchestrator: BatchOrchestrator) -> None:
    """フリート操作関連のMCPツールを登録する。"""

    @mcp.tool()
    async def list_apps() -> dict[str, Any]:
        """Runtime Managerに登録されたアプリケーション一覧を取得する。"""
        try:
            records = await orchestrator.list_applications()
            return {"applications": [r.raw for r in records]}
        except FleetError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def start_apps(pattern: str | None = None) -> dict[str, Any]:
        """パターンに一致するアプリケーションを並行して起動する。

        パターンに ^ $ | + ? ( ) [ ] \\ のいずれかを含む場合は正規表現、
        それ以外は * と ? をワイルドカードとする名前全体の一致として扱います。
        個別アプリの失敗は failures に記録され、エラーにはなりません。

        Args:
            pattern: アプリ名パターン。省略時は全アプリが対象。
        """
        try:
            summary = await orchestrator.start_matching(pattern)
            return summary.model_dump(mode="json")
        except FleetError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def stop_apps(pattern: str | None = None) -> dict[str, Any]:
        """パターンに一致するアプリケーションを並行して停止する。

        Args:
            pattern: アプリ名パターン。省略時は全アプリが対象。
        """
        try:
            summary = await orchestrator.stop_matching(pattern)
            return summary.model_dump(mode="json")
        except FleetError as e:
            return {"error": type(e).__name__, "message": str(e)}
