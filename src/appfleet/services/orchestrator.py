"""パターンに一致するアプリケーションへライフサイクル操作を一括実行するサービス。"""

import asyncio
import logging
from collections.abc import Callable

from appfleet.models.errors import CommandError
from appfleet.models.fleet import ApplicationRecord, BatchSummary, OperationKind, OperationOutcome
from appfleet.services.executor import LifecycleExecutor
from appfleet.services.matcher import compile_matcher

logger = logging.getLogger(__name__)

RecordPredicate = Callable[[ApplicationRecord], bool]

_VERB_LABELS: dict[OperationKind, str] = {"start": "Starting", "stop": "Stopping"}


class BatchOrchestrator:
    """インベントリ取得・絞り込み・並行ディスパッチ・集計を行う。

    実行ごとにインベントリを取得し直し、状態は保持しない。
    個別コマンドの失敗は結果として集計され、例外にはならない。
    """

    def __init__(self, executor: LifecycleExecutor) -> None:
        self._executor = executor

    async def list_applications(self) -> list[ApplicationRecord]:
        """インベントリをそのまま取得する。"""
        return await self._executor.list_applications()

    async def _dispatch(self, operation: OperationKind, record: ApplicationRecord) -> OperationOutcome:
        """1件のライフサイクルコマンドを実行し、結果をOperationOutcomeに変換する。"""
        app_id = record.target_id or ""
        name = record.display_name
        logger.info("%s app: %s (%s)", _VERB_LABELS[operation], name, app_id)
        try:
            await self._executor.perform_lifecycle_op(operation, app_id)
        except CommandError as e:
            detail = str(e)
        except Exception as e:
            detail = f"{type(e).__name__}: {e}"
        else:
            return OperationOutcome(id=app_id, name=name, operation=operation, status="success")

        logger.error("Failed to %s %s: %s", operation, name, detail)
        return OperationOutcome(
            id=app_id,
            name=name,
            operation=operation,
            status="failure",
            failure_detail=detail,
        )

    async def run(
        self,
        operation: OperationKind,
        pattern: str | None = None,
        *,
        predicate: RecordPredicate | None = None,
    ) -> BatchSummary:
        """パターンに一致する全アプリケーションへ操作を並行実行する。

        Args:
            operation: "start" または "stop"。
            pattern: ワイルドカードまたは正規表現。Noneは全件一致。
            predicate: 追加の絞り込み条件（ラベル等）。

        Returns:
            実行結果の集計。

        Raises:
            CompilationError: パターンが不正な場合（リモート呼び出し前）。
            FetchError: インベントリ取得に失敗した場合。
        """
        matcher = compile_matcher(pattern)
        inventory = await self._executor.list_applications()

        candidates = [
            record
            for record in inventory
            if record.is_usable and matcher(record) and (predicate is None or predicate(record))
        ]
        logger.info(
            "Matched %d of %d applications for %s (pattern: %s)",
            len(candidates),
            len(inventory),
            operation,
            pattern or "*",
        )

        # 各タスクは自身の結果を返す。共有状態は更新しない。
        tasks = [asyncio.create_task(self._dispatch(operation, record)) for record in candidates]
        outcomes = await asyncio.gather(*tasks)

        summary = BatchSummary(
            operation=operation,
            pattern=pattern,
            total_in_inventory=len(inventory),
            matched_count=len(candidates),
            successes=[o for o in outcomes if o.succeeded],
            failures=[o for o in outcomes if not o.succeeded],
        )
        logger.info(
            "%s finished: %d succeeded, %d failed",
            operation,
            summary.success_count,
            summary.failure_count,
        )
        return summary

    async def start_matching(self, pattern: str | None = None) -> BatchSummary:
        """パターンに一致するアプリケーションを起動する。"""
        return await self.run("start", pattern)

    async def stop_matching(self, pattern: str | None = None) -> BatchSummary:
        """パターンに一致するアプリケーションを停止する。"""
        return await self.run("stop", pattern)
