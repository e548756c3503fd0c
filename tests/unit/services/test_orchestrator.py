"""BatchOrchestratorのユニットテスト。"""

import asyncio
from collections.abc import Callable

import pytest

from appfleet.models.errors import CompilationError, FetchError
from appfleet.models.fleet import ApplicationRecord, OperationKind
from appfleet.services.orchestrator import BatchOrchestrator


class TestRun:
    async def test_demo_scenario(self, make_executor: Callable, demo_inventory: list[ApplicationRecord]) -> None:
        executor = make_executor(demo_inventory, failing_ids=["2"])

        summary = await BatchOrchestrator(executor).run("start", "demo-*")

        assert summary.total_in_inventory == 3
        assert summary.matched_count == 2
        assert [o.id for o in summary.successes] == ["1"]
        assert [o.id for o in summary.failures] == ["2"]
        assert summary.failures[0].name == "demo-b"
        assert "rejected" in (summary.failures[0].failure_detail or "")
        assert ("start", "3") not in executor.calls

    async def test_partial_failure(self, make_executor: Callable, five_app_inventory: list[ApplicationRecord]) -> None:
        executor = make_executor(five_app_inventory, failing_ids=["b", "d"])

        summary = await BatchOrchestrator(executor).run("stop")

        assert summary.matched_count == 5
        assert len(summary.successes) == 3
        assert len(summary.failures) == 2
        assert {o.id for o in summary.failures} == {"b", "d"}
        assert all(o.status == "failure" for o in summary.failures)
        assert all(o.operation == "stop" for o in summary.successes)

    async def test_outcome_lists_follow_dispatch_order(self, make_executor: Callable) -> None:
        inventory = [ApplicationRecord(id=str(i), name=f"app-{i}") for i in range(10)]
        executor = make_executor(inventory, failing_ids=["7", "2", "5"])

        summary = await BatchOrchestrator(executor).run("start")

        assert [o.id for o in summary.successes] == ["0", "1", "3", "4", "6", "8", "9"]
        assert [o.id for o in summary.failures] == ["2", "5", "7"]
        assert [app_id for _, app_id in executor.calls] == [str(i) for i in range(10)]

    async def test_null_pattern_skips_unusable_records(self, make_executor: Callable) -> None:
        inventory = [
            ApplicationRecord(id="1", name="a"),
            ApplicationRecord.from_raw({"status": "RUNNING"}),
            ApplicationRecord(name="only-name"),
        ]
        executor = make_executor(inventory)

        summary = await BatchOrchestrator(executor).run("start", None)

        assert summary.total_in_inventory == 3
        assert summary.matched_count == 2
        assert [o.id for o in summary.successes] == ["1", "only-name"]
        assert summary.failures == []

    async def test_zero_matches_is_not_an_error(
        self, make_executor: Callable, demo_inventory: list[ApplicationRecord]
    ) -> None:
        executor = make_executor(demo_inventory)

        summary = await BatchOrchestrator(executor).run("stop", "nothing-*")

        assert summary.matched_count == 0
        assert summary.total_in_inventory == 3
        assert executor.calls == []

    async def test_duplicate_ids_are_dispatched_independently(self, make_executor: Callable) -> None:
        inventory = [ApplicationRecord(id="x", name="dup-1"), ApplicationRecord(id="x", name="dup-2")]
        executor = make_executor(inventory)

        summary = await BatchOrchestrator(executor).run("start", "dup-*")

        assert summary.matched_count == 2
        assert executor.calls == [("start", "x"), ("start", "x")]

    async def test_predicate_narrows_candidates(self, make_executor: Callable) -> None:
        inventory = [
            ApplicationRecord(id="1", name="demo-a", labels=frozenset({"team-a"})),
            ApplicationRecord(id="2", name="demo-b", labels=frozenset({"team-b"})),
        ]
        executor = make_executor(inventory)

        summary = await BatchOrchestrator(executor).run(
            "stop", "demo-*", predicate=lambda r: "team-b" in r.labels
        )

        assert summary.matched_count == 1
        assert executor.calls == [("stop", "2")]

    async def test_same_inputs_dispatch_same_candidates(
        self, make_executor: Callable, demo_inventory: list[ApplicationRecord]
    ) -> None:
        executor = make_executor(demo_inventory)
        orchestrator = BatchOrchestrator(executor)

        first = await orchestrator.run("start", "demo-*")
        second = await orchestrator.run("start", "demo-*")

        assert {o.id for o in first.successes} == {o.id for o in second.successes} == {"1", "2"}
        assert executor.list_calls == 2

    async def test_unexpected_exception_becomes_failure(self, demo_inventory: list[ApplicationRecord]) -> None:
        class BrokenExecutor:
            async def list_applications(self) -> list[ApplicationRecord]:
                return demo_inventory

            async def perform_lifecycle_op(self, kind: OperationKind, app_id: str) -> str:
                if app_id == "1":
                    raise RuntimeError("pipe closed")
                return ""

        summary = await BatchOrchestrator(BrokenExecutor()).run("start", "demo-*")

        assert [o.id for o in summary.failures] == ["1"]
        assert summary.failures[0].failure_detail == "RuntimeError: pipe closed"
        assert [o.id for o in summary.successes] == ["2"]

    async def test_commands_run_concurrently(self, demo_inventory: list[ApplicationRecord]) -> None:
        started = 0
        all_started = asyncio.Event()

        class BarrierExecutor:
            async def list_applications(self) -> list[ApplicationRecord]:
                return demo_inventory

            async def perform_lifecycle_op(self, kind: OperationKind, app_id: str) -> str:
                nonlocal started
                started += 1
                if started == len(demo_inventory):
                    all_started.set()
                # 逐次実行ならここで永久に待つ
                await all_started.wait()
                return ""

        summary = await asyncio.wait_for(BatchOrchestrator(BarrierExecutor()).run("start"), timeout=5)

        assert len(summary.successes) == 3

    async def test_failure_does_not_cancel_others(self, demo_inventory: list[ApplicationRecord]) -> None:
        finished: list[str] = []

        class SlowExecutor:
            async def list_applications(self) -> list[ApplicationRecord]:
                return demo_inventory

            async def perform_lifecycle_op(self, kind: OperationKind, app_id: str) -> str:
                if app_id == "1":
                    raise RuntimeError("fast failure")
                await asyncio.sleep(0.01)
                finished.append(app_id)
                return ""

        summary = await BatchOrchestrator(SlowExecutor()).run("stop")

        assert sorted(finished) == ["2", "3"]
        assert len(summary.failures) == 1


class TestRunAborts:
    async def test_fetch_failure_propagates(self, make_executor: Callable) -> None:
        executor = make_executor([], fetch_error=FetchError("unauthorized", exit_code=1))

        with pytest.raises(FetchError):
            await BatchOrchestrator(executor).run("start", "demo-*")

        assert executor.calls == []

    async def test_invalid_pattern_aborts_before_remote_calls(
        self, make_executor: Callable, demo_inventory: list[ApplicationRecord]
    ) -> None:
        executor = make_executor(demo_inventory)

        with pytest.raises(CompilationError):
            await BatchOrchestrator(executor).run("start", "(unclosed")

        assert executor.list_calls == 0
        assert executor.calls == []


class TestConvenienceMethods:
    async def test_start_matching(self, make_executor: Callable, demo_inventory: list[ApplicationRecord]) -> None:
        executor = make_executor(demo_inventory)
        summary = await BatchOrchestrator(executor).start_matching("prod-*")
        assert summary.operation == "start"
        assert executor.calls == [("start", "3")]

    async def test_stop_matching(self, make_executor: Callable, demo_inventory: list[ApplicationRecord]) -> None:
        executor = make_executor(demo_inventory)
        summary = await BatchOrchestrator(executor).stop_matching()
        assert summary.operation == "stop"
        assert summary.matched_count == 3

    async def test_list_applications(self, make_executor: Callable, demo_inventory: list[ApplicationRecord]) -> None:
        executor = make_executor(demo_inventory)
        records = await BatchOrchestrator(executor).list_applications()
        assert [r.id for r in records] == ["1", "2", "3"]
