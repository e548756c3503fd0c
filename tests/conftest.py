"""テスト共通フィクスチャ。"""

import asyncio
from collections.abc import Callable, Iterable

import pytest

from appfleet.config import FleetConfig
from appfleet.models.errors import CommandError
from appfleet.models.fleet import ApplicationRecord, OperationKind


class FakeExecutor:
    """サブプロセスを起動しないLifecycleExecutor実装。"""

    def __init__(
        self,
        inventory: Iterable[ApplicationRecord],
        failing_ids: Iterable[str] = (),
        fetch_error: Exception | None = None,
    ) -> None:
        self.inventory = list(inventory)
        self.failing_ids = set(failing_ids)
        self.fetch_error = fetch_error
        self.list_calls = 0
        self.calls: list[tuple[OperationKind, str]] = []

    async def list_applications(self) -> list[ApplicationRecord]:
        self.list_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.inventory)

    async def perform_lifecycle_op(self, kind: OperationKind, app_id: str) -> str:
        self.calls.append((kind, app_id))
        await asyncio.sleep(0)
        if app_id in self.failing_ids:
            raise CommandError(f"{kind} rejected for {app_id}", app_id, stderr="rejected", exit_code=1)
        return f"{kind}ed {app_id}"


def make_records(*pairs: tuple[str, str]) -> list[ApplicationRecord]:
    """(id, name) の組からレコードを作る。"""
    return [ApplicationRecord(id=app_id, name=name) for app_id, name in pairs]


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    """FakeExecutorのファクトリ。"""
    return FakeExecutor


@pytest.fixture
def demo_inventory() -> list[ApplicationRecord]:
    """demo-a / demo-b / prod-a の3件からなるインベントリ。"""
    return make_records(("1", "demo-a"), ("2", "demo-b"), ("3", "prod-a"))


@pytest.fixture
def five_app_inventory() -> list[ApplicationRecord]:
    """a〜e の5件からなるインベントリ。"""
    return make_records(("a", "app-a"), ("b", "app-b"), ("c", "app-c"), ("d", "app-d"), ("e", "app-e"))


@pytest.fixture
def fleet_config(monkeypatch: pytest.MonkeyPatch) -> FleetConfig:
    """テスト用FleetConfig。環境変数の影響を受けない。"""
    for name in ("ANYPOINT_BEARER_TOKEN", "ANYPOINT_BEARER", "ANYPOINT_ORG_ID", "ANYPOINT_ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    return FleetConfig(
        _env_file=None,
        cli_cmd="anypoint-cli-v4",
        bearer_token="test-token",
        org_id="org-1",
        environment="Sandbox",
    )
