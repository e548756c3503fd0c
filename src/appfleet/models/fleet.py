"""アプリケーションフリート操作関連のデータモデル。"""

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field, field_validator

OperationKind = Literal["start", "stop"]
OutcomeStatus = Literal["success", "failure"]


class ApplicationRecord(BaseModel):
    """インベントリ取得時点のアプリケーション1件分のスナップショット。

    CLIが返すフィールドはそのまま保持する（list-appsの出力に使う）。
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str | None = None
    name: str | None = None
    application_name: str | None = Field(default=None, alias="applicationName")
    labels: frozenset[str] = frozenset()

    # 一覧JSONから受け取った元のオブジェクト
    _raw: dict[str, Any] | None = PrivateAttr(default=None)

    @field_validator("id", "name", "application_name", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> str | None:
        # 数値IDや空文字列を正規化する
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("labels", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> frozenset[str]:
        if value is None:
            return frozenset()
        if isinstance(value, Mapping):
            return frozenset(str(k) for k in value)
        if isinstance(value, str):
            return frozenset({value})
        if not isinstance(value, Iterable):
            raise ValueError(f"labels must be a list of strings, got {type(value).__name__}")
        return frozenset(str(v) for v in value)

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> "ApplicationRecord":
        """一覧JSONのオブジェクト1件からレコードを生成する。

        Raises:
            pydantic.ValidationError: フィールドの型が解釈できない場合。
        """
        raw = dict(data)
        record = cls.model_validate(raw)
        record._raw = raw
        return record

    @property
    def raw(self) -> dict[str, Any]:
        """CLIが返したままのオブジェクト。直接生成したレコードではフィールドのダンプを返す。"""
        if self._raw is not None:
            return dict(self._raw)
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def display_name(self) -> str:
        """パターン照合に使う表示名（name → id → applicationName → 空文字）。"""
        return self.name or self.id or self.application_name or ""

    @property
    def target_id(self) -> str | None:
        """ライフサイクルコマンドに渡す識別子。CLIはIDと名前のどちらも受け付ける。"""
        return self.id or self.name or self.application_name

    @property
    def is_usable(self) -> bool:
        return self.target_id is not None


class OperationOutcome(BaseModel):
    """1件のライフサイクルコマンドの結果。"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    operation: OperationKind
    status: OutcomeStatus
    failure_detail: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class BatchSummary(BaseModel):
    """1回のバッチ実行の集計結果。"""

    model_config = ConfigDict(frozen=True)

    operation: OperationKind
    pattern: str | None = None
    total_in_inventory: int
    matched_count: int
    successes: list[OperationOutcome] = Field(default_factory=list)
    failures: list[OperationOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_count(self) -> int:
        return len(self.successes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failure_count(self) -> int:
        return len(self.failures)


class CLIResult(BaseModel):
    """Anypoint CLI実行結果。"""

    success: bool
    stdout: str
    stderr: str
    exit_code: int
