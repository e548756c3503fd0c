"""Anypoint CLIをサブプロセスとして実行するライフサイクル実行層。"""

import asyncio
import json
import logging
import shlex
from typing import Any, Protocol

from pydantic import ValidationError

from appfleet.config import FleetConfig
from appfleet.models.errors import CommandError, CredentialsNotConfiguredError, FetchError
from appfleet.models.fleet import ApplicationRecord, CLIResult, OperationKind

logger = logging.getLogger(__name__)

# 一覧レスポンスがオブジェクトの場合に配列を探すキー（優先順）
_LIST_ENVELOPE_KEYS = ("items", "data")

_TIMEOUT_EXIT_CODE = -1


class LifecycleExecutor(Protocol):
    """BatchOrchestratorが利用する実行層のインターフェース。"""

    async def list_applications(self) -> list[ApplicationRecord]: ...

    async def perform_lifecycle_op(self, kind: OperationKind, app_id: str) -> str: ...


def parse_inventory(stdout: str) -> list[ApplicationRecord]:
    """CLIの一覧出力（JSON）をApplicationRecordのリストに変換する。

    Raises:
        FetchError: JSONとして解釈できない、または配列が見つからない場合。
    """
    try:
        payload: Any = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise FetchError(f"Application list is not valid JSON: {e}") from e

    if isinstance(payload, dict):
        for key in _LIST_ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list):
        raise FetchError(f"Unexpected application list payload: {type(payload).__name__}")

    records: list[ApplicationRecord] = []
    for entry in payload:
        if not isinstance(entry, dict):
            logger.debug("Skipping non-object inventory entry: %r", entry)
            continue
        try:
            records.append(ApplicationRecord.from_raw(entry))
        except ValidationError as e:
            logger.warning("Skipping malformed inventory entry %r: %s", entry, e)
    return records


class AnypointCliExecutor:
    """anypoint-cli-v4 を呼び出してアプリケーションを操作する。"""

    def __init__(self, config: FleetConfig) -> None:
        self._config = config

    def _build_args(self, verb: str, *args: str) -> list[str]:
        """CLI引数リストを構築する。

        Raises:
            CredentialsNotConfiguredError: Bearerトークンが未設定の場合。
        """
        if not self._config.bearer_token:
            raise CredentialsNotConfiguredError()

        command = [*shlex.split(self._config.cli_cmd), f"{self._config.command_namespace}:{verb}", *args]
        command.extend(["--bearer", self._config.bearer_token])
        if self._config.org_id:
            command.extend(["--organization", self._config.org_id])
        if self._config.environment:
            command.extend(["--environment", self._config.environment])
        return command

    async def _run_subprocess(self, args: list[str]) -> tuple[int, str, str]:
        """サブプロセスを非同期で実行し、結果を返す。

        Args:
            args: 実行するコマンドと引数のリスト。

        Returns:
            (exit_code, stdout, stderr) のタプル。タイムアウト時のexit_codeは-1。
        """
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=self._config.command_timeout
            )
        except TimeoutError:
            proc.kill()
            await proc.wait()
            return _TIMEOUT_EXIT_CODE, "", f"Command timed out after {self._config.command_timeout}s"
        return (
            proc.returncode or 0,
            stdout_bytes.decode("utf-8", errors="replace"),
            stderr_bytes.decode("utf-8", errors="replace"),
        )

    async def _run_cli(self, args: list[str]) -> CLIResult:
        """CLIを実行してCLIResultを返す。起動失敗はOSErrorとして送出される。"""
        logger.debug("Running %s", " ".join(shlex.quote(a) for a in _redact(args)))
        exit_code, stdout, stderr = await self._run_subprocess(args)
        if exit_code == 0 and stderr.strip():
            logger.warning("[Anypoint CLI stderr] %s", stderr.strip())
        return CLIResult(success=exit_code == 0, stdout=stdout, stderr=stderr, exit_code=exit_code)

    async def list_applications(self) -> list[ApplicationRecord]:
        """アプリケーション一覧を取得する。

        Raises:
            FetchError: 認証情報の欠落、CLIの起動失敗・異常終了、出力の解析失敗。
        """
        args = self._build_args("list", "--output", "json")
        try:
            result = await self._run_cli(args)
        except OSError as e:
            raise FetchError(f"Failed to launch Anypoint CLI: {e}") from e

        if not result.success:
            raise FetchError(
                f"anypoint-cli-v4 exited with code {result.exit_code}\n{result.stderr}",
                stderr=result.stderr,
                exit_code=result.exit_code,
            )
        return parse_inventory(result.stdout)

    async def perform_lifecycle_op(self, kind: OperationKind, app_id: str) -> str:
        """アプリケーションを起動または停止し、CLIの標準出力を返す。

        Raises:
            CommandError: コマンドが失敗した場合。
        """
        try:
            args = self._build_args(kind, app_id)
            result = await self._run_cli(args)
        except CredentialsNotConfiguredError as e:
            raise CommandError(str(e), app_id) from e
        except OSError as e:
            raise CommandError(f"Failed to launch Anypoint CLI: {e}", app_id) from e

        if not result.success:
            raise CommandError(
                f"anypoint-cli-v4 exited with code {result.exit_code}\n{result.stderr}",
                app_id,
                stderr=result.stderr,
                exit_code=result.exit_code,
            )
        return result.stdout


def _redact(args: list[str]) -> list[str]:
    """ログ出力用にBearerトークンを伏せた引数リストを返す。"""
    redacted = list(args)
    for i, arg in enumerate(redacted[:-1]):
        if arg == "--bearer":
            redacted[i + 1] = "***"
    return redacted
