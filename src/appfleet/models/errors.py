"""appfleetのカスタム例外クラス。"""


class FleetError(Exception):
    """appfleetの基底例外クラス。"""


class CompilationError(FleetError):
    """アプリ名パターンが正規表現としてコンパイルできない場合の例外。"""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid application pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class FetchError(FleetError):
    """アプリケーション一覧を取得できない場合の例外。"""

    def __init__(self, message: str, stderr: str = "", exit_code: int | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.exit_code = exit_code


class CredentialsNotConfiguredError(FetchError):
    """Bearerトークンが設定されていない場合の例外。"""

    def __init__(self) -> None:
        super().__init__("ANYPOINT_BEARER_TOKEN (or ANYPOINT_BEARER) is not set.")


class CommandError(FleetError):
    """個別アプリケーションへのライフサイクルコマンドが失敗した場合の例外。"""

    def __init__(self, message: str, app_id: str, stderr: str = "", exit_code: int | None = None) -> None:
        super().__init__(message)
        self.app_id = app_id
        self.stderr = stderr
        self.exit_code = exit_code
