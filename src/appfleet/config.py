"""appfleetの設定管理。"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CLI_CMD = "./node_modules/.bin/anypoint-cli-v4"

# CloudHub 2.0 のアプリケーションコマンド名前空間
DEFAULT_COMMAND_NAMESPACE = "runtime-mgr:application"


class FleetConfig(BaseSettings):
    """Anypoint CLI実行設定。環境変数および .env から読み込み可能。"""

    model_config = SettingsConfigDict(
        env_prefix="ANYPOINT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    cli_cmd: str = DEFAULT_CLI_CMD
    bearer_token: str = Field(
        default="",
        validation_alias=AliasChoices("ANYPOINT_BEARER_TOKEN", "ANYPOINT_BEARER", "bearer_token"),
    )
    org_id: str = ""
    environment: str = ""
    command_namespace: str = DEFAULT_COMMAND_NAMESPACE
    # コマンド単位のタイムアウト（秒）。Noneは無制限。
    command_timeout: float | None = None


class ServerConfig(BaseSettings):
    """MCPサーバー設定。環境変数から読み込み可能。"""

    model_config = SettingsConfigDict(env_prefix="APPFLEET_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = 8000
    url_token: str = ""
