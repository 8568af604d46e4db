"""ncino-analyzerの設定管理。"""

from pathlib import Path

from pydantic_settings import BaseSettings

_PACKAGE_ROOT = Path(__file__).parent
_REPO_ROOT = _PACKAGE_ROOT.parent.parent


class AnalyzerConfig(BaseSettings):
    """アナライザー設定。環境変数 (NCINO_ANALYZER_*) から読み込み可能。"""

    model_config = {"env_prefix": "NCINO_ANALYZER_"}

    config_dir: Path = _REPO_ROOT / "config"
    output_dir: Path = _REPO_ROOT / "output"
    log_level: str = "INFO"

    # MCPサーバー
    host: str = "0.0.0.0"
    port: int = 8000
    url_token: str = ""

    # Salesforce CLI
    sf_command: str = "sf"
    default_object: str = "LLC_BI__Loan__c"
    api_version: str = "56.0"
