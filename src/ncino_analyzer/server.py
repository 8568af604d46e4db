"""FastMCPベースのMCPサーバーエントリポイント。"""

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.prompts.analysis import register_analysis_prompts
from ncino_analyzer.resources.catalog import register_catalog_resources
from ncino_analyzer.services.analysis import create_analysis_service
from ncino_analyzer.services.metadata import MetadataExtractor
from ncino_analyzer.tools.analysis import register_analysis_tools
from ncino_analyzer.tools.metadata import register_metadata_tools


def create_server(config: AnalyzerConfig | None = None) -> FastMCP:
    """ncino-analyzer MCPサーバーを作成し、ツール・リソース・プロンプトを登録する。

    Args:
        config: サーバー設定。Noneの場合はデフォルト設定を使用。

    Returns:
        設定済みのFastMCPインスタンス。
    """
    if config is None:
        config = AnalyzerConfig()

    mcp = FastMCP("ncino-analyzer")

    # サービス層
    analysis_service = create_analysis_service(config)
    extractor = MetadataExtractor(config, analysis_service.loader)

    # MCPインターフェース登録 (解析)
    register_analysis_tools(mcp, analysis_service)
    register_catalog_resources(mcp, config.config_dir)

    # MCPインターフェース登録 (メタデータ抽出)
    register_metadata_tools(mcp, extractor)

    # MCPインターフェース登録 (プロンプト)
    register_analysis_prompts(mcp)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return mcp
