"""メタデータ抽出のMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from ncino_analyzer.models.errors import AnalyzerError
from ncino_analyzer.services.metadata import MetadataExtractor


def register_metadata_tools(mcp: FastMCP, extractor: MetadataExtractor) -> None:
    """メタデータ関連のMCPツールを登録する。"""

    @mcp.tool()
    async def extract_metadata(
        instance_url: str,
        access_token: str,
        object_name: str | None = None,
    ) -> dict[str, Any]:
        """Salesforce組織からオブジェクトのメタデータを取得する。

        Salesforce CLI (sf) でアクセストークンによりログインし、
        オブジェクトの項目・入力規則と、オブジェクト名で始まるApexトリガーを取得します。
        取得結果はそのまま analyze_* ツールや generate_report ツールに渡せます。

        Args:
            instance_url: 組織のインスタンスURL (例: "https://example.my.salesforce.com")。
            access_token: アクセストークン (セッションID)。
            object_name: 対象オブジェクトのAPI名。省略時は LLC_BI__Loan__c。
        """
        try:
            bundle = await extractor.extract(instance_url, access_token, object_name)
            return {
                "fields": bundle.fields or [],
                "validation_rules": bundle.validation_rules or [],
                "triggers": bundle.triggers or [],
                "message": (
                    f"Extracted {len(bundle.fields or [])} fields, "
                    f"{len(bundle.validation_rules or [])} validation rules and "
                    f"{len(bundle.triggers or [])} triggers"
                ),
            }
        except AnalyzerError as e:
            return {"error": type(e).__name__, "message": str(e)}
