"""解析のMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from ncino_analyzer.models.errors import AnalyzerError, InvalidInputError
from ncino_analyzer.models.metadata import MetadataBundle, MetadataDomain
from ncino_analyzer.models.report import AnalysisOptions
from ncino_analyzer.services.analysis import AnalysisService


def _resolve_records(
    service: AnalysisService,
    records: list[dict[str, Any]] | None,
    source: str | None,
    domain: MetadataDomain,
    label: str,
) -> list[dict[str, Any]]:
    if records is not None:
        return records
    if source:
        return service.load_source(source, domain)
    raise InvalidInputError(label, f"provide {domain} or a source file path")


def register_analysis_tools(mcp: FastMCP, service: AnalysisService) -> None:
    """解析関連のMCPツールを登録する。"""
    naming_analyzer = service.naming_analyzer
    bypass_analyzer = service.bypass_analyzer

    @mcp.tool()
    async def analyze_naming_conventions(
        fields: list[dict[str, Any]] | None = None,
        source: str | None = None,
    ) -> dict[str, Any]:
        """項目API名をnCinoの命名規則に照らして検査する。

        管理パッケージ接頭辞 (LLC_BI__)・プロジェクト接頭辞 (nc_)・
        Loanオブジェクト固有の命名パターンへの違反を重大度別に返します。

        Args:
            fields: 項目メタデータのリスト。各要素は {"apiName": str, "label": str, "type": str} 形式。
            source: fields の代わりに読み込むファイルパス (.json / .xml / .csv)。
        """
        try:
            records = _resolve_records(service, fields, source, "fields", "Field")
            result = naming_analyzer.analyze_fields(records)
            return {
                "results": result.model_dump(mode="json"),
                "summary": naming_analyzer.generate_summary_report(result).model_dump(mode="json"),
                "message": (
                    f"Analyzed {result.total_field_count} fields. "
                    f"Compliance: {result.compliance_percentage}%"
                ),
            }
        except (AnalyzerError, ValueError) as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def analyze_validation_rules(
        validation_rules: list[dict[str, Any]] | None = None,
        source: str | None = None,
    ) -> dict[str, Any]:
        """入力規則の数式からバイパスパターンを検出する。

        プロファイル名・ユーザーID・レコードタイプ・所有者による除外や
        カスタム権限によるバイパスを検出し、セキュリティスコアを算出します。

        Args:
            validation_rules: 入力規則メタデータのリスト。各要素は
                {"apiName": str, "active": bool, "errorConditionFormula": str} 形式。
            source: validation_rules の代わりに読み込むファイルパス (.json / .xml / .csv)。
        """
        try:
            records = _resolve_records(
                service, validation_rules, source, "validation_rules", "Validation rules"
            )
            result = bypass_analyzer.analyze_validation_rules(records)
            return {
                "results": result.model_dump(mode="json"),
                "refactoring_priorities": [
                    f.model_dump(mode="json") for f in bypass_analyzer.generate_refactoring_priorities(result)
                ],
                "recommendations": bypass_analyzer.generate_general_recommendations(result),
                "message": (
                    f"Analyzed {result.total} validation rules. "
                    f"Security score: {result.security_score}/100"
                ),
            }
        except (AnalyzerError, ValueError) as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def analyze_apex_triggers(
        triggers: list[dict[str, Any]] | None = None,
        source: str | None = None,
    ) -> dict[str, Any]:
        """Apexトリガーのソースからバイパスパターンを検出する。

        ハードコードされたユーザーID・プロファイル名チェック・カスタム設定による
        バイパスなどを検出し、セキュリティスコアを算出します。

        Args:
            triggers: トリガーのリスト。各要素は {"name": str, "active": bool, "content": str} 形式。
            source: triggers の代わりに読み込むファイルパス (.json / .trigger)。
        """
        try:
            records = _resolve_records(service, triggers, source, "triggers", "Trigger")
            result = bypass_analyzer.analyze_apex_triggers(records)
            return {
                "results": result.model_dump(mode="json"),
                "refactoring_priorities": [
                    f.model_dump(mode="json") for f in bypass_analyzer.generate_refactoring_priorities(result)
                ],
                "recommendations": bypass_analyzer.generate_general_recommendations(result),
                "message": f"Analyzed {result.total} triggers. Security score: {result.security_score}/100",
            }
        except (AnalyzerError, ValueError) as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def generate_report(
        fields: list[dict[str, Any]] | None = None,
        validation_rules: list[dict[str, Any]] | None = None,
        triggers: list[dict[str, Any]] | None = None,
        include_naming: bool = True,
        include_validation_rules: bool = True,
        include_triggers: bool = True,
    ) -> dict[str, Any]:
        """すべての解析を実行し、総合レポートを生成する。

        エグゼクティブサマリー・総合スコア・詳細な検出結果・推奨事項と、
        そのままユーザーに提示できるMarkdown形式のレポートを返します。
        一部のドメインの入力が不正な場合、そのドメインは errors に記録され、
        残りのドメインでレポートを生成します。

        Args:
            fields: 項目メタデータのリスト。
            validation_rules: 入力規則メタデータのリスト。
            triggers: トリガーのリスト。
            include_naming: 命名規則解析を実行するか。
            include_validation_rules: 入力規則の解析を実行するか。
            include_triggers: トリガーの解析を実行するか。
        """
        try:
            run = service.run_analysis(
                MetadataBundle(fields=fields, validation_rules=validation_rules, triggers=triggers),
                AnalysisOptions(
                    naming_conventions=include_naming,
                    validation_rules=include_validation_rules,
                    triggers=include_triggers,
                ),
            )
            return {
                "report": run.report.model_dump(mode="json"),
                "markdown": service.render_markdown(run),
                "errors": run.errors,
            }
        except AnalyzerError as e:
            return {"error": type(e).__name__, "message": str(e)}
