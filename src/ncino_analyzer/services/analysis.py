"""解析ワークフロー全体を制御するサービス。"""

import json
import logging
from pathlib import Path
from typing import Any

from ncino_analyzer.analyzers.bypass import BypassPatternAnalyzer
from ncino_analyzer.analyzers.catalog import load_pattern_catalog
from ncino_analyzer.analyzers.naming import NamingConventionAnalyzer
from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.models.analysis import BypassAnalysis, NamingAnalysis
from ncino_analyzer.models.errors import AnalyzerError, NoMetadataError
from ncino_analyzer.models.metadata import MetadataBundle, MetadataDomain
from ncino_analyzer.models.report import AnalysisOptions, AnalysisRun
from ncino_analyzer.services.metadata import MetadataLoader
from ncino_analyzer.services.report import ReportAggregator

logger = logging.getLogger(__name__)

REPORT_BASENAME = "comprehensive_report"

# ファイルパスで禁止するパターン
_DISALLOWED_PATH_PATTERNS = ("..", "~")


def _validate_source_path(source: str) -> Path:
    """ファイルパスのトラバーサルを検証する。

    Raises:
        ValueError: パスに不正なパターンが含まれる場合。
    """
    for pattern in _DISALLOWED_PATH_PATTERNS:
        if pattern in source:
            raise ValueError(f"Invalid file path: path contains '{pattern}'")
    return Path(source)


class AnalysisService:
    """入力の準備・解析の実行・レポート出力を行う。"""

    def __init__(
        self,
        naming_analyzer: NamingConventionAnalyzer,
        bypass_analyzer: BypassPatternAnalyzer,
        aggregator: ReportAggregator,
        loader: MetadataLoader,
    ) -> None:
        self._naming = naming_analyzer
        self._bypass = bypass_analyzer
        self._aggregator = aggregator
        self._loader = loader

    @property
    def naming_analyzer(self) -> NamingConventionAnalyzer:
        return self._naming

    @property
    def bypass_analyzer(self) -> BypassPatternAnalyzer:
        return self._bypass

    @property
    def loader(self) -> MetadataLoader:
        return self._loader

    def prepare_input(self, bundle: MetadataBundle) -> MetadataBundle:
        """解析対象が一つ以上指定されていることを確認する。

        Raises:
            NoMetadataError: どのドメインも指定されていない場合。
        """
        if bundle.is_empty():
            raise NoMetadataError()
        return bundle

    def load_bundle(
        self,
        fields_path: Path | None = None,
        validation_rules_path: Path | None = None,
        triggers_path: Path | None = None,
    ) -> MetadataBundle:
        """ドメインごとのファイルを読み込んでメタデータ一式を作る。"""
        return MetadataBundle(
            fields=self._loader.load_file(fields_path, "fields") if fields_path else None,
            validation_rules=(
                self._loader.load_file(validation_rules_path, "validation_rules")
                if validation_rules_path
                else None
            ),
            triggers=self._loader.load_file(triggers_path, "triggers") if triggers_path else None,
        )

    def load_source(self, source: str, domain: MetadataDomain) -> list[dict[str, Any]]:
        """MCPクライアントから指定されたファイルを読み込む。

        Raises:
            ValueError: パスに不正なパターンが含まれる場合。
        """
        return self._loader.load_file(_validate_source_path(source), domain)

    def load_source_tree(self, root: Path, object_name: str) -> MetadataBundle:
        return self._loader.load_source_tree(root, object_name)

    def run_analysis(self, bundle: MetadataBundle, options: AnalysisOptions | None = None) -> AnalysisRun:
        """有効な解析を実行し、総合レポートを生成する。

        各ドメインの解析は独立しており、一つのドメインの入力エラーは
        errors に記録され、他のドメインの解析には影響しない。

        Args:
            bundle: 解析対象のメタデータ一式。
            options: 実行する解析の選択。省略時はすべて実行。

        Returns:
            ドメインごとの結果・エラーと総合レポート。

        Raises:
            NoMetadataError: どのドメインも指定されていない場合。
        """
        options = options or AnalysisOptions()
        bundle = self.prepare_input(bundle)
        errors: dict[MetadataDomain, str] = {}
        logger.info("Starting analysis")

        naming: NamingAnalysis | None = None
        if options.naming_conventions and bundle.fields is not None:
            try:
                logger.info("Analyzing naming conventions for %d fields", len(bundle.fields))
                naming = self._naming.analyze_fields(bundle.fields)
            except AnalyzerError as e:
                logger.error("Error analyzing naming conventions: %s", e)
                errors["fields"] = str(e)

        validation: BypassAnalysis | None = None
        if options.validation_rules and bundle.validation_rules is not None:
            try:
                logger.info(
                    "Analyzing bypass patterns in %d validation rules", len(bundle.validation_rules)
                )
                validation = self._bypass.analyze_validation_rules(bundle.validation_rules)
            except AnalyzerError as e:
                logger.error("Error analyzing validation rules: %s", e)
                errors["validation_rules"] = str(e)

        triggers: BypassAnalysis | None = None
        if options.triggers and bundle.triggers is not None:
            try:
                logger.info("Analyzing bypass patterns in %d Apex triggers", len(bundle.triggers))
                triggers = self._bypass.analyze_apex_triggers(bundle.triggers)
            except AnalyzerError as e:
                logger.error("Error analyzing Apex triggers: %s", e)
                errors["triggers"] = str(e)

        report = self._aggregator.build_report(naming, validation, triggers)
        logger.info(
            "Analysis completed: score %d (%s)", report.overall_score.score, report.overall_score.rating
        )
        return AnalysisRun(
            naming=naming,
            validation_rules=validation,
            triggers=triggers,
            errors=errors,
            report=report,
        )

    def render_markdown(self, run: AnalysisRun) -> str:
        return self._aggregator.render_markdown(run.report)

    def write_report(self, run: AnalysisRun, output_dir: Path) -> list[Path]:
        """レポートをMarkdownとJSONで出力する。

        Returns:
            書き出したファイルのパス (Markdown, JSON の順)。
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        markdown_path = output_dir / f"{REPORT_BASENAME}.md"
        json_path = output_dir / f"{REPORT_BASENAME}.json"

        markdown_path.write_text(self.render_markdown(run), encoding="utf-8")
        json_path.write_text(
            json.dumps(run.model_dump(mode="json"), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Report written to %s", output_dir)
        return [markdown_path, json_path]


def create_analysis_service(config: AnalyzerConfig) -> AnalysisService:
    """パターンカタログを読み込み、アナライザー一式を組み立てたサービスを返す。

    Raises:
        CatalogError: パターンカタログが読み込めない場合。
    """
    catalog = load_pattern_catalog(config.config_dir)
    naming_analyzer = NamingConventionAnalyzer(catalog)
    bypass_analyzer = BypassPatternAnalyzer(catalog)
    return AnalysisService(
        naming_analyzer=naming_analyzer,
        bypass_analyzer=bypass_analyzer,
        aggregator=ReportAggregator(naming_analyzer, bypass_analyzer),
        loader=MetadataLoader(),
    )
