"""テスト共通フィクスチャ。"""

from pathlib import Path

import pytest

from ncino_analyzer.analyzers.bypass import BypassPatternAnalyzer
from ncino_analyzer.analyzers.catalog import load_pattern_catalog
from ncino_analyzer.analyzers.naming import NamingConventionAnalyzer
from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.models.catalog import PatternCatalog
from ncino_analyzer.services.analysis import AnalysisService
from ncino_analyzer.services.metadata import MetadataLoader
from ncino_analyzer.services.report import ReportAggregator


@pytest.fixture
def config_dir() -> Path:
    """設定ファイルディレクトリ。"""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def catalog(config_dir: Path) -> PatternCatalog:
    """config/patterns から読み込んだパターンカタログ。"""
    return load_pattern_catalog(config_dir)


@pytest.fixture
def naming_analyzer(catalog: PatternCatalog) -> NamingConventionAnalyzer:
    return NamingConventionAnalyzer(catalog)


@pytest.fixture
def bypass_analyzer(catalog: PatternCatalog) -> BypassPatternAnalyzer:
    return BypassPatternAnalyzer(catalog)


@pytest.fixture
def aggregator(naming_analyzer: NamingConventionAnalyzer, bypass_analyzer: BypassPatternAnalyzer) -> ReportAggregator:
    return ReportAggregator(naming_analyzer, bypass_analyzer)


@pytest.fixture
def loader() -> MetadataLoader:
    return MetadataLoader()


@pytest.fixture
def analysis_service(
    naming_analyzer: NamingConventionAnalyzer,
    bypass_analyzer: BypassPatternAnalyzer,
    aggregator: ReportAggregator,
    loader: MetadataLoader,
) -> AnalysisService:
    """テスト用AnalysisService。"""
    return AnalysisService(
        naming_analyzer=naming_analyzer,
        bypass_analyzer=bypass_analyzer,
        aggregator=aggregator,
        loader=loader,
    )


@pytest.fixture
def analyzer_config(tmp_path: Path, config_dir: Path) -> AnalyzerConfig:
    """テスト用AnalyzerConfig。"""
    return AnalyzerConfig(config_dir=config_dir, output_dir=tmp_path / "output")
