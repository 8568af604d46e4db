"""総合レポートのデータモデル。"""

from pydantic import BaseModel, Field

from ncino_analyzer.models.analysis import BypassAnalysis, NamingAnalysis, TopIssue
from ncino_analyzer.models.catalog import BypassSeverity, NamingSeverity
from ncino_analyzer.models.metadata import MetadataDomain


class RiskCounts(BaseModel):
    critical: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.medium + self.low


class ExecutiveSummary(BaseModel):
    overall_assessment: str
    key_findings: list[str] = Field(default_factory=list)
    risks_identified: RiskCounts = Field(default_factory=RiskCounts)


class ComponentScores(BaseModel):
    """ドメインごとのスコア。解析されなかったドメインは None。"""

    naming_conventions: int | None = None
    validation_rules: int | None = None
    triggers: int | None = None


class OverallScore(BaseModel):
    score: int = 0
    rating: str = "N/A"
    component_scores: ComponentScores = Field(default_factory=ComponentScores)


class FieldIssue(BaseModel):
    field: str
    issues: list[str]
    severity: NamingSeverity
    recommendation: str


class NamingFindings(BaseModel):
    compliance_percentage: int
    total_violations: int
    violations: list[FieldIssue]
    truncation_note: str | None = None
    top_issues: list[TopIssue] = Field(default_factory=list)


class PatternIssue(BaseModel):
    identifier: str
    patterns: list[str]
    severity: BypassSeverity


class BypassFindings(BaseModel):
    security_score: int
    bypass_percentage: int
    total_with_bypass: int
    patterns: list[PatternIssue]
    truncation_note: str | None = None
    refactoring_priorities: list[str] = Field(default_factory=list)


class DetailedFindings(BaseModel):
    naming_conventions: NamingFindings | None = None
    validation_rules: BypassFindings | None = None
    triggers: BypassFindings | None = None


class ChartDataset(BaseModel):
    label: str
    data: list[int] = Field(default_factory=list)
    background_color: list[str] | None = None


class ChartData(BaseModel):
    labels: list[str] = Field(default_factory=list)
    datasets: list[ChartDataset] = Field(default_factory=list)


class VisualizationData(BaseModel):
    score_chart: ChartData
    issue_breakdown: ChartData
    bypass_pattern_distribution: ChartData


class Report(BaseModel):
    """ReportAggregator が生成する総合レポート。"""

    executive_summary: ExecutiveSummary
    overall_score: OverallScore
    recommendations: list[str] = Field(default_factory=list)
    detailed_findings: DetailedFindings = Field(default_factory=DetailedFindings)
    visualization_data: VisualizationData


class AnalysisOptions(BaseModel):
    """実行する解析の選択。"""

    naming_conventions: bool = True
    validation_rules: bool = True
    triggers: bool = True


class AnalysisRun(BaseModel):
    """一回の解析実行の結果。ドメイン単位のエラーは errors に記録される。"""

    naming: NamingAnalysis | None = None
    validation_rules: BypassAnalysis | None = None
    triggers: BypassAnalysis | None = None
    errors: dict[MetadataDomain, str] = Field(default_factory=dict)
    report: Report
