"""解析結果を総合レポートにまとめるサービス。"""

from collections import Counter

from ncino_analyzer.analyzers.bypass import BypassPatternAnalyzer
from ncino_analyzer.analyzers.naming import NamingConventionAnalyzer
from ncino_analyzer.analyzers.scoring import raw_percentage, round_half_up
from ncino_analyzer.models.analysis import BypassAnalysis, NamingAnalysis
from ncino_analyzer.models.report import (
    BypassFindings,
    ChartData,
    ChartDataset,
    ComponentScores,
    DetailedFindings,
    ExecutiveSummary,
    FieldIssue,
    NamingFindings,
    OverallScore,
    PatternIssue,
    Report,
    RiskCounts,
    VisualizationData,
)

DISPLAY_LIMIT = 10
PRIORITY_LIMIT = 5

NAMING_WEIGHT = 1.0
BYPASS_WEIGHT = 1.5

# (下限スコア, 評価) の降順
RATING_BANDS: tuple[tuple[int, str], ...] = (
    (90, "Excellent"),
    (75, "Good"),
    (60, "Fair"),
    (40, "Poor"),
)

ASSESSMENT_CRITICAL = (
    "Critical attention required. The configuration contains significant risk factors "
    "that should be addressed immediately."
)
ASSESSMENT_MODERATE = (
    "Moderate risk identified. The configuration has several issues that should be "
    "addressed in the near term."
)
ASSESSMENT_LOW = (
    "Low risk identified. The configuration is generally sound with minor improvements "
    "recommended."
)

GOVERNANCE_RECOMMENDATIONS = (
    "Implement a governance process to regularly review and audit configuration changes.",
    "Document all configuration standards and patterns in a central location.",
    "Provide training to developers on secure and maintainable configuration practices.",
)

ISSUE_COLORS = ["#FF6384", "#FFCE56", "#36A2EB"]


def _truncation_note(total: int, noun: str) -> str | None:
    if total <= DISPLAY_LIMIT:
        return None
    return f"...and {total - DISPLAY_LIMIT} more {noun} with issues."


def _rating(score: int) -> str:
    for threshold, rating in RATING_BANDS:
        if score >= threshold:
            return rating
    return "Critical"


class ReportAggregator:
    """ドメインごとの解析結果から総合レポートを生成する。

    サマリーや推奨事項の導出は各アナライザーに委譲する。
    """

    def __init__(
        self,
        naming_analyzer: NamingConventionAnalyzer,
        bypass_analyzer: BypassPatternAnalyzer,
    ) -> None:
        self._naming = naming_analyzer
        self._bypass = bypass_analyzer

    def build_report(
        self,
        naming: NamingAnalysis | None = None,
        validation: BypassAnalysis | None = None,
        triggers: BypassAnalysis | None = None,
    ) -> Report:
        """解析結果から総合レポートを生成する。

        Args:
            naming: 命名規則解析の結果。解析しなかった場合は None。
            validation: 入力規則のバイパス解析結果。解析しなかった場合は None。
            triggers: トリガーのバイパス解析結果。解析しなかった場合は None。

        Returns:
            総合レポート。
        """
        summary = self._executive_summary(naming, validation, triggers)
        overall = self._overall_score(naming, validation, triggers)
        findings = DetailedFindings(
            naming_conventions=self._naming_findings(naming) if naming is not None else None,
            validation_rules=(
                self._bypass_findings(validation, "validation rules") if validation is not None else None
            ),
            triggers=self._bypass_findings(triggers, "triggers") if triggers is not None else None,
        )
        return Report(
            executive_summary=summary,
            overall_score=overall,
            recommendations=self._recommendations(naming, validation, triggers),
            detailed_findings=findings,
            visualization_data=VisualizationData(
                score_chart=self._score_chart(overall),
                issue_breakdown=self._issue_breakdown(summary.risks_identified),
                bypass_pattern_distribution=self._bypass_distribution(validation, triggers),
            ),
        )

    def _executive_summary(
        self,
        naming: NamingAnalysis | None,
        validation: BypassAnalysis | None,
        triggers: BypassAnalysis | None,
    ) -> ExecutiveSummary:
        risks = RiskCounts()
        key_findings: list[str] = []

        if naming is not None:
            risks.critical += len(naming.by_severity["critical"])
            risks.medium += len(naming.by_severity["medium"])
            risks.low += len(naming.by_severity["low"])
            key_findings.append(f"{naming.compliance_percentage}% of fields comply with naming conventions.")

        for result, noun in ((validation, "validation rules"), (triggers, "Apex triggers")):
            if result is None:
                continue
            risks.critical += len(result.by_severity["High"])
            risks.medium += len(result.by_severity["Medium"])
            risks.low += len(result.by_severity["Low"])
            key_findings.append(f"{result.bypass_percentage}% of {noun} contain bypass patterns.")

        critical_percent = raw_percentage(risks.critical, risks.total)
        if risks.critical > 5 or critical_percent > 20:
            assessment = ASSESSMENT_CRITICAL
        elif risks.critical > 0 or risks.medium > 10:
            assessment = ASSESSMENT_MODERATE
        else:
            assessment = ASSESSMENT_LOW

        return ExecutiveSummary(
            overall_assessment=assessment,
            key_findings=key_findings,
            risks_identified=risks,
        )

    def _overall_score(
        self,
        naming: NamingAnalysis | None,
        validation: BypassAnalysis | None,
        triggers: BypassAnalysis | None,
    ) -> OverallScore:
        components = ComponentScores(
            naming_conventions=naming.compliance_percentage if naming is not None else None,
            validation_rules=validation.security_score if validation is not None else None,
            triggers=triggers.security_score if triggers is not None else None,
        )
        weighted = [
            (score, weight)
            for score, weight in (
                (components.naming_conventions, NAMING_WEIGHT),
                (components.validation_rules, BYPASS_WEIGHT),
                (components.triggers, BYPASS_WEIGHT),
            )
            if score is not None
        ]
        if not weighted:
            return OverallScore(score=0, rating="N/A", component_scores=components)

        total_weight = sum(weight for _, weight in weighted)
        score = round_half_up(sum(s * w for s, w in weighted) / total_weight)
        return OverallScore(score=score, rating=_rating(score), component_scores=components)

    def _recommendations(
        self,
        naming: NamingAnalysis | None,
        validation: BypassAnalysis | None,
        triggers: BypassAnalysis | None,
    ) -> list[str]:
        recommendations: list[str] = []
        if naming is not None:
            recommendations.extend(self._naming.generate_summary_report(naming).recommendations)
        for result in (validation, triggers):
            if result is not None:
                recommendations.extend(self._bypass.generate_general_recommendations(result))
        recommendations.extend(GOVERNANCE_RECOMMENDATIONS)
        # 初出順を保ったまま重複を除去
        return list(dict.fromkeys(recommendations))

    def _naming_findings(self, naming: NamingAnalysis) -> NamingFindings:
        summary = self._naming.generate_summary_report(naming)
        return NamingFindings(
            compliance_percentage=naming.compliance_percentage,
            total_violations=len(naming.violations),
            violations=[
                FieldIssue(
                    field=v.api_name,
                    issues=[issue.rule for issue in v.violations],
                    severity=v.severity,
                    recommendation=v.recommended_fix,
                )
                for v in naming.violations[:DISPLAY_LIMIT]
            ],
            truncation_note=_truncation_note(len(naming.violations), "fields"),
            top_issues=summary.top_issues,
        )

    def _bypass_findings(self, result: BypassAnalysis, noun: str) -> BypassFindings:
        priorities = self._bypass.generate_refactoring_priorities(result)
        return BypassFindings(
            security_score=result.security_score,
            bypass_percentage=result.bypass_percentage,
            total_with_bypass=len(result.bypass_patterns),
            patterns=[
                PatternIssue(
                    identifier=f.identifier,
                    patterns=[p.name for p in f.patterns],
                    severity=f.highest_severity,
                )
                for f in result.bypass_patterns[:DISPLAY_LIMIT]
            ],
            truncation_note=_truncation_note(len(result.bypass_patterns), noun),
            refactoring_priorities=[f.identifier for f in priorities[:PRIORITY_LIMIT]],
        )

    def _score_chart(self, overall: OverallScore) -> ChartData:
        chart = ChartData(datasets=[ChartDataset(label="Score")])
        components = overall.component_scores
        for label, score in (
            ("Naming Conventions", components.naming_conventions),
            ("Validation Rules", components.validation_rules),
            ("Apex Triggers", components.triggers),
        ):
            if score is not None:
                chart.labels.append(label)
                chart.datasets[0].data.append(score)
        chart.labels.append("Overall")
        chart.datasets[0].data.append(overall.score)
        return chart

    def _issue_breakdown(self, risks: RiskCounts) -> ChartData:
        return ChartData(
            labels=["Critical", "Medium", "Low"],
            datasets=[
                ChartDataset(
                    label="Issue Count",
                    data=[risks.critical, risks.medium, risks.low],
                    background_color=list(ISSUE_COLORS),
                )
            ],
        )

    def _bypass_distribution(
        self,
        validation: BypassAnalysis | None,
        triggers: BypassAnalysis | None,
    ) -> ChartData:
        counts: Counter[str] = Counter()
        for result in (validation, triggers):
            if result is None:
                continue
            for finding in result.bypass_patterns:
                counts.update(p.name for p in finding.patterns)
        return ChartData(
            labels=list(counts),
            datasets=[ChartDataset(label="Count", data=list(counts.values()))],
        )

    def render_markdown(self, report: Report) -> str:
        """レポートをMarkdownテキストに変換する。"""
        lines: list[str] = []
        summary = report.executive_summary

        lines.append("## Executive Summary")
        lines.append("")
        lines.append(summary.overall_assessment)
        lines.append("")
        lines.append("### Key Findings")
        lines.append("")
        for finding in summary.key_findings:
            lines.append(f"- {finding}")
        lines.append("")
        lines.append("### Risk Breakdown")
        lines.append("")
        lines.append(f"- Critical Issues: {summary.risks_identified.critical}")
        lines.append(f"- Medium Issues: {summary.risks_identified.medium}")
        lines.append(f"- Low Issues: {summary.risks_identified.low}")
        lines.append("")

        overall = report.overall_score
        lines.append(f"## Overall Configuration Health Score: {overall.score}/100 ({overall.rating})")
        lines.append("")
        components = overall.component_scores
        component_lines = [
            f"- {label}: {score}/100"
            for label, score in (
                ("Naming Conventions", components.naming_conventions),
                ("Validation Rules", components.validation_rules),
                ("Apex Triggers", components.triggers),
            )
            if score is not None
        ]
        if component_lines:
            lines.append("### Component Scores")
            lines.append("")
            lines.extend(component_lines)
            lines.append("")

        lines.extend(self._render_findings(report.detailed_findings))

        lines.append("## Recommendations")
        lines.append("")
        for i, recommendation in enumerate(report.recommendations, 1):
            lines.append(f"{i}. {recommendation}")
        lines.append("")

        return "\n".join(lines)

    def _render_findings(self, findings: DetailedFindings) -> list[str]:
        lines = ["## Detailed Findings", ""]

        naming = findings.naming_conventions
        if naming is not None:
            lines.append(f"### Naming Convention Compliance: {naming.compliance_percentage}%")
            lines.append("")
            if naming.violations:
                lines.append("#### Field Naming Issues")
                lines.append("")
                lines.append("| Field | Issues | Recommendation |")
                lines.append("| ----- | ------ | -------------- |")
                for v in naming.violations:
                    lines.append(f"| {v.field} | {', '.join(v.issues)} | {v.recommendation} |")
                if naming.truncation_note:
                    lines.append("")
                    lines.append(f"_{naming.truncation_note}_")
                lines.append("")
            if naming.top_issues:
                lines.append("#### Top Naming Convention Issues")
                lines.append("")
                for issue in naming.top_issues:
                    lines.append(f"- {issue.rule}: {issue.count} occurrences")
                lines.append("")

        for result, title, noun, heading, column in (
            (findings.validation_rules, "Validation Rule", "validation rules", "Validation Rules", "Rule"),
            (findings.triggers, "Apex Trigger", "Apex triggers", "Triggers", "Trigger"),
        ):
            if result is None:
                continue
            lines.append(f"### {title} Security Score: {result.security_score}/100")
            lines.append("")
            lines.append(f"{result.bypass_percentage}% of {noun} contain bypass patterns.")
            lines.append("")
            if result.patterns:
                lines.append(f"#### {heading} with Bypass Patterns")
                lines.append("")
                lines.append(f"| {column} | Patterns | Severity |")
                lines.append(f"| {'-' * len(column)} | -------- | -------- |")
                for p in result.patterns:
                    lines.append(f"| {p.identifier} | {', '.join(p.patterns)} | {p.severity} |")
                if result.truncation_note:
                    lines.append("")
                    lines.append(f"_{result.truncation_note}_")
                lines.append("")
            if result.refactoring_priorities:
                lines.append(f"#### {heading} to Refactor (Priority Order)")
                lines.append("")
                for i, identifier in enumerate(result.refactoring_priorities, 1):
                    lines.append(f"{i}. {identifier}")
                lines.append("")

        return lines
