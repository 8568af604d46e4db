"""項目API名の命名規則アナライザー。"""

import logging
from collections import Counter
from typing import Any

from ncino_analyzer.analyzers.scoring import percentage
from ncino_analyzer.models.analysis import (
    FieldViolation,
    NamingAnalysis,
    NamingSummary,
    NamingViolation,
    TopIssue,
)
from ncino_analyzer.models.catalog import NamingSeverity, PatternCatalog
from ncino_analyzer.models.metadata import FieldRecord, normalize_records

logger = logging.getLogger(__name__)

TOP_ISSUE_LIMIT = 5
COMPLIANCE_THRESHOLD = 70

MANAGED_PREFIX = "LLC_BI__"
CUSTOM_PREFIX = "nc_"


class NamingConventionAnalyzer:
    """パターンカタログの命名規則に基づいて項目API名を検査する。"""

    def __init__(self, catalog: PatternCatalog) -> None:
        self._catalog = catalog

    def analyze_fields(self, fields: Any) -> NamingAnalysis:
        """項目リストを解析し、違反項目を重大度別に分類する。

        Args:
            fields: 項目レコード (dict または FieldRecord) のリスト。

        Returns:
            命名規則解析の結果。

        Raises:
            InvalidInputError: 入力がリストでない、または項目を正規化できない場合。
        """
        records = normalize_records(fields, FieldRecord, "Field")
        result = NamingAnalysis(total_field_count=len(records))

        for record in records:
            violations = self._check_field(record.api_name)
            if not violations:
                result.compliant_field_count += 1
                continue

            severity = self._determine_severity(violations)
            violation = FieldViolation(
                api_name=record.api_name,
                label=record.label,
                type=record.type,
                violations=violations,
                severity=severity,
                recommended_fix=self._generate_recommendation(record.api_name, violations),
            )
            result.violations.append(violation)
            result.by_severity[severity].append(violation)
            logger.debug("Field %s: %d naming violation(s)", record.api_name, len(violations))

        result.compliance_percentage = percentage(
            result.compliant_field_count, result.total_field_count
        )
        return result

    def generate_summary_report(self, result: NamingAnalysis) -> NamingSummary:
        """解析結果からサマリーを生成する。"""
        critical = len(result.by_severity["critical"])
        medium = len(result.by_severity["medium"])
        return NamingSummary(
            total_fields=result.total_field_count,
            compliant_fields=result.compliant_field_count,
            compliance_percentage=result.compliance_percentage,
            violation_count=len(result.violations),
            critical_violations=critical,
            medium_violations=medium,
            low_violations=len(result.by_severity["low"]),
            top_issues=self._identify_top_issues(result),
            recommendations=self._generate_general_recommendations(result),
        )

    def _check_field(self, api_name: str) -> list[NamingViolation]:
        violations: list[NamingViolation] = []

        for rule in self._catalog.naming_rules:
            matched = rule.pattern.search(api_name) is not None
            if matched != rule.expected_match:
                violations.append(
                    NamingViolation(
                        rule=rule.description,
                        kind=rule.kind,
                        severity=rule.severity,
                        expected=rule.expected_match,
                        pattern=rule.pattern.pattern,
                    )
                )

        if "loan" in api_name.lower():
            violations.extend(self._check_loan_field(api_name))
        return violations

    def _check_loan_field(self, api_name: str) -> list[NamingViolation]:
        loan = self._catalog.loan_conventions
        violations: list[NamingViolation] = []

        follows_convention = any(p.search(api_name) for p in (*loan.standard, *loan.custom))
        if not follows_convention and "Loan" in api_name:
            violations.append(
                NamingViolation(rule=loan.unmatched_description, kind="loan_pattern", severity=loan.severity)
            )

        invalid = next((p for p in loan.invalid if p.search(api_name)), None)
        if invalid is not None:
            violations.append(
                NamingViolation(
                    rule=loan.invalid_description,
                    kind="invalid_pattern",
                    severity=loan.severity,
                    pattern=invalid.pattern,
                )
            )
        return violations

    def _determine_severity(self, violations: list[NamingViolation]) -> NamingSeverity:
        severities = {v.severity for v in violations}
        if "critical" in severities:
            return "critical"
        if "medium" in severities:
            return "medium"
        return "low"

    def _generate_recommendation(self, api_name: str, violations: list[NamingViolation]) -> str:
        kinds = {v.kind for v in violations}

        if "invalid_pattern" in kinds:
            if api_name.endswith("__X"):
                return f"Remove '__X' suffix: '{api_name.removesuffix('__X')}__c'"
            if api_name.startswith("loan_"):
                return f"Change to 'nc_Loan_{api_name[len('loan_'):]}'"
            return "Rename to follow standard pattern (LLC_BI__*__c) or custom pattern (nc_*__c)"

        if "casing" in kinds and api_name:
            fixed = api_name[0].upper() + api_name[1:]
            return f"Change first character '{api_name[0]}' to uppercase: '{fixed}'"

        if "prefix" in kinds or "loan_pattern" in kinds:
            if "Loan" in api_name and not api_name.startswith((MANAGED_PREFIX, CUSTOM_PREFIX)):
                return f"Add '{CUSTOM_PREFIX}' prefix: '{CUSTOM_PREFIX}{api_name}'"
            return (
                "Add appropriate prefix ('LLC_BI__' for managed package fields "
                "or 'nc_' for custom fields)"
            )

        return "Review field naming and apply appropriate convention"

    def _identify_top_issues(self, result: NamingAnalysis) -> list[TopIssue]:
        # Counterは初出順を保持し、most_commonは同数の場合その順序を崩さない
        counts = Counter(v.rule for field in result.violations for v in field.violations)
        return [TopIssue(rule=rule, count=count) for rule, count in counts.most_common(TOP_ISSUE_LIMIT)]

    def _generate_general_recommendations(self, result: NamingAnalysis) -> list[str]:
        critical = len(result.by_severity["critical"])
        medium = len(result.by_severity["medium"])
        recommendations: list[str] = []

        if critical > 0:
            recommendations.append(
                "Immediately address critical naming violations to prevent potential "
                "conflicts and maintenance issues"
            )
        if result.compliance_percentage < COMPLIANCE_THRESHOLD:
            recommendations.append("Create and document clear naming conventions and socialize with team")
            recommendations.append(
                "Consider implementing automated validation for field naming during development"
            )
        if critical == 0 and medium > 0:
            recommendations.append(
                "Address medium-severity naming issues in next planned refactoring cycle"
            )
        recommendations.append(
            "Regularly review and audit field naming as part of maintenance practices"
        )
        return recommendations
