"""入力規則・Apexトリガーのバイパスパターンアナライザー。"""

import logging
from collections.abc import Sequence
from typing import Any

from ncino_analyzer.analyzers.scoring import percentage, security_score
from ncino_analyzer.models.analysis import BypassAnalysis, BypassFinding, BypassKind, PatternMatch
from ncino_analyzer.models.catalog import BYPASS_SEVERITY_ORDER, BypassSeverity, DetectionRule, PatternCatalog
from ncino_analyzer.models.metadata import TriggerRecord, ValidationRuleRecord, normalize_records

logger = logging.getLogger(__name__)

HIGH_BYPASS_PERCENTAGE = 50

GOVERNANCE_RECOMMENDATIONS = (
    "Implement a consistent approach to bypass logic across all components",
    "Use custom permissions instead of profiles or user IDs for bypass logic",
    "Document all bypass mechanisms in a central location for security review",
)

_HIGH_SEVERITY_RECOMMENDATIONS: dict[BypassKind, str] = {
    "validation_rule": "Immediately refactor validation rules with hardcoded User IDs",
    "trigger": "Immediately refactor triggers with hardcoded User IDs or Profile checks",
}


def _collation_key(identifier: str) -> tuple[tuple[int, str], ...]:
    return tuple((_char_class(c), c.casefold()) for c in identifier)


def _char_class(char: str) -> int:
    if char.isdigit():
        return 1
    if char.isalpha():
        return 2
    return 0


class BypassPatternAnalyzer:
    """検出ルールに基づいて入力規則の数式やトリガーのソースからバイパスロジックを検出する。"""

    def __init__(self, catalog: PatternCatalog) -> None:
        self._catalog = catalog

    def analyze_validation_rules(self, rules: Any) -> BypassAnalysis:
        """入力規則の errorConditionFormula を検査する。

        Raises:
            InvalidInputError: 入力がリストでない、または規則を正規化できない場合。
        """
        records = normalize_records(rules, ValidationRuleRecord, "Validation rules")
        return self._analyze(
            "validation_rule",
            self._catalog.validation_rule_patterns,
            [(r.api_name, r.active, r.description, r.error_condition_formula) for r in records],
        )

    def analyze_apex_triggers(self, triggers: Any) -> BypassAnalysis:
        """Apexトリガーのソースを検査する。

        Raises:
            InvalidInputError: 入力がリストでない、またはトリガーを正規化できない場合。
        """
        records = normalize_records(triggers, TriggerRecord, "Trigger")
        return self._analyze(
            "trigger",
            self._catalog.trigger_patterns,
            [(t.name, t.active, "", t.content) for t in records],
        )

    def _analyze(
        self,
        kind: BypassKind,
        rules: Sequence[DetectionRule],
        items: list[tuple[str, bool, str, str]],
    ) -> BypassAnalysis:
        result = BypassAnalysis(
            kind=kind,
            total=len(items),
            by_pattern={rule.name: [] for rule in rules},
        )

        for identifier, active, description, text in items:
            matches = [
                PatternMatch(
                    name=rule.name,
                    severity=rule.severity,
                    description=rule.description,
                    recommended_approach=rule.recommended_approach,
                )
                for rule in rules
                if rule.pattern.search(text)
            ]
            if not matches:
                continue

            highest = self._highest_severity(matches)
            result.bypass_patterns.append(
                BypassFinding(
                    identifier=identifier,
                    active=active,
                    description=description,
                    patterns=matches,
                    highest_severity=highest,
                )
            )
            result.with_bypass += 1
            result.by_severity[highest].append(identifier)
            for match in matches:
                result.by_pattern.setdefault(match.name, []).append(identifier)
            logger.debug("%s %s: %d bypass pattern(s)", kind, identifier, len(matches))

        result.bypass_percentage = percentage(result.with_bypass, result.total)
        result.security_score = security_score(
            result.with_bypass,
            result.total,
            len(result.by_severity["High"]),
            len(result.by_severity["Medium"]),
        )
        return result

    @staticmethod
    def _highest_severity(matches: list[PatternMatch]) -> BypassSeverity:
        return min((m.severity for m in matches), key=BYPASS_SEVERITY_ORDER.index)

    def generate_refactoring_priorities(self, result: BypassAnalysis) -> list[BypassFinding]:
        """リファクタリングの優先順に並べた検出結果を返す。

        重大度 (High > Medium > Low)、識別子のロケール照合順 (記号 < 数字 < 英字、
        大文字小文字を区別しない) で並べる。同じ綴りの識別子は小文字始まりを先にする。
        元の結果は変更しない。
        """
        return sorted(
            result.bypass_patterns,
            key=lambda f: (
                BYPASS_SEVERITY_ORDER.index(f.highest_severity),
                _collation_key(f.identifier),
                f.identifier.swapcase(),
            ),
        )

    def generate_general_recommendations(self, result: BypassAnalysis) -> list[str]:
        recommendations = list(GOVERNANCE_RECOMMENDATIONS)

        if result.by_severity["High"]:
            recommendations.append(_HIGH_SEVERITY_RECOMMENDATIONS[result.kind])
        if result.kind == "validation_rule" and result.bypass_percentage > HIGH_BYPASS_PERCENTAGE:
            recommendations.append(
                "Review overall validation strategy to reduce reliance on bypass patterns"
            )
        if result.kind == "trigger":
            recommendations.append(
                "Implement a centralized trigger handler framework with consistent bypass logic"
            )
        return recommendations
