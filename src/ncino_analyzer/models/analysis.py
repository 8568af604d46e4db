"""解析結果のデータモデル。"""

from typing import Literal

from pydantic import BaseModel, Field

from ncino_analyzer.models.catalog import BypassSeverity, NamingSeverity

BypassKind = Literal["validation_rule", "trigger"]
ViolationKind = Literal["prefix", "casing", "loan_pattern", "invalid_pattern"]


class NamingViolation(BaseModel):
    """項目に対する個別の命名規則違反。"""

    rule: str
    kind: ViolationKind
    severity: NamingSeverity
    expected: bool | None = None
    pattern: str | None = None


class FieldViolation(BaseModel):
    """一つ以上の規則に違反した項目。"""

    api_name: str
    label: str = ""
    type: str = ""
    violations: list[NamingViolation]
    severity: NamingSeverity
    recommended_fix: str


def _naming_buckets() -> dict[NamingSeverity, list[FieldViolation]]:
    return {"critical": [], "medium": [], "low": []}


class NamingAnalysis(BaseModel):
    """命名規則解析の結果。"""

    violations: list[FieldViolation] = Field(default_factory=list)
    compliant_field_count: int = 0
    total_field_count: int = 0
    by_severity: dict[NamingSeverity, list[FieldViolation]] = Field(default_factory=_naming_buckets)
    compliance_percentage: int = 0


class TopIssue(BaseModel):
    rule: str
    count: int


class NamingSummary(BaseModel):
    """命名規則解析のサマリー。"""

    total_fields: int
    compliant_fields: int
    compliance_percentage: int
    violation_count: int
    critical_violations: int
    medium_violations: int
    low_violations: int
    top_issues: list[TopIssue]
    recommendations: list[str]


class PatternMatch(BaseModel):
    """レコードに一致したバイパス検出ルール。"""

    name: str
    severity: BypassSeverity
    description: str
    recommended_approach: str


class BypassFinding(BaseModel):
    """一つ以上のバイパスパターンを含む入力規則またはトリガー。"""

    identifier: str
    active: bool = False
    description: str = ""
    patterns: list[PatternMatch]
    highest_severity: BypassSeverity


def _bypass_buckets() -> dict[BypassSeverity, list[str]]:
    return {"High": [], "Medium": [], "Low": []}


class BypassAnalysis(BaseModel):
    """バイパスパターン解析の結果 (入力規則・トリガー共通)。"""

    kind: BypassKind
    bypass_patterns: list[BypassFinding] = Field(default_factory=list)
    by_pattern: dict[str, list[str]] = Field(default_factory=dict)
    by_severity: dict[BypassSeverity, list[str]] = Field(default_factory=_bypass_buckets)
    total: int = 0
    with_bypass: int = 0
    bypass_percentage: int = 0
    security_score: int = 100
