"""パターンカタログ (検出ルール定義) のデータモデル。

カタログは起動時に一度だけ構築され、各アナライザーに参照渡しされる。
解析中に変更されることはないため、すべて frozen モデルとして定義する。
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

NamingSeverity = Literal["critical", "medium", "low"]
BypassSeverity = Literal["High", "Medium", "Low"]
NamingRuleKind = Literal["prefix", "casing"]

NAMING_SEVERITY_ORDER: tuple[NamingSeverity, ...] = ("critical", "medium", "low")
BYPASS_SEVERITY_ORDER: tuple[BypassSeverity, ...] = ("High", "Medium", "Low")


class NamingRule(BaseModel):
    """項目API名に対する汎用命名規則。

    expected_match が True の場合はパターンに一致することが準拠条件、
    False の場合はパターンに一致すること自体が違反となる。
    """

    model_config = ConfigDict(frozen=True)

    id: str
    pattern: re.Pattern[str]
    description: str
    expected_match: bool
    severity: NamingSeverity = "low"
    kind: NamingRuleKind


class LoanConventions(BaseModel):
    """Loanオブジェクト関連項目にのみ適用する命名規則。"""

    model_config = ConfigDict(frozen=True)

    standard: tuple[re.Pattern[str], ...] = ()
    custom: tuple[re.Pattern[str], ...] = ()
    invalid: tuple[re.Pattern[str], ...] = ()
    unmatched_description: str = "Loan-related fields must follow standard or custom patterns"
    invalid_description: str = "Field uses an invalid naming pattern"
    severity: NamingSeverity = "critical"


class DetectionRule(BaseModel):
    """入力規則の数式・Apexトリガーのソースに対するバイパス検出ルール。"""

    model_config = ConfigDict(frozen=True)

    name: str
    pattern: re.Pattern[str]
    severity: BypassSeverity
    description: str
    recommended_approach: str


class PatternCatalog(BaseModel):
    """ドメインごとの検出ルール一式。"""

    model_config = ConfigDict(frozen=True)

    naming_rules: tuple[NamingRule, ...] = ()
    loan_conventions: LoanConventions = Field(default_factory=LoanConventions)
    validation_rule_patterns: tuple[DetectionRule, ...] = ()
    trigger_patterns: tuple[DetectionRule, ...] = ()
