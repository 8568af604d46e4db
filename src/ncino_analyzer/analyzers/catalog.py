"""パターンカタログのYAML読み込み。"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ncino_analyzer.models.catalog import DetectionRule, LoanConventions, NamingRule, PatternCatalog
from ncino_analyzer.models.errors import CatalogError

logger = logging.getLogger(__name__)

NAMING_RULES_FILE = "naming-rules.yaml"
VALIDATION_RULE_PATTERNS_FILE = "validation-rule-patterns.yaml"
TRIGGER_PATTERNS_FILE = "trigger-patterns.yaml"


def patterns_dir(config_dir: Path) -> Path:
    return config_dir / "patterns"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise CatalogError(f"Pattern catalog file not found: {path}") from None
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in pattern catalog file {path}: {e}") from e
    if not isinstance(data, dict):
        raise CatalogError(f"Pattern catalog file must contain a mapping: {path}")
    return data


def load_pattern_catalog(config_dir: Path) -> PatternCatalog:
    """config/patterns 以下のYAMLからパターンカタログを構築する。

    Args:
        config_dir: 設定ファイルディレクトリ。

    Returns:
        構築済みのパターンカタログ。

    Raises:
        CatalogError: ファイルが存在しない、またはルール定義が不正な場合。
    """
    base = patterns_dir(config_dir)
    naming = _read_yaml(base / NAMING_RULES_FILE)
    validation = _read_yaml(base / VALIDATION_RULE_PATTERNS_FILE)
    trigger = _read_yaml(base / TRIGGER_PATTERNS_FILE)

    try:
        catalog = PatternCatalog(
            naming_rules=tuple(NamingRule.model_validate(r) for r in naming.get("rules", [])),
            loan_conventions=LoanConventions.model_validate(naming.get("loan_conventions", {})),
            validation_rule_patterns=tuple(
                DetectionRule.model_validate(r) for r in validation.get("rules", [])
            ),
            trigger_patterns=tuple(DetectionRule.model_validate(r) for r in trigger.get("rules", [])),
        )
    except ValidationError as e:
        raise CatalogError(f"Invalid pattern catalog definition in {base}: {e}") from e

    logger.debug(
        "Loaded pattern catalog: %d naming, %d validation rule, %d trigger rules",
        len(catalog.naming_rules),
        len(catalog.validation_rule_patterns),
        len(catalog.trigger_patterns),
    )
    return catalog
