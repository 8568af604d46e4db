"""パターンカタログのMCPリソース定義。"""

from pathlib import Path

import yaml
from fastmcp import FastMCP

from ncino_analyzer.analyzers.catalog import (
    NAMING_RULES_FILE,
    TRIGGER_PATTERNS_FILE,
    VALIDATION_RULE_PATTERNS_FILE,
    patterns_dir,
)


def _dump_yaml(path: Path) -> str:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return yaml.dump(data, allow_unicode=True, default_flow_style=False, sort_keys=False)


def register_catalog_resources(mcp: FastMCP, config_dir: Path) -> None:
    """パターンカタログのMCPリソースを登録する。"""
    base = patterns_dir(config_dir)

    @mcp.resource("ncino://catalog/naming-rules")
    async def naming_rules() -> str:
        """項目API名の命名規則を取得する。

        汎用規則 (接頭辞・先頭文字) と、Loan関連項目にのみ適用される
        標準・カスタム・禁止パターンを返します。
        """
        return _dump_yaml(base / NAMING_RULES_FILE)

    @mcp.resource("ncino://catalog/validation-rule-patterns")
    async def validation_rule_patterns() -> str:
        """入力規則のバイパス検出パターンを取得する。"""
        return _dump_yaml(base / VALIDATION_RULE_PATTERNS_FILE)

    @mcp.resource("ncino://catalog/trigger-patterns")
    async def trigger_patterns() -> str:
        """Apexトリガーのバイパス検出パターンを取得する。"""
        return _dump_yaml(base / TRIGGER_PATTERNS_FILE)
