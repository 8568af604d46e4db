"""解析のMCPプロンプト定義。"""

from fastmcp import FastMCP

_DEFAULT_FOCUS = (
    "- Naming convention compliance\n"
    "- Security bypass patterns\n"
    "- Overall configuration health\n"
)


def register_analysis_prompts(mcp: FastMCP) -> None:
    """解析関連のMCPプロンプトを登録する。"""

    @mcp.prompt()
    async def basic_analysis(focus: str | None = None) -> str:
        """Salesforce/nCino構成の基本解析を行うためのプロンプト。

        命名規則違反とバイパスパターンを解析し、エグゼクティブサマリー・
        問題一覧・推奨事項・総合スコアを提示するフローをガイドします。

        Args:
            focus: 重点的に確認したい観点 (任意)。
        """
        return (
            "You are a Salesforce/nCino configuration expert who specializes in analyzing "
            "metadata for naming convention violations and security issues.\n\n"
            "## Steps\n\n"
            "1. Obtain the metadata: use `extract_metadata` for a live org, or ask for "
            "field, validation rule and trigger files.\n"
            "2. Run `generate_report` with the fields, validation rules and triggers.\n"
            "3. Use `analyze_naming_conventions`, `analyze_validation_rules` or "
            "`analyze_apex_triggers` when a single area needs a closer look.\n"
            "4. The rule definitions are available as the `ncino://catalog/*` resources.\n\n"
            "## Report\n\n"
            "1. Executive summary with key findings\n"
            "2. Detailed list of issues found, grouped by type\n"
            "3. Prioritized recommendations for improvement\n"
            "4. Overall configuration health score\n\n"
            "## Focus\n\n"
            f"{focus or _DEFAULT_FOCUS}"
        )

    @mcp.prompt()
    async def security_analysis() -> str:
        """入力規則・トリガーのセキュリティ解析を行うためのプロンプト。

        バイパスパターンとハードコードされたIDに重点を置き、
        重大度・リスク・修正方法を含む是正計画を提示するフローをガイドします。
        """
        return (
            "You are a Salesforce/nCino security expert specializing in detecting bypass "
            "patterns and security vulnerabilities in configurations.\n\n"
            "## Steps\n\n"
            "1. Run `analyze_validation_rules` and `analyze_apex_triggers` on the provided metadata.\n"
            "2. Start from `refactoring_priorities`: High severity findings come first.\n"
            "3. Check `security_score` for each component.\n\n"
            "## Identify\n\n"
            "- All bypass patterns in validation rules and triggers\n"
            "- Hardcoded IDs and credentials\n"
            "- Profile-based or user-based security bypasses\n"
            "- Other security vulnerabilities\n\n"
            "## For each issue, provide\n\n"
            "1. Severity level\n"
            "2. Explanation of the security risk\n"
            "3. Recommended fix\n"
        )
