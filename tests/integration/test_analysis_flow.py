"""解析フローのMCPプロトコル経由統合テスト。"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from fastmcp import Client

from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.server import create_server
from ncino_analyzer.services.metadata import MetadataExtractor

FIELDS = [
    {"apiName": "LLC_BI__Amount__c", "label": "Amount", "type": "Currency"},
    {"apiName": "loan_status", "label": "Status", "type": "Text"},
]
VALIDATION_RULES = [
    {"apiName": "Admin_Bypass", "active": True, "errorConditionFormula": "$User.Id == '005000000000001'"},
    {"apiName": "Amount_Required", "active": True, "errorConditionFormula": "ISBLANK(LLC_BI__Amount__c)"},
]
TRIGGERS = [
    {
        "name": "LLC_BI__LoanTrigger",
        "active": True,
        "content": "if (!Bypass_Settings__c.Disable_Loan__c) { LoanHandler.run(); }",
    }
]


@pytest.fixture
def mcp_server(tmp_path: Path) -> object:
    """テスト用MCPサーバー。"""
    config = AnalyzerConfig(
        config_dir=Path(__file__).parent.parent.parent / "config",
        output_dir=tmp_path / "output",
    )
    return create_server(config)


def parse_tool_result(result: object) -> dict:
    """CallToolResultからJSONデータを抽出する。"""
    content = result.content  # type: ignore[union-attr]
    assert len(content) > 0
    return json.loads(content[0].text)  # type: ignore[union-attr]


class TestRegistration:
    async def test_tools_are_registered(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            tools = await client.list_tools()
            tool_names = {t.name for t in tools}
            assert tool_names >= {
                "analyze_naming_conventions",
                "analyze_validation_rules",
                "analyze_apex_triggers",
                "generate_report",
                "extract_metadata",
            }

    async def test_resources_are_registered(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            resources = await client.list_resources()
            resource_uris = {str(r.uri) for r in resources}
            assert "ncino://catalog/naming-rules" in resource_uris
            assert "ncino://catalog/validation-rule-patterns" in resource_uris
            assert "ncino://catalog/trigger-patterns" in resource_uris

    async def test_prompts_are_registered(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            prompts = await client.list_prompts()
            prompt_names = {p.name for p in prompts}
            assert "basic_analysis" in prompt_names
            assert "security_analysis" in prompt_names


class TestAnalysisToolsViaMCP:
    async def test_analyze_naming_conventions(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_naming_conventions", {"fields": FIELDS})
            data = parse_tool_result(result)

        assert data["results"]["total_field_count"] == 2
        assert data["summary"]["critical_violations"] == 1
        assert data["message"] == "Analyzed 2 fields. Compliance: 0%"

    async def test_analyze_naming_conventions_from_file(self, mcp_server: object, tmp_path: Path) -> None:
        path = tmp_path / "fields.json"
        path.write_text(json.dumps({"fields": FIELDS}))
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_naming_conventions", {"source": str(path)})
            data = parse_tool_result(result)

        assert data["results"]["total_field_count"] == 2

    async def test_analyze_naming_conventions_without_input(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_naming_conventions", {})
            data = parse_tool_result(result)

        assert data["error"] == "InvalidInputError"
        assert "Field data must be provided as an array" in data["message"]

    async def test_source_path_traversal_is_rejected(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_validation_rules", {"source": "../rules.json"})
            data = parse_tool_result(result)

        assert data["error"] == "ValueError"
        assert "Invalid file path" in data["message"]

    async def test_unsupported_source_format(self, mcp_server: object, tmp_path: Path) -> None:
        path = tmp_path / "rules.txt"
        path.write_text("Admin_Bypass")
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_validation_rules", {"source": str(path)})
            data = parse_tool_result(result)

        assert data["error"] == "UnsupportedFormatError"

    async def test_analyze_validation_rules(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_validation_rules", {"validation_rules": VALIDATION_RULES})
            data = parse_tool_result(result)

        assert data["results"]["with_bypass"] == 1
        assert data["results"]["security_score"] == 80
        assert [f["identifier"] for f in data["refactoring_priorities"]] == ["Admin_Bypass"]
        assert data["recommendations"][-1] == "Immediately refactor validation rules with hardcoded User IDs"
        assert len(data["recommendations"]) == 4
        assert data["message"] == "Analyzed 2 validation rules. Security score: 80/100"

    async def test_analyze_apex_triggers(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("analyze_apex_triggers", {"triggers": TRIGGERS})
            data = parse_tool_result(result)

        finding = data["results"]["bypass_patterns"][0]
        assert finding["identifier"] == "LLC_BI__LoanTrigger"
        assert [p["name"] for p in finding["patterns"]] == ["Custom setting bypass"]
        assert data["results"]["security_score"] == 68
        assert (
            "Implement a centralized trigger handler framework with consistent bypass logic"
            in data["recommendations"]
        )


class TestGenerateReportViaMCP:
    async def test_generate_report(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool(
                "generate_report",
                {"fields": FIELDS, "validation_rules": VALIDATION_RULES, "triggers": TRIGGERS},
            )
            data = parse_tool_result(result)

        report = data["report"]
        assert data["errors"] == {}
        assert report["overall_score"]["component_scores"] == {
            "naming_conventions": 0,
            "validation_rules": 80,
            "triggers": 68,
        }
        # (0 * 1 + 80 * 1.5 + 68 * 1.5) / 4 = 55.5
        assert report["overall_score"]["score"] == 56
        assert report["overall_score"]["rating"] == "Poor"
        assert data["markdown"].startswith("## Executive Summary")
        assert "### Apex Trigger Security Score: 68/100" in data["markdown"]

    async def test_generate_report_with_toggles(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool(
                "generate_report",
                {
                    "fields": FIELDS,
                    "validation_rules": VALIDATION_RULES,
                    "include_naming": False,
                    "include_validation_rules": True,
                },
            )
            data = parse_tool_result(result)

        assert data["report"]["overall_score"]["component_scores"]["naming_conventions"] is None
        assert data["report"]["overall_score"]["score"] == 80

    async def test_generate_report_records_domain_errors(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool(
                "generate_report",
                {"fields": FIELDS, "triggers": [{"name": "Broken", "active": "sometimes"}]},
            )
            data = parse_tool_result(result)

        assert set(data["errors"]) == {"triggers"}
        assert data["report"]["detailed_findings"]["naming_conventions"] is not None
        assert data["report"]["detailed_findings"]["triggers"] is None

    async def test_generate_report_without_metadata(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("generate_report", {})
            data = parse_tool_result(result)

        assert data["error"] == "NoMetadataError"


class TestExtractMetadataViaMCP:
    async def test_cli_failure_is_reported(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            with patch.object(MetadataExtractor, "_run_subprocess", new_callable=AsyncMock) as mock_proc:
                mock_proc.return_value = (1, "", "INVALID_SESSION_ID: Session expired or invalid")
                result = await client.call_tool(
                    "extract_metadata",
                    {"instance_url": "https://example.my.salesforce.com", "access_token": "expired"},
                )
                data = parse_tool_result(result)

        assert data["error"] == "SalesforceCliError"
        assert "org login" in data["message"]

    async def test_extracts_empty_org(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            with patch.object(MetadataExtractor, "_run_subprocess", new_callable=AsyncMock) as mock_proc:
                mock_proc.return_value = (0, "", "")
                result = await client.call_tool(
                    "extract_metadata",
                    {
                        "instance_url": "https://example.my.salesforce.com",
                        "access_token": "token",
                        "object_name": "LLC_BI__Loan__c",
                    },
                )
                data = parse_tool_result(result)

        assert data["fields"] == []
        assert data["triggers"] == []
        assert data["message"] == "Extracted 0 fields, 0 validation rules and 0 triggers"


class TestCatalogResourcesViaMCP:
    async def test_read_naming_rules(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            contents = await client.read_resource("ncino://catalog/naming-rules")
            data = yaml.safe_load(contents[0].text)  # type: ignore[union-attr]

        assert "rules" in data
        assert "loan_conventions" in data

    async def test_read_trigger_patterns(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            contents = await client.read_resource("ncino://catalog/trigger-patterns")
            data = yaml.safe_load(contents[0].text)  # type: ignore[union-attr]

        assert [r["name"] for r in data["rules"]] == [
            "Feature management permission check",
            "Custom setting bypass",
            "Hardcoded User ID check",
            "Profile name check",
        ]


class TestPromptsViaMCP:
    async def test_basic_analysis_default_focus(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.get_prompt("basic_analysis", {})
            text = result.messages[0].content.text  # type: ignore[union-attr]
        assert "generate_report" in text
        assert "Naming convention compliance" in text

    async def test_basic_analysis_custom_focus(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.get_prompt("basic_analysis", {"focus": "Loan field prefixes"})
            text = result.messages[0].content.text  # type: ignore[union-attr]
        assert text.endswith("Loan field prefixes")

    async def test_security_analysis(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.get_prompt("security_analysis", {})
            text = result.messages[0].content.text  # type: ignore[union-attr]
        assert "refactoring_priorities" in text
