"""AnalysisServiceのユニットテスト。"""

import json
from pathlib import Path

import pytest

from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.models.errors import CatalogError, NoMetadataError
from ncino_analyzer.models.metadata import MetadataBundle
from ncino_analyzer.models.report import AnalysisOptions
from ncino_analyzer.services.analysis import AnalysisService, create_analysis_service

FIELDS = [{"apiName": "LLC_BI__Amount__c"}, {"apiName": "loan_status"}]
VALIDATION_RULES = [
    {"apiName": "Admin_Bypass", "active": True, "errorConditionFormula": "$Profile.Name != 'System Administrator'"},
    {"apiName": "Amount_Required", "active": True, "errorConditionFormula": "ISBLANK(LLC_BI__Amount__c)"},
]
TRIGGERS = [{"name": "LoanTrigger", "active": True, "content": "if (u.Id == '0051234567890AB') { return; }"}]


class TestRunAnalysis:
    def test_requires_metadata(self, analysis_service: AnalysisService) -> None:
        with pytest.raises(NoMetadataError, match="No metadata provided for analysis"):
            analysis_service.run_analysis(MetadataBundle())

    def test_all_domains(self, analysis_service: AnalysisService) -> None:
        run = analysis_service.run_analysis(
            MetadataBundle(fields=FIELDS, validation_rules=VALIDATION_RULES, triggers=TRIGGERS)
        )
        assert run.errors == {}
        assert run.naming is not None
        assert run.validation_rules is not None
        assert run.triggers is not None
        assert run.validation_rules.security_score == 83
        assert run.triggers.security_score == 65
        assert run.report.overall_score.component_scores.triggers == 65

    def test_empty_domain_is_analyzed(self, analysis_service: AnalysisService) -> None:
        run = analysis_service.run_analysis(MetadataBundle(validation_rules=[]))
        assert run.validation_rules is not None
        assert run.validation_rules.security_score == 100
        assert run.naming is None

    def test_invalid_domain_does_not_block_others(self, analysis_service: AnalysisService) -> None:
        run = analysis_service.run_analysis(
            MetadataBundle(
                fields=FIELDS,
                validation_rules=[{"apiName": "Broken", "active": "maybe"}],
                triggers=TRIGGERS,
            )
        )
        assert set(run.errors) == {"validation_rules"}
        assert "Validation rules data must be provided as an array" in run.errors["validation_rules"]
        assert run.validation_rules is None
        assert run.naming is not None
        assert run.triggers is not None
        assert run.report.detailed_findings.validation_rules is None

    def test_options_skip_domains(self, analysis_service: AnalysisService) -> None:
        run = analysis_service.run_analysis(
            MetadataBundle(fields=FIELDS, validation_rules=VALIDATION_RULES, triggers=TRIGGERS),
            AnalysisOptions(naming_conventions=False, triggers=False),
        )
        assert run.naming is None
        assert run.triggers is None
        assert run.validation_rules is not None
        assert run.report.overall_score.score == 83


class TestLoadSource:
    def test_load_source(self, analysis_service: AnalysisService, tmp_path: Path) -> None:
        path = tmp_path / "fields.json"
        path.write_text(json.dumps(FIELDS))
        assert analysis_service.load_source(str(path), "fields") == FIELDS

    @pytest.mark.parametrize("source", ["../fields.json", "~/fields.json", "data/../../etc/passwd"])
    def test_rejects_traversal(self, analysis_service: AnalysisService, source: str) -> None:
        with pytest.raises(ValueError, match="Invalid file path"):
            analysis_service.load_source(source, "fields")

    def test_csv_with_blank_active_cell(self, analysis_service: AnalysisService, tmp_path: Path) -> None:
        path = tmp_path / "rules.csv"
        path.write_text(
            "apiName,active,errorConditionFormula\n"
            "Admin_Bypass,,$User.Id == '005000000000001'\n"
            "Amount_Required,true,ISBLANK(LLC_BI__Amount__c)\n"
        )
        bundle = analysis_service.load_bundle(validation_rules_path=path)
        run = analysis_service.run_analysis(bundle)

        assert run.errors == {}
        assert run.validation_rules is not None
        assert run.validation_rules.with_bypass == 1
        assert run.validation_rules.bypass_patterns[0].active is False

    def test_load_bundle(self, analysis_service: AnalysisService, tmp_path: Path) -> None:
        fields_path = tmp_path / "fields.json"
        fields_path.write_text(json.dumps(FIELDS))
        bundle = analysis_service.load_bundle(fields_path=fields_path)
        assert bundle.fields == FIELDS
        assert bundle.validation_rules is None
        assert bundle.triggers is None


class TestWriteReport:
    def test_writes_markdown_and_json(self, analysis_service: AnalysisService, tmp_path: Path) -> None:
        run = analysis_service.run_analysis(MetadataBundle(fields=FIELDS, validation_rules=VALIDATION_RULES))
        output_dir = tmp_path / "reports"
        markdown_path, json_path = analysis_service.write_report(run, output_dir)

        assert markdown_path == output_dir / "comprehensive_report.md"
        assert markdown_path.read_text(encoding="utf-8").startswith("## Executive Summary")

        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["report"]["overall_score"]["score"] == run.report.overall_score.score
        assert data["errors"] == {}
        assert data["triggers"] is None


class TestCreateAnalysisService:
    def test_uses_bundled_catalog(self, analyzer_config: AnalyzerConfig) -> None:
        service = create_analysis_service(analyzer_config)
        run = service.run_analysis(MetadataBundle(triggers=TRIGGERS))
        assert run.triggers is not None
        assert run.triggers.with_bypass == 1

    def test_missing_catalog(self, tmp_path: Path) -> None:
        with pytest.raises(CatalogError):
            create_analysis_service(AnalyzerConfig(config_dir=tmp_path))
