"""オフライン解析のコマンドラインインターフェース。"""

import argparse
import logging
import sys
from pathlib import Path

from ncino_analyzer.config import AnalyzerConfig
from ncino_analyzer.models.errors import AnalyzerError
from ncino_analyzer.models.report import AnalysisOptions
from ncino_analyzer.services.analysis import create_analysis_service

logger = logging.getLogger(__name__)


def build_parser(config: AnalyzerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ncino-analyzer",
        description="Analyze Salesforce/nCino metadata for naming convention and bypass pattern issues.",
    )
    parser.add_argument("--fields", type=Path, help="Field metadata file (.json, .xml or .csv)")
    parser.add_argument(
        "--validation-rules", type=Path, help="Validation rule metadata file (.json, .xml or .csv)"
    )
    parser.add_argument("--triggers", type=Path, help="Trigger metadata file (.json or .trigger)")
    parser.add_argument("--source-dir", type=Path, help="SFDX source directory retrieved from the org")
    parser.add_argument(
        "--object",
        default=config.default_object,
        help=f"Object API name used with --source-dir (default: {config.default_object})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.output_dir,
        help="Directory for comprehensive_report.md/.json",
    )
    parser.add_argument("--skip-naming", action="store_true", help="Skip the naming convention analysis")
    parser.add_argument("--skip-validation", action="store_true", help="Skip the validation rule analysis")
    parser.add_argument("--skip-triggers", action="store_true", help="Skip the Apex trigger analysis")
    parser.add_argument("--log-level", default=config.log_level, help="Logging level (default: %(default)s)")
    return parser


def main(argv: list[str] | None = None) -> int:
    config = AnalyzerConfig()
    args = build_parser(config).parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        service = create_analysis_service(config)
        if args.source_dir is not None:
            bundle = service.load_source_tree(args.source_dir, args.object)
        else:
            bundle = service.load_bundle(args.fields, args.validation_rules, args.triggers)

        run = service.run_analysis(
            bundle,
            AnalysisOptions(
                naming_conventions=not args.skip_naming,
                validation_rules=not args.skip_validation,
                triggers=not args.skip_triggers,
            ),
        )
        paths = service.write_report(run, args.output_dir)
    except (AnalyzerError, OSError) as e:
        logger.error("%s", e)
        return 1

    for domain, message in run.errors.items():
        logger.warning("%s analysis failed: %s", domain, message)
    print(paths[0])
    return 0


if __name__ == "__main__":
    sys.exit(main())
