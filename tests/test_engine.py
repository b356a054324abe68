"""
Tests for the Traversal Engine — resilience, determinism, threshold boundary, and reports.
"""

import pytest

from hyplint.core.engine import Analyzer, FileOutcome
from hyplint.core.errors import ConfigurationError
from hyplint.models.diagnostic_models import PARSE_ERROR_RULE_ID, Severity
from hyplint.models.rule_models import RuleOverride
from hyplint.models.syntax_models import SourceFile, UnparsableFile


def test_unparsable_file_does_not_stop_the_run(
    registry, sample_rust_code, clean_rust_code, broken_rust_code
):
    analyzer = Analyzer(registry)
    report = analyzer.analyze_sources(
        [
            SourceFile(path="sample.rs", content=sample_rust_code),
            SourceFile(path="broken.rs", content=broken_rust_code),
            SourceFile(path="clean.rs", content=clean_rust_code),
        ]
    )
    assert report.files_analyzed == 3
    assert report.files_unparsable == 1

    parse_errors = [d for d in report.diagnostics if d.kind == "parse_error"]
    assert len(parse_errors) == 1
    assert parse_errors[0].rule_id == PARSE_ERROR_RULE_ID
    assert parse_errors[0].location.file == "broken.rs"
    assert parse_errors[0].severity == Severity.MEDIUM

    # Full diagnostic set for the parsable sample file
    sample_rules = sorted(d.rule_id for d in report.diagnostics if d.location.file == "sample.rs")
    assert sample_rules == ["E1001", "E1002", "E1103"]
    assert not [d for d in report.diagnostics if d.location.file == "clean.rs"]


def test_analyze_trees_accepts_frontend_events(registry, parser, clean_rust_code):
    analyzer = Analyzer(registry)
    report = analyzer.analyze_trees(
        [
            parser.parse(clean_rust_code, "clean.rs"),
            UnparsableFile(path="gen.rs", reason="macro expansion failed", line=4),
        ]
    )
    assert report.files_unparsable == 1
    assert report.diagnostics[0].message == "Failed to parse file: macro expansion failed"
    assert report.diagnostics[0].location.line == 4


@pytest.mark.parametrize("ifs, expected", [(9, 0), (10, 1)])
def test_threshold_boundary(registry, branchy, ifs, expected):
    # 9 ifs -> score 10 == threshold; 10 ifs -> score 11
    analyzer = Analyzer(registry)
    report = analyzer.analyze_sources([SourceFile(path="b.rs", content=branchy("edge", ifs))])
    assert len([d for d in report.diagnostics if d.rule_id == "E1101"]) == expected


def test_threshold_boundary_with_override(registry, branchy):
    analyzer = Analyzer(registry, overrides={"E1101": RuleOverride(parameters={"max_complexity": 3})})
    sources = [
        SourceFile(path="at.rs", content=branchy("at", 2)),
        SourceFile(path="over.rs", content=branchy("over", 3)),
    ]
    report = analyzer.analyze_sources(sources)
    flagged = [d.location.file for d in report.diagnostics if d.rule_id == "E1101"]
    assert flagged == ["over.rs"]


def test_determinism_across_runs_and_workers(
    registry, sample_rust_code, bank_transfer_code, bank_refund_code, branchy
):
    sources = [
        SourceFile(path="sample.rs", content=sample_rust_code),
        SourceFile(path="transfer.rs", content=bank_transfer_code),
        SourceFile(path="refund.rs", content=bank_refund_code),
        SourceFile(path="busy.rs", content=branchy("busy", 14)),
    ]
    runs = [
        Analyzer(registry).analyze_sources(sources),
        Analyzer(registry).analyze_sources(sources),
        Analyzer(registry, max_workers=4).analyze_sources(sources),
    ]
    dumps = [[d.model_dump_json() for d in r.diagnostics] for r in runs]
    assert dumps[0] == dumps[1] == dumps[2]
    assert len(dumps[0]) > 0


def test_report_is_sorted_and_summarized(registry, sample_rust_code, bank_transfer_code):
    analyzer = Analyzer(registry)
    report = analyzer.analyze_sources(
        [
            SourceFile(path="sample.rs", content=sample_rust_code),
            SourceFile(path="transfer.rs", content=bank_transfer_code),
        ]
    )
    keys = [d.sort_key() for d in report.diagnostics]
    assert keys == sorted(keys)
    assert report.highest_severity == report.diagnostics[0].severity == Severity.HIGH
    assert report.summary.total == len(report.diagnostics)
    assert report.summary.counts[Severity.LOW] == 1
    assert report.rules_executed == ["E1001", "E1002", "E1101", "E1103", "E1106", "E1506"]


def test_empty_run(registry):
    report = Analyzer(registry).analyze_sources([])
    assert report.diagnostics == []
    assert report.highest_severity is None
    assert report.files_analyzed == 0


def test_configuration_error_before_analysis(registry):
    with pytest.raises(ConfigurationError):
        Analyzer(registry, overrides={"E1103": RuleOverride(parameters={"max_parameters": "many"})})


def test_config_warnings_surface_in_report(registry):
    report = Analyzer(registry, overrides={"E7777": RuleOverride()}).analyze_sources([])
    assert report.config_warnings == ["Unknown rule id 'E7777' in configuration; ignored"]


def test_finalize_reduces_in_input_order(registry, parser, bank_transfer_code, bank_refund_code):
    analyzer = Analyzer(registry)
    outcomes = [
        analyzer.analyze_file(parser.parse(bank_refund_code, "refund.rs")),
        analyzer.analyze_file(parser.parse(bank_transfer_code, "transfer.rs")),
    ]
    assert all(isinstance(o, FileOutcome) for o in outcomes)
    assert len(outcomes[0].facts["E1506"]) == 1
    report = analyzer.finalize(outcomes)
    cycles = [d for d in report.diagnostics if d.rule_id == "E1506"]
    assert len(cycles) == 1


def test_test_items_skipped_unless_requested(registry):
    code = "#[test]\nfn t() {\n    panic!(\"boom\");\n}\n"
    skipped = Analyzer(registry).analyze_sources([SourceFile(path="t.rs", content=code)])
    checked = Analyzer(registry, check_tests=True).analyze_sources(
        [SourceFile(path="t.rs", content=code)]
    )
    assert skipped.diagnostics == []
    assert [d.rule_id for d in checked.diagnostics] == ["E1001"]
