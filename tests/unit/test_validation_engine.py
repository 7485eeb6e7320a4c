"""
Unit tests for the ValidationEngine.

Rows go through the real extractor so the engine sees exactly what a
submission would see.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pif_pipeline.core.extract.extractor import ExtractedRow, RowExtractor
from pif_pipeline.core.layout.pif_layout import DEFAULT_LAYOUT
from pif_pipeline.core.models import ProjectRecord
from pif_pipeline.core.rules import RuleConfigBuilder, ValidationEngine, rules_for_layout


@pytest.fixture
def engine() -> ValidationEngine:
    return ValidationEngine.for_layout(DEFAULT_LAYOUT, ("Approved", "Dispositioned"))


@pytest.fixture
def run(make_grid, engine):
    """Extract and validate rows built from field dictionaries."""
    def _run(rows, costs=None, site=None):
        grid = make_grid(rows, costs)
        extracted = RowExtractor().extract(grid.read_block(DEFAULT_LAYOUT))
        return engine.validate(extracted, site=site)

    return _run


class TestExampleScenarios:
    """End-to-end validation scenarios"""

    def test_clean_row_has_no_issues(self, run, valid_row):
        report = run([valid_row])
        assert report.is_clean
        assert report.rows_checked == 1
        assert report.summary() == "Validation passed: 1 row(s) checked, no errors."

    def test_blank_project_id_is_one_missing_field(self, run, valid_row):
        report = run([dict(valid_row, project_id="", change_type="New")])

        assert report.error_count == 1
        issue = report.issues[0]
        assert issue.error_type == "MissingRequiredField"
        assert issue.field_name == "project_id"
        assert issue.row_number == 4

    def test_duplicate_key_references_first_row(self, run, valid_row):
        report = run([valid_row, dict(valid_row)])

        assert report.error_count == 1
        issue = report.issues[0]
        assert issue.error_type == "DuplicateEntry"
        assert issue.row_number == 5
        assert "first seen on row 4" in issue.message
        assert "PIF001" in issue.message and "PRJ01" in issue.message

    def test_different_line_items_are_not_duplicates(self, run, valid_row):
        report = run([valid_row, dict(valid_row, line_item=2)])
        assert report.is_clean

    def test_approved_without_justification(self, run, valid_row):
        report = run([dict(valid_row, status="Approved", justification="")])

        assert report.error_count == 1
        assert report.issues[0].error_type == "BusinessRuleViolation"
        assert report.issues[0].field_name == "justification"

    def test_approved_with_justification_is_clean(self, run, valid_row):
        report = run([dict(valid_row, status="Approved", justification="Regulatory commitment")])
        assert report.is_clean


class TestRuleCoverage:
    """Tests for the individual rule categories through the engine"""

    def test_field_too_long(self, run, valid_row):
        report = run([dict(valid_row, site="TOOLONG")])
        assert [i.error_type for i in report.issues] == ["FieldTooLong"]
        assert report.issues[0].field_name == "site"

    def test_non_numeric_seg(self, run, valid_row):
        report = run([dict(valid_row, seg="abc")])
        assert [i.error_type for i in report.issues] == ["InvalidDataType"]

    def test_seg_out_of_range(self, run, valid_row):
        report = run([dict(valid_row, seg=100000)])
        assert [i.error_type for i in report.issues] == ["InvalidDataType"]
        assert "between" in report.issues[0].message

    def test_non_numeric_cost_cell(self, run, valid_row):
        report = run([valid_row], costs=[{"closings_current": [1, 2, "three"]}])
        assert report.error_count == 1
        issue = report.issues[0]
        assert issue.field_name == "closings_current"
        assert "AV='three'" in issue.message

    def test_invalid_line_item(self, run, valid_row):
        report = run([dict(valid_row, line_item="first")])
        assert [i.error_type for i in report.issues] == ["InvalidDataType"]
        assert report.issues[0].field_name == "line_item"

    def test_several_issues_on_one_row_in_rule_order(self, run, valid_row):
        report = run([dict(
            valid_row,
            project_id=None,
            change_type=None,
            site="ABCDEF",
            status="Approved",
            justification=None,
        )])

        assert [i.error_type for i in report.issues] == [
            "MissingRequiredField",
            "MissingRequiredField",
            "FieldTooLong",
            "BusinessRuleViolation",
        ]
        assert report.row_numbers() == [4]

    def test_issues_keep_scan_order(self, run, valid_row):
        report = run([
            dict(valid_row, entity_id="PIF001", project_id=""),
            dict(valid_row, entity_id="PIF002"),
            dict(valid_row, entity_id="PIF003", site="TOOLONG"),
        ])
        assert [i.row_number for i in report.issues] == [4, 6]
        assert report.counts_by_type()["MissingRequiredField"] == 1
        assert report.counts_by_type()["DuplicateEntry"] == 0

    def test_validation_is_idempotent(self, run, valid_row):
        rows = [valid_row, dict(valid_row), dict(valid_row, project_id="")]
        assert run(rows) == run(rows)

    def test_missing_project_id_skips_duplicate_check(self, run, valid_row):
        report = run([dict(valid_row, project_id=""), dict(valid_row, project_id="")])
        assert report.counts_by_type()["DuplicateEntry"] == 0
        assert report.counts_by_type()["MissingRequiredField"] == 2


class TestActiveSite:
    """Tests for rows whose own site differs from the active site"""

    def test_other_and_blank_site_rows_are_reported(self, run, valid_row):
        report = run(
            [valid_row, dict(valid_row, entity_id="PIF002", site="GGN"), dict(valid_row, entity_id="PIF003", site="")],
            site="ANO",
        )

        assert report.error_count == 2
        assert [i.row_number for i in report.issues] == [5, 6]
        assert all(i.error_type == "BusinessRuleViolation" and i.field_name == "site" for i in report.issues)
        assert "site GGN" in report.issues[0].message
        assert "no site" in report.issues[1].message

    def test_no_active_site_skips_the_check(self, run, valid_row):
        report = run([valid_row, dict(valid_row, entity_id="PIF002", site="GGN"), dict(valid_row, entity_id="PIF003", site="")])
        assert report.is_clean

    def test_site_match_ignores_case(self, run, valid_row):
        assert run([dict(valid_row, site="ano")], site="ANO").is_clean
        assert run([valid_row], site="ano").is_clean


class TestDuplicateProperty:
    """Property tests for duplicate detection"""

    @settings(max_examples=50, deadline=None)
    @given(st.lists(
        st.tuples(st.sampled_from(["PIF1", "PIF2"]), st.sampled_from(["P1", "P2"]), st.integers(1, 2)),
        max_size=12,
    ))
    def test_property_one_issue_per_repeated_key(self, keys):
        """Every occurrence after the first of a key is reported exactly once"""
        rows = [
            ExtractedRow(
                row_number=4 + i,
                record=ProjectRecord(entity_id=e, project_id=p, line_item=l, change_type="New"),
            )
            for i, (e, p, l) in enumerate(keys)
        ]
        report = ValidationEngine.for_layout().validate(rows)

        duplicates = [i for i in report.issues if i.error_type == "DuplicateEntry"]
        assert len(duplicates) == len(keys) - len(set(keys))


class TestEngineConfiguration:
    """Tests for building the engine from rule configurations"""

    def test_rule_summary(self):
        summary = ValidationEngine(rules_for_layout(DEFAULT_LAYOUT)).get_rule_summary()
        assert summary["rules_by_type"]["required_field"] == 2
        assert summary["rules_by_type"]["line_item"] == 1
        assert summary["rules_by_type"]["custom"] == 1
        # 6 cost series + seg, prior_year_spend, archive_flag, include_flag
        assert summary["rules_by_type"]["type_check"] == 10

    def test_unknown_rule_type(self):
        with pytest.raises(ValueError, match="Unknown rule type"):
            ValidationEngine([{"rule_name": "x", "rule_type": "regex", "field_name": "site"}])

    def test_disabled_rules_are_skipped(self):
        rules = RuleConfigBuilder().add_required_field("project_id").build()
        rules[0]["enabled"] = False
        engine = ValidationEngine(rules)
        assert engine.get_rule_summary()["total_rules"] == 0

    def test_bad_parameters_name_the_rule(self):
        rules = [{"rule_name": "site_len", "rule_type": "max_length", "field_name": "site", "parameters": {}}]
        with pytest.raises(ValueError, match="site_len"):
            ValidationEngine(rules)
