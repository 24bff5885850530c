from __future__ import annotations

import pytest

from posture_review.config_loader import load_config, passthrough_attributes
from posture_review.errors import ConfigError
from posture_review.rules import Strategy

from conftest import CONFIG_HEADER


def _grid(*rows):
    return [list(CONFIG_HEADER)] + [list(r) for r in rows]


def test_enabled_row_becomes_rule(logger):
    result = load_config(_grid([True, "Patches", "UniqueID", "Severity", "Count", None, None]), logger)

    assert len(result.rules) == 1
    rule = result.rules[0]
    assert rule.source_name == "Patches"
    assert rule.entity_id_headers == ("UniqueID",)
    assert rule.data_headers == ("Severity",)
    assert rule.strategy == Strategy.COUNT
    assert rule.value_header is None
    assert rule.config_row == 2


def test_header_aliases_are_accepted(logger):
    grid = [
        ["Enabled", "Sheet Name", "Application ID Headers", "Data Headers", "Aggregation Type", "Value Header", "Master Fields"],
        ["true", "Costs", "App ID, UniqueID", "Cost, Region", "sum", "Cost", "Owner, Tier"],
    ]
    rule = load_config(grid, logger).rules[0]

    assert rule.strategy == Strategy.SUM
    assert rule.entity_id_headers == ("App ID", "UniqueID")
    assert rule.data_headers == ("Cost", "Region")
    assert rule.value_header == "Cost"
    assert rule.passthrough_attributes == ("Owner", "Tier")


def test_disabled_and_incomplete_rows_are_skipped_with_warnings(logger):
    result = load_config(
        _grid(
            ["FALSE", "Patches", "UniqueID", "Severity", "List", None, None],
            ["yes", "Patches", "UniqueID", "Severity", "List", None, None],
            [True, "", "UniqueID", "Severity", "List", None, None],
            [True, "Patches", " , ", "Severity", "List", None, None],
            [True, "Tags", "UniqueID", "Tag", "UniqueList", None, None],
        ),
        logger,
    )

    assert [r.source_name for r in result.rules] == ["Tags"]
    assert len(result.warnings) == 4


def test_blank_and_short_rows_are_skipped_silently(logger):
    grid = _grid(
        [None, None, None, None, None, None, None],
        [True, "Patches", "UniqueID", "Severity", "List", None, None],
    )
    grid.append([True, "Short"])
    result = load_config(grid, logger)

    assert [r.source_name for r in result.rules] == ["Patches"]
    assert result.warnings == []
    assert result.rows_scanned == 1


def test_unknown_strategy_falls_back_to_list(logger):
    result = load_config(_grid([True, "Patches", "UniqueID", "Severity", "Median", None, None]), logger)

    assert result.rules[0].strategy == Strategy.LIST
    assert any("Median" in w for w in result.warnings)


def test_strategy_parse_is_case_insensitive():
    assert Strategy.parse("uniquelist") == Strategy.UNIQUE_LIST
    assert Strategy.parse("UniqueList") == Strategy.UNIQUE_LIST
    assert Strategy.parse(" AVERAGE ") == Strategy.AVERAGE
    assert Strategy.parse("Concatenate") is None
    assert Strategy.parse("") is None


def test_missing_essential_column_is_fatal(logger):
    grid = [
        ["IsEnabled", "SheetName", "AppIdHeaders", "DataHeadersToPull"],
        [True, "Patches", "UniqueID", "Severity"],
    ]
    with pytest.raises(ConfigError) as exc:
        load_config(grid, logger)
    assert "AggregationType" in str(exc.value)


def test_empty_or_missing_config_is_fatal(logger):
    with pytest.raises(ConfigError):
        load_config(None, logger)
    with pytest.raises(ConfigError):
        load_config([list(CONFIG_HEADER)], logger)


def test_every_row_error_is_collected_before_failing(logger):
    grid = _grid(
        [True, "Patches", "UniqueID", "", "List", None, None],
        [True, "Costs", "UniqueID", "Cost", "Sum", None, None],
        [True, "Costs", "UniqueID", "Cost", "Max", "Price", None],
        [True, "Tags", "UniqueID", "Tag", "UniqueList", None, None],
    )
    with pytest.raises(ConfigError) as exc:
        load_config(grid, logger)

    errors = exc.value.errors
    assert len(errors) == 3
    assert "Row 2" in errors[0]
    assert "ValueHeaderForAggregation" in errors[1]
    assert "Price" in errors[2]


def test_unique_list_with_several_headers_only_warns(logger):
    result = load_config(_grid([True, "Tags", "UniqueID", "Tag, Other", "UniqueList", None, None]), logger)

    assert result.rules[0].data_headers == ("Tag", "Other")
    assert any("only the first header" in w for w in result.warnings)


def test_legacy_count_by_header(logger):
    grid = [
        ["IsEnabled", "SheetName", "AppIdHeaders", "DataHeadersToPull", "AggregationType", "CountByHeader"],
        [True, "Patches", "UniqueID", "", "Count", "Severity"],
    ]
    rule = load_config(grid, logger).rules[0]

    assert rule.strategy == Strategy.COUNT
    assert rule.data_headers == ("Severity",)


def test_no_enabled_rules_is_not_an_error(logger):
    result = load_config(_grid(["FALSE", "Patches", "UniqueID", "Severity", "List", None, None]), logger)

    assert result.rules == []
    assert any("No valid enabled" in w for w in result.warnings)


def test_passthrough_attributes_keep_first_request_order(logger, make_rule):
    rules = [
        make_rule(passthrough=("Owner", "Tier")),
        make_rule(source_name="Costs", passthrough=("Tier", "Region", "Owner")),
    ]
    assert passthrough_attributes(rules) == ["Owner", "Tier", "Region"]
