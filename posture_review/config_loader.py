"""
Parse the Config sheet/table into validated aggregation rules.

Three outcomes per config row:
- skipped (warning): disabled, or SheetName/AppIdHeaders empty
- error: strategy-specific validation failed; the scan continues so every
  error gets reported, then the whole load fails
- accepted: becomes an AggregationRule
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from posture_review.coercion import is_na_scalar, to_display_string
from posture_review.errors import ConfigError
from posture_review.headers import find_column_index, split_header_list
from posture_review.rules import AggregationRule, Strategy
from posture_review.workbook import Grid


# -----------------------
# Config header aliases
# -----------------------

CONFIG_HEADERS: Dict[str, List[str]] = {
    "enabled": ["IsEnabled", "Enabled"],
    "sheet_name": ["SheetName", "Sheet Name"],
    "app_id_headers": ["AppIdHeaders", "App ID Headers", "Application ID Headers"],
    "data_headers": ["DataHeadersToPull", "Data Headers"],
    "aggregation_type": ["AggregationType", "Aggregation Type"],
    "value_header": ["ValueHeaderForAggregation", "Value Header"],
    "master_fields": ["MasterAppFieldsToPull", "Master Fields"],
    # legacy layout: Count rules named their column here
    "count_by": ["CountByHeader", "Count By"],
}

ESSENTIAL_CONFIG_FIELDS = ["enabled", "sheet_name", "app_id_headers", "aggregation_type"]

ENABLED_TRUE = "TRUE"


@dataclass
class ConfigLoadResult:
    rules: List[AggregationRule]
    warnings: List[str] = field(default_factory=list)
    rows_scanned: int = 0


def resolve_config_columns(header_row: Sequence[Any]) -> Dict[str, Optional[int]]:
    return {key: find_column_index(header_row, aliases) for key, aliases in CONFIG_HEADERS.items()}


def _cell_text(row: Sequence[Any], idx: Optional[int]) -> str:
    if idx is None or idx >= len(row):
        return ""
    v = row[idx]
    if is_na_scalar(v):
        return ""
    return to_display_string(v).strip()


def _validate_rule(rule: AggregationRule, where: str) -> List[str]:
    """
    Hard errors for one parsed rule (empty list = valid).
    """
    errors: List[str] = []
    strategy = rule.strategy

    if strategy.needs_data_headers and not rule.data_headers:
        errors.append(f"{where}: AggregationType \"{strategy.value}\" requires at least one header in 'DataHeadersToPull'.")

    if strategy.is_numeric:
        if not rule.value_header:
            errors.append(f"{where}: AggregationType \"{strategy.value}\" requires 'ValueHeaderForAggregation'.")
        elif rule.value_header not in rule.data_headers:
            errors.append(
                f"{where}: 'ValueHeaderForAggregation' (\"{rule.value_header}\") must also be listed in 'DataHeadersToPull'."
            )

    return errors


def load_config(grid: Optional[Grid], logger: logging.Logger) -> ConfigLoadResult:
    """
    Build rules from the config grid (row 0 = header).

    Raises ConfigError when the grid is missing/empty, an essential column is
    absent, or any enabled row fails validation.
    """
    if grid is None:
        raise ConfigError("Config sheet not found.")
    if len(grid) <= 1:
        raise ConfigError("Config sheet/table is empty (header only or no rows).")

    header_row = grid[0]
    cols = resolve_config_columns(header_row)

    missing = [CONFIG_HEADERS[k][0] for k in ESSENTIAL_CONFIG_FIELDS if cols[k] is None]
    if missing:
        msg = f"Missing essential config columns: {missing}"
        logger.error(msg)
        raise ConfigError(msg)

    for k in ("data_headers", "value_header", "master_fields", "count_by"):
        if cols[k] is None:
            logger.debug(f"Optional config column not configured: {CONFIG_HEADERS[k][0]}")

    max_idx = max(i for i in cols.values() if i is not None)

    rules: List[AggregationRule] = []
    warnings: List[str] = []
    errors: List[str] = []
    scanned = 0

    for i in range(1, len(grid)):
        row = grid[i]
        row_no = i + 1

        # malformed / blank rows are not worth a message
        if len(row) <= max_idx:
            continue
        if all(is_na_scalar(v) or str(v).strip() == "" for v in row):
            continue
        scanned += 1

        enabled = _cell_text(row, cols["enabled"]).upper()
        if enabled != ENABLED_TRUE:
            msg = f"Warning: Config (Row {row_no}): skipping row, IsEnabled is \"{enabled}\" (not TRUE)."
            warnings.append(msg)
            logger.warning(msg)
            continue

        sheet_name = _cell_text(row, cols["sheet_name"])
        app_id_raw = _cell_text(row, cols["app_id_headers"])
        if not sheet_name or not app_id_raw:
            msg = f"Warning: Config (Row {row_no}): skipping row due to missing SheetName or AppIdHeaders."
            warnings.append(msg)
            logger.warning(msg)
            continue

        app_id_headers = split_header_list(app_id_raw)
        if not app_id_headers:
            msg = f"Warning: Config (Row {row_no}, Sheet: {sheet_name}): AppIdHeaders contains no valid header names. Skipping."
            warnings.append(msg)
            logger.warning(msg)
            continue

        data_headers = split_header_list(_cell_text(row, cols["data_headers"]))
        master_fields = split_header_list(_cell_text(row, cols["master_fields"]))
        value_header = _cell_text(row, cols["value_header"]) or None

        agg_raw = _cell_text(row, cols["aggregation_type"])
        strategy = Strategy.parse(agg_raw)
        if strategy is None:
            msg = f"Warning: Config (Row {row_no}, Sheet: {sheet_name}): Invalid AggregationType \"{agg_raw}\". Defaulting to \"List\"."
            warnings.append(msg)
            logger.warning(msg)
            strategy = Strategy.LIST

        count_by = _cell_text(row, cols["count_by"])
        if strategy == Strategy.COUNT and not data_headers and count_by:
            data_headers = [count_by]
            msg = f"Warning: Config (Row {row_no}, Sheet: {sheet_name}): using legacy CountByHeader \"{count_by}\" as the data header."
            warnings.append(msg)
            logger.warning(msg)

        rule = AggregationRule(
            source_name=sheet_name,
            entity_id_headers=tuple(app_id_headers),
            data_headers=tuple(data_headers),
            strategy=strategy,
            value_header=value_header,
            passthrough_attributes=tuple(master_fields),
            config_row=row_no,
        )

        where = f"Config (Row {row_no}, Sheet \"{sheet_name}\")"
        row_errors = _validate_rule(rule, where)
        if row_errors:
            for e in row_errors:
                logger.error(f"Error: {e}")
            errors.extend(row_errors)
            continue

        if strategy == Strategy.UNIQUE_LIST and len(data_headers) > 1:
            msg = (
                f"Warning: {where}: AggregationType \"UniqueList\" uses only the first header "
                f"in 'DataHeadersToPull' (\"{data_headers[0]}\"). Others ignored."
            )
            warnings.append(msg)
            logger.warning(msg)

        rules.append(rule)

    if errors:
        raise ConfigError(f"Config invalid: {len(errors)} error(s).", errors)

    if not rules:
        msg = "No valid enabled configurations found; summary will be empty."
        warnings.append(msg)
        logger.warning(msg)

    logger.info(f"Loaded {len(rules)} configuration(s) from {scanned} config row(s).")
    return ConfigLoadResult(rules=rules, warnings=warnings, rows_scanned=scanned)


def passthrough_attributes(rules: Sequence[AggregationRule]) -> List[str]:
    """
    Master fields requested by any rule, first request wins the position.
    """
    seen: List[str] = []
    for rule in rules:
        for name in rule.passthrough_attributes:
            if name not in seen:
                seen.append(name)
    return seen
