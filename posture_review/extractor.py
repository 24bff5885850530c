"""
Pull per-application values out of one posture sheet for one rule.

Only ids present in the master registry are kept (join filter). Every
problem here is a rule-level skip: the rule contributes nothing, the run
goes on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Container, Dict, List, Optional

from posture_review.coercion import to_display_string
from posture_review.headers import find_column_index
from posture_review.rules import AggregationRule, EntityAttributeStore
from posture_review.workbook import Grid


STATUS_EXTRACTED = "extracted"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class RuleReport:
    source_name: str
    strategy: str
    config_row: Optional[int]
    status: str = STATUS_SKIPPED
    rows_scanned: int = 0
    rows_matched: int = 0
    values_stored: int = 0
    resolved_headers: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def for_rule(cls, rule: AggregationRule) -> "RuleReport":
        return cls(source_name=rule.source_name, strategy=rule.strategy.value, config_row=rule.config_row)

    def skip(self, msg: str, logger: logging.Logger) -> "RuleReport":
        self.status = STATUS_SKIPPED
        self.warnings.append(msg)
        logger.warning(msg)
        return self


def resolve_data_columns(
    rule: AggregationRule,
    header_row: List[Any],
    report: RuleReport,
    logger: logging.Logger,
) -> Optional[Dict[str, int]]:
    """
    header name -> column index for every header the rule needs.

    Returns None when a critical header is missing (rule must be skipped).
    Non-critical misses are warned about and left out.
    """
    critical = set(rule.critical_headers())
    resolved: Dict[str, int] = {}
    critical_missing: List[str] = []

    for header in rule.needed_headers():
        idx = find_column_index(header_row, [header])
        if idx is not None:
            resolved[header] = idx
            continue
        msg = f"Warning: Data column \"{header}\" not found in sheet \"{rule.source_name}\"."
        report.warnings.append(msg)
        logger.warning(msg)
        if header in critical:
            critical_missing.append(header)

    if critical_missing:
        msg = f"Error: Critical header(s) {critical_missing} missing for {rule.strategy.value} in sheet \"{rule.source_name}\". Skipping sheet."
        report.warnings.append(msg)
        logger.error(msg)
        return None

    # second guard: everything the strategy reads must actually be resolved
    unresolved = [h for h in critical if h not in resolved]
    if unresolved or not resolved:
        msg = f"Error: Sheet \"{rule.source_name}\" cannot produce {rule.strategy.value} output (unresolved: {unresolved}). Skipping sheet."
        report.warnings.append(msg)
        logger.error(msg)
        return None

    return resolved


def extract_rule(
    rule: AggregationRule,
    grid: Optional[Grid],
    master_ids: Container[str],
    store: EntityAttributeStore,
    logger: logging.Logger,
) -> RuleReport:
    """
    Append this rule's values to the store. Never raises for data problems;
    the returned report says what happened.
    """
    report = RuleReport.for_rule(rule)
    logger.info(f"Processing sheet: {rule.source_name} ({rule.strategy.value})...")

    if grid is None:
        return report.skip(f"Warning: Sheet \"{rule.source_name}\" not found. Skipping.", logger)
    if len(grid) <= 1:
        return report.skip(f"Warning: Sheet \"{rule.source_name}\" is empty or header only. Skipping.", logger)

    header_row = grid[0]
    id_idx = find_column_index(header_row, rule.entity_id_headers)
    if id_idx is None:
        return report.skip(
            f"Warning: App ID column {list(rule.entity_id_headers)} not found in sheet \"{rule.source_name}\". Skipping.",
            logger,
        )

    resolved = resolve_data_columns(rule, header_row, report, logger)
    if resolved is None:
        report.status = STATUS_SKIPPED
        return report
    report.resolved_headers = dict(resolved)

    for i in range(1, len(grid)):
        row = grid[i]
        report.rows_scanned += 1
        if id_idx >= len(row):
            continue
        entity_id = to_display_string(row[id_idx]).strip()
        if not entity_id or entity_id not in master_ids:
            continue

        report.rows_matched += 1
        for header, col in resolved.items():
            if col >= len(row):
                continue
            if store.append(entity_id, header, row[col]):
                report.values_stored += 1

    report.status = STATUS_EXTRACTED
    logger.info(
        f"Processed {report.rows_matched} of {report.rows_scanned} row(s) for {rule.source_name} "
        f"(values stored={report.values_stored})."
    )
    return report
