"""
End-to-end run: Config -> master registry -> posture sheets -> summary sheet.

Strictly sequential. Fatal errors (PostureReviewError) surface before the
summary sheet is touched, so a failed run never leaves a partial summary.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from posture_review.config_loader import load_config, passthrough_attributes
from posture_review.extractor import STATUS_FAILED, RuleReport, extract_rule
from posture_review.registry import MasterRegistry, load_master_registry
from posture_review.rules import AggregationRule, EntityAttributeStore
from posture_review.summary import HeaderPlan, SummaryTable, assemble_summary, build_header_plan, write_summary
from posture_review.workbook import SummaryFormat, Workbook


# --------------------
# Workbook constants
# --------------------

CONFIG_SHEET_NAME = "Config"
CONFIG_TABLE_NAME = "ConfigTable"
MASTER_APP_SHEET_NAME = "Applications"
MASTER_APP_ID_HEADERS = ("UniqueID", "Application ID")
SUMMARY_SHEET_NAME = "Posture Summary"
DEFAULT_VALUE_MISSING = ""


@dataclass(frozen=True)
class ReviewSettings:
    config_sheet: str = CONFIG_SHEET_NAME
    config_table: Optional[str] = CONFIG_TABLE_NAME
    master_sheet: str = MASTER_APP_SHEET_NAME
    master_id_headers: Tuple[str, ...] = MASTER_APP_ID_HEADERS
    summary_sheet: str = SUMMARY_SHEET_NAME
    missing_value: str = DEFAULT_VALUE_MISSING
    summary_format: SummaryFormat = SummaryFormat()


@dataclass
class ReviewResult:
    rules: List[AggregationRule]
    header: List[str]
    rows_written: int
    dropped_entities: List[str] = field(default_factory=list)
    rule_reports: List[RuleReport] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0


def extract_all(
    workbook: Workbook,
    plan: HeaderPlan,
    registry: MasterRegistry,
    logger: logging.Logger,
) -> Tuple[EntityAttributeStore, List[RuleReport]]:
    """
    Run every summarized rule against its sheet, in config order, into one store.
    """
    store = EntityAttributeStore()
    reports: List[RuleReport] = []

    for rule in plan.rules:
        try:
            grid = workbook.read_sheet(rule.source_name)
        except Exception as e:
            logger.exception(f"{rule.source_name}: reading sheet failed")
            rep = RuleReport.for_rule(rule)
            rep.status = STATUS_FAILED
            rep.warnings.append(f"Sheet \"{rule.source_name}\" failed to read: {e}")
            reports.append(rep)
            continue
        reports.append(extract_rule(rule, grid, registry, store, logger))

    logger.info(f"Finished processing posture sheets ({len(store)} application(s) with data).")
    return store, reports


def run_posture_review(
    workbook: Workbook,
    settings: ReviewSettings,
    logger: logging.Logger,
) -> ReviewResult:
    """
    Stage the summary sheet in ``workbook``. The caller decides whether and
    where to save.
    """
    start = time.monotonic()
    warnings: List[str] = []

    logger.info(f"Reading configuration from sheet: {settings.config_sheet}")
    config = load_config(workbook.read_config_grid(settings.config_sheet, settings.config_table), logger)
    warnings.extend(config.warnings)

    logger.info(f"Reading master App IDs from sheet: {settings.master_sheet}...")
    registry = load_master_registry(
        workbook.read_sheet(settings.master_sheet),
        settings.master_id_headers,
        passthrough_attributes(config.rules),
        logger,
    )
    warnings.extend(registry.warnings)

    plan = build_header_plan(config.rules, registry.id_header, logger)
    for rule in plan.dropped_rules:
        warnings.append(f"Duplicate SheetName \"{rule.source_name}\" ({rule.label()}) dropped from summary.")

    store, reports = extract_all(workbook, plan, registry, logger)
    for rep in reports:
        warnings.extend(rep.warnings)

    logger.info(f"Preparing summary sheet: {settings.summary_sheet}")
    table: SummaryTable = assemble_summary(plan, registry, store, logger, settings.missing_value)
    write_summary(workbook, settings.summary_sheet, table, logger, settings.summary_format)

    elapsed = time.monotonic() - start
    logger.info(f"Posture review finished in {elapsed:.2f} seconds.")
    return ReviewResult(
        rules=list(config.rules),
        header=list(table.header),
        rows_written=len(table.rows),
        dropped_entities=list(table.dropped),
        rule_reports=reports,
        warnings=warnings,
        elapsed_seconds=elapsed,
    )
