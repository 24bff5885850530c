"""
Build and write the Posture Summary table.

Header layout:
    [App ID header] + [master fields, first request order] + [one column per source sheet]

Every data row must be exactly as wide as the header; a row that is not is
dropped and reported rather than written misaligned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from posture_review.aggregation import aggregate
from posture_review.coercion import is_na_scalar
from posture_review.config_loader import passthrough_attributes
from posture_review.registry import MasterRegistry
from posture_review.rules import AggregationRule, EntityAttributeStore
from posture_review.workbook import SummaryFormat, Workbook


@dataclass(frozen=True)
class HeaderPlan:
    header: Tuple[str, ...]
    passthrough: Tuple[str, ...]
    rule_columns: Tuple[Tuple[str, AggregationRule], ...]
    dropped_rules: Tuple[AggregationRule, ...] = ()

    @property
    def rules(self) -> List[AggregationRule]:
        return [r for _, r in self.rule_columns]

    def __len__(self) -> int:
        return len(self.header)


@dataclass
class SummaryTable:
    header: List[str]
    rows: List[List[Any]] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)

    def as_grid(self) -> List[List[Any]]:
        return [list(self.header)] + [list(r) for r in self.rows]


def build_header_plan(
    rules: List[AggregationRule],
    id_header: str,
    logger: logging.Logger,
) -> HeaderPlan:
    """
    Compute the (immutable) summary header. The first rule for a source sheet
    owns its column; later rules for the same sheet are dropped with a warning.
    """
    passthrough = passthrough_attributes(rules)

    columns: List[Tuple[str, AggregationRule]] = []
    dropped: List[AggregationRule] = []
    taken = set()
    for rule in rules:
        if rule.source_name in taken:
            dropped.append(rule)
            logger.warning(
                f"Warning: Duplicate SheetName \"{rule.source_name}\" ({rule.label()}); "
                f"only the first rule for this sheet is summarized."
            )
            continue
        taken.add(rule.source_name)
        columns.append((rule.source_name, rule))

    header = (id_header,) + tuple(passthrough) + tuple(name for name, _ in columns)
    logger.debug(f"Summary header ({len(header)} columns): {list(header)}")
    return HeaderPlan(
        header=header,
        passthrough=tuple(passthrough),
        rule_columns=tuple(columns),
        dropped_rules=tuple(dropped),
    )


def assemble_summary(
    plan: HeaderPlan,
    registry: MasterRegistry,
    store: EntityAttributeStore,
    logger: logging.Logger,
    missing: Any = "",
) -> SummaryTable:
    table = SummaryTable(header=list(plan.header))
    width = len(plan.header)

    for entity_id in registry.sorted_ids():
        row: List[Any] = [entity_id]
        for name in plan.passthrough:
            v = registry.attribute(entity_id, name, missing)
            row.append(missing if is_na_scalar(v) else v)
        for _, rule in plan.rule_columns:
            row.append(aggregate(rule, entity_id, store, logger, missing))

        if len(row) != width:
            table.dropped.append(entity_id)
            logger.error(
                f"Error: Row for App \"{entity_id}\" has {len(row)} cells but header has {width}. Row not written."
            )
            continue
        table.rows.append(row)

    logger.info(f"Assembled {len(table.rows)} summary row(s); dropped {len(table.dropped)}.")
    return table


def write_summary(
    workbook: Workbook,
    sheet_name: str,
    table: SummaryTable,
    logger: logging.Logger,
    fmt: SummaryFormat = SummaryFormat(),
) -> None:
    """
    Recreate the summary sheet and write header + rows. Formatting problems
    are logged, never raised.
    """
    workbook.delete_sheet_if_exists(sheet_name)
    workbook.create_sheet(sheet_name)
    workbook.write_cells(sheet_name, 0, 0, table.as_grid())
    if table.rows:
        logger.info(f"Wrote {len(table.rows)} rows of data.")
    else:
        logger.info("No data rows to write.")

    try:
        workbook.apply_formatting(sheet_name, fmt)
        logger.info("Applied basic formatting.")
    except Exception as e:
        logger.warning(f"Warning: formatting of \"{sheet_name}\" failed: {e}")
