"""Shared pytest fixtures: a test logger and a factory for real .xlsx workbooks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import openpyxl
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table
import pytest

from posture_review.rules import AggregationRule, EntityAttributeStore, Strategy


CONFIG_HEADER = [
    "IsEnabled",
    "SheetName",
    "AppIdHeaders",
    "DataHeadersToPull",
    "AggregationType",
    "ValueHeaderForAggregation",
    "MasterAppFieldsToPull",
]


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("posture_review.tests")


@pytest.fixture
def make_workbook(tmp_path: Path) -> Callable[..., Path]:
    """
    make_workbook({"Sheet": [[...header...], [...row...]]}, tables={"Config": "ConfigTable"})
    writes a workbook and returns its path. A table covers the whole sheet.
    """

    def _make(
        sheets: Dict[str, List[List[Any]]],
        tables: Optional[Dict[str, str]] = None,
        name: str = "posture.xlsx",
    ) -> Path:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for sheet_name, rows in sheets.items():
            ws = wb.create_sheet(title=sheet_name)
            for row in rows:
                ws.append(row)
            if tables and sheet_name in tables and rows:
                width = max(len(r) for r in rows)
                ref = f"A1:{get_column_letter(width)}{len(rows)}"
                ws.add_table(Table(displayName=tables[sheet_name], ref=ref))
        path = tmp_path / name
        wb.save(path)
        return path

    return _make


@pytest.fixture
def posture_sheets() -> Dict[str, List[List[Any]]]:
    """A small but complete posture workbook."""
    return {
        "Config": [
            CONFIG_HEADER,
            [True, "Patches", "UniqueID", "Severity", "Count", None, "Owner"],
            [True, "Costs", "App ID, UniqueID", "Cost", "Sum", "Cost", "Owner, Tier"],
            ["FALSE", "Ignored", "UniqueID", "Anything", "List", None, None],
        ],
        "Applications": [
            ["UniqueID", "Owner", "Tier"],
            ["A2", "bob", 2],
            ["A1", "alice", 1],
            ["A1", "mallory", 9],
            ["A3", "carol", None],
        ],
        "Patches": [
            ["UniqueID", "Severity"],
            ["A1", "High"],
            ["A1", "High"],
            ["A1", "Low"],
            ["A2", "High"],
            ["ZZ", "High"],
        ],
        "Costs": [
            ["App ID", "Cost"],
            ["A1", "10"],
            ["A1", "bad"],
            ["A1", "20.5"],
            ["A2", "$1,000"],
        ],
    }


@pytest.fixture
def make_rule() -> Callable[..., AggregationRule]:
    def _make(
        strategy: Strategy = Strategy.LIST,
        data_headers=("Severity",),
        value_header: Optional[str] = None,
        source_name: str = "Patches",
        entity_id_headers=("UniqueID",),
        passthrough=(),
    ) -> AggregationRule:
        return AggregationRule(
            source_name=source_name,
            entity_id_headers=tuple(entity_id_headers),
            data_headers=tuple(data_headers),
            strategy=strategy,
            value_header=value_header,
            passthrough_attributes=tuple(passthrough),
        )

    return _make


@pytest.fixture
def store() -> EntityAttributeStore:
    return EntityAttributeStore()


@pytest.fixture(autouse=True)
def _reset_cli_logger():
    """setup_logging() attaches handlers once per process; start each test clean."""
    yield
    cli_logger = logging.getLogger("posture_review")
    for handler in list(cli_logger.handlers):
        cli_logger.removeHandler(handler)
        handler.close()
