"""
Workbook access: read sheets/tables into plain grids, write the summary back.

Reads go through pandas (used range of a sheet) or openpyxl (named tables);
both normalize to ``List[List[cell]]`` with row 0 = header and ``None`` for
empty cells. Writes go through openpyxl and only reach disk on ``save()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
import pandas as pd

from posture_review.errors import WorkbookError


Grid = List[List[Any]]

SUPPORTED_SUFFIXES = (".xlsx", ".xlsm")

# Autofit clamps (character widths)
AUTOFIT_MIN_WIDTH = 10
AUTOFIT_MAX_WIDTH = 60


@dataclass(frozen=True)
class SummaryFormat:
    bold: bool = True
    background_color: str = "4472C4"
    font_color: str = "FFFFFF"
    wrap_text: bool = True
    vertical_align: str = "top"
    autofit_columns: bool = True


def frame_to_grid(raw: pd.DataFrame) -> Grid:
    """
    Turn a header=None DataFrame into a grid: all-empty rows/columns dropped
    (used-range semantics), NaN -> None.
    """
    if raw is None or raw.empty:
        return []
    raw = raw.dropna(axis=0, how="all").dropna(axis=1, how="all")
    if raw.empty:
        return []
    raw = raw.astype(object)
    raw = raw.where(raw.notna(), None)
    return raw.values.tolist()


def _trim_grid(rows: Grid) -> Grid:
    return [list(r) for r in rows if any(v is not None and v != "" for v in r)]


class Workbook:
    """
    One open workbook. Every read reflects the file as it was opened; writes
    are staged in memory until save().
    """

    def __init__(self, path: Path, logger: logging.Logger):
        self.path = Path(path)
        self.logger = logger

        suffix = self.path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise WorkbookError(f"Unsupported extension: {suffix} ({self.path.name})")
        if not self.path.exists():
            raise WorkbookError(f"Workbook not found: {self.path}")

        try:
            self._xls = pd.ExcelFile(self.path, engine="openpyxl")
            self._book = openpyxl.load_workbook(self.path, keep_vba=(suffix == ".xlsm"))
        except Exception as e:
            raise WorkbookError(f"Failed to open workbook {self.path.name}: {e}") from e

        # cached-values view, only loaded when a table is read
        self._values_book: Optional[openpyxl.Workbook] = None
        self._closed = False

    @classmethod
    def open(cls, path: Path, logger: logging.Logger) -> "Workbook":
        return cls(path, logger)

    # -------
    # Lookup
    # -------

    @property
    def sheet_names(self) -> List[str]:
        return list(self._book.sheetnames)

    def resolve_sheet_name(self, name: str) -> Optional[str]:
        """Exact match first, then case-insensitive (Excel sheet names are)."""
        if name in self._book.sheetnames:
            return name
        lname = (name or "").strip().lower()
        for sh in self._book.sheetnames:
            if sh.lower() == lname:
                return sh
        return None

    def has_sheet(self, name: str) -> bool:
        return self.resolve_sheet_name(name) is not None

    def _find_table(self, sheet: str, table: str) -> Optional[str]:
        ws = self._book[sheet]
        for tname in ws.tables.keys():
            if tname.lower() == (table or "").lower():
                return tname
        return None

    # -------
    # Reading
    # -------

    def read_sheet(self, name: str) -> Optional[Grid]:
        """
        Used range of a sheet as a grid, or None when the sheet does not exist.
        Cached values are returned for formula cells.
        """
        sheet = self.resolve_sheet_name(name)
        if sheet is None:
            return None
        if sheet not in self._xls.sheet_names:
            # created in this session, nothing on disk yet
            return []
        # only truly empty cells are NA; "N/A" and friends stay text
        raw = self._xls.parse(sheet_name=sheet, header=None, dtype=object, keep_default_na=False, na_values=[""])
        grid = frame_to_grid(raw)
        self.logger.debug(f"{self.path.name} | {sheet}: read {len(grid)} row(s)")
        return grid

    def read_table(self, sheet_name: str, table_name: str) -> Optional[Grid]:
        """
        Header + body of a named table, or None when the sheet or table is absent.
        """
        sheet = self.resolve_sheet_name(sheet_name)
        if sheet is None:
            return None
        table = self._find_table(sheet, table_name)
        if table is None:
            return None

        if self._values_book is None:
            self._values_book = openpyxl.load_workbook(self.path, data_only=True)
        ws = self._values_book[sheet]
        tbl = ws.tables[table]
        ref = tbl.ref
        rows = [[c.value for c in row] for row in ws[ref]]
        # header + body only
        totals = tbl.totalsRowCount or 0
        if totals:
            rows = rows[:-totals]
        grid = _trim_grid(rows)
        self.logger.debug(f"{self.path.name} | {sheet}: table '{table}' ({ref}) read {len(grid)} row(s)")
        return grid

    def read_config_grid(self, sheet_name: str, table_name: Optional[str]) -> Optional[Grid]:
        """
        Table form takes precedence; fall back to the sheet's used range.
        """
        sheet = self.resolve_sheet_name(sheet_name)
        if sheet is None:
            return None
        if table_name:
            grid = self.read_table(sheet, table_name)
            if grid is not None:
                self.logger.info(f"Using table \"{table_name}\" on sheet \"{sheet}\".")
                return grid
        self.logger.info(f"Using used range on \"{sheet}\".")
        return self.read_sheet(sheet)

    # -------
    # Writing
    # -------

    def delete_sheet_if_exists(self, name: str) -> bool:
        sheet = self.resolve_sheet_name(name)
        if sheet is None:
            return False
        del self._book[sheet]
        self.logger.debug(f"{self.path.name}: deleted sheet '{sheet}'")
        return True

    def create_sheet(self, name: str) -> None:
        ws = self._book.create_sheet(title=name)
        self._book.active = self._book.sheetnames.index(ws.title)

    def write_cells(self, name: str, top_row: int, top_col: int, grid: Grid) -> None:
        """
        Write a rectangular block; top_row/top_col are 0-based.
        """
        ws = self._book[self.resolve_sheet_name(name) or name]
        for i, row in enumerate(grid):
            for j, value in enumerate(row):
                cell = ws.cell(row=top_row + 1 + i, column=top_col + 1 + j, value=value)
                # text that looks like a formula stays text
                if isinstance(value, str) and value.startswith("="):
                    cell.data_type = "s"

    def apply_formatting(self, name: str, fmt: SummaryFormat) -> None:
        """
        Header styling, wrapping/alignment on the used range, column autofit.
        """
        ws = self._book[self.resolve_sheet_name(name) or name]
        if ws.max_row < 1 or ws.max_column < 1:
            return

        header_font = Font(bold=fmt.bold, color=fmt.font_color)
        header_fill = PatternFill(fill_type="solid", fgColor=fmt.background_color)
        alignment = Alignment(wrap_text=fmt.wrap_text, vertical=fmt.vertical_align)

        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill

        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column):
            for cell in row:
                cell.alignment = alignment

        if fmt.autofit_columns:
            self._autofit_columns(ws)

    def _autofit_columns(self, ws: Any) -> None:
        widths: Dict[int, int] = {}
        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, values_only=True):
            for idx, v in enumerate(row, start=1):
                if v is None:
                    continue
                longest = max((len(line) for line in str(v).split("\n")), default=0)
                widths[idx] = max(widths.get(idx, 0), longest)
        for idx, w in widths.items():
            ws.column_dimensions[get_column_letter(idx)].width = min(max(AUTOFIT_MIN_WIDTH, w + 2), AUTOFIT_MAX_WIDTH)

    def save(self, path: Optional[Path] = None) -> Path:
        out = Path(path) if path else self.path
        # read handles keep the source file open
        self.close()
        self._book.save(out)
        self.logger.info(f"Saved workbook: {out.resolve()}")
        return out

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._xls.close()
        if self._values_book is not None:
            self._values_book.close()
