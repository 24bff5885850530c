#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
posture-review

Build the "Posture Summary" sheet of an application posture workbook.

Input:
- one .xlsx/.xlsm workbook holding
  - Config (sheet, or table "ConfigTable" on it): one row per posture sheet
  - Applications: master list of App IDs (UniqueID / Application ID)
  - the posture sheets the config names

Output:
- the workbook with "Posture Summary" recreated (in place, or --output)
- optional per-rule extraction report CSV (utf-8-sig)

Logs:
- Console + logs/posture_review.log

Dependencies:
- pandas
- openpyxl
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import pandas as pd

from posture_review.errors import PostureReviewError
from posture_review.extractor import RuleReport
from posture_review.pipeline import (
    CONFIG_SHEET_NAME,
    CONFIG_TABLE_NAME,
    MASTER_APP_ID_HEADERS,
    MASTER_APP_SHEET_NAME,
    SUMMARY_SHEET_NAME,
    ReviewSettings,
    run_posture_review,
)
from posture_review.workbook import Workbook


EXIT_FATAL = 2

REPORT_FIELDS = [
    "source_name",
    "strategy",
    "config_row",
    "status",
    "rows_scanned",
    "rows_matched",
    "values_stored",
    "resolved_headers",
    "warnings",
]


# ----------
# Logging
# ----------

def setup_logging(debug: bool, log_dir: str = "logs") -> logging.Logger:
    logger = logging.getLogger("posture_review")
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    os.makedirs(log_dir, exist_ok=True)
    log_path = Path(log_dir) / "posture_review.log"

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.DEBUG if debug else logging.INFO)
    fh.setFormatter(fmt)

    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(logging.DEBUG if debug else logging.INFO)
    sh.setFormatter(fmt)

    logger.addHandler(fh)
    logger.addHandler(sh)
    return logger


# --------
# Report
# --------

def write_rule_report(reports: List[RuleReport], out_path: Path, logger: logging.Logger) -> None:
    rows = []
    for r in reports:
        d = asdict(r)
        d["resolved_headers"] = ";".join(f"{h}={i}" for h, i in r.resolved_headers.items())
        d["warnings"] = " | ".join(r.warnings)
        rows.append(d)

    rep_df = pd.DataFrame(rows, columns=REPORT_FIELDS)
    rep_df.to_csv(out_path, index=False, encoding="utf-8-sig")
    logger.info(f"Wrote extraction report: {Path(out_path).resolve()} rows={len(rep_df)}")


# -----
# Main
# -----

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Summarize application posture sheets into one row per application.")
    parser.add_argument("workbook", help="Workbook (.xlsx/.xlsm) holding Config, Applications and the posture sheets")
    parser.add_argument("--output", default=None, help="Save to this path instead of overwriting the input workbook")
    parser.add_argument("--config-sheet", default=CONFIG_SHEET_NAME, help=f"Config sheet (default: {CONFIG_SHEET_NAME})")
    parser.add_argument("--config-table", default=CONFIG_TABLE_NAME, help=f"Config table on the config sheet (default: {CONFIG_TABLE_NAME})")
    parser.add_argument("--master-sheet", default=MASTER_APP_SHEET_NAME, help=f"Master application sheet (default: {MASTER_APP_SHEET_NAME})")
    parser.add_argument(
        "--master-id-header",
        action="append",
        default=None,
        help=f"App ID header in the master sheet; repeat for aliases (default: {', '.join(MASTER_APP_ID_HEADERS)})",
    )
    parser.add_argument("--summary-sheet", default=SUMMARY_SHEET_NAME, help=f"Summary sheet to (re)create (default: {SUMMARY_SHEET_NAME})")
    parser.add_argument("--out-report", default=None, help="Optional CSV report of per-sheet extraction results")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.debug)

    path = Path(args.workbook)
    if not path.exists():
        logger.error(f"Workbook not found: {path.resolve()}")
        return EXIT_FATAL

    settings = ReviewSettings(
        config_sheet=args.config_sheet,
        config_table=args.config_table or None,
        master_sheet=args.master_sheet,
        master_id_headers=tuple(args.master_id_header) if args.master_id_header else MASTER_APP_ID_HEADERS,
        summary_sheet=args.summary_sheet,
    )

    logger.info(f"Starting posture summary for {path.name}...")
    try:
        workbook = Workbook.open(path, logger)
    except PostureReviewError as e:
        logger.error(str(e))
        return EXIT_FATAL

    try:
        result = run_posture_review(workbook, settings, logger)
        workbook.save(Path(args.output) if args.output else None)
    except PostureReviewError as e:
        for msg in e.errors:
            if msg != str(e):
                logger.error(msg)
        logger.error(f"{e} Nothing was written.")
        return EXIT_FATAL
    finally:
        workbook.close()

    if args.out_report:
        write_rule_report(result.rule_reports, Path(args.out_report), logger)

    logger.info(
        f"Summary \"{settings.summary_sheet}\": {result.rows_written} row(s), "
        f"{len(result.header)} column(s), {len(result.warnings)} warning(s)."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
