from __future__ import annotations

import openpyxl
import pandas as pd

from posture_review.cli import EXIT_FATAL, main

from conftest import CONFIG_HEADER


def test_main_writes_output_and_report(make_workbook, posture_sheets, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = make_workbook(posture_sheets)
    out = tmp_path / "summary.xlsx"
    report = tmp_path / "report.csv"

    code = main([str(path), "--output", str(out), "--out-report", str(report)])

    assert code == 0
    assert "Posture Summary" in openpyxl.load_workbook(out).sheetnames
    assert "Posture Summary" not in openpyxl.load_workbook(path).sheetnames

    rep = pd.read_csv(report, encoding="utf-8-sig")
    assert list(rep["source_name"]) == ["Patches", "Costs"]
    assert list(rep["status"]) == ["extracted", "extracted"]


def test_main_missing_workbook(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main([str(tmp_path / "nope.xlsx")]) == EXIT_FATAL


def test_main_fatal_config_writes_nothing(make_workbook, posture_sheets, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    posture_sheets["Config"] = [
        CONFIG_HEADER,
        [True, "Costs", "UniqueID", "Cost", "Average", None, None],
    ]
    path = make_workbook(posture_sheets)
    before = path.read_bytes()

    assert main([str(path)]) == EXIT_FATAL
    assert path.read_bytes() == before


def test_main_master_id_header_override(make_workbook, posture_sheets, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    posture_sheets["Applications"][0][0] = "AppKey"
    path = make_workbook(posture_sheets)

    assert main([str(path), "--master-id-header", "AppKey"]) == 0
    ws = openpyxl.load_workbook(path)["Posture Summary"]
    assert ws["A1"].value == "AppKey"
