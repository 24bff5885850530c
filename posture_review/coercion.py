"""
Best-effort conversion of raw cell values.

Cells arrive as whatever openpyxl/pandas hand back: str, int, float, bool,
datetime, None or NaN. Every aggregation goes through these two helpers so
that "empty", "zero" and "not a number" stay distinct.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from pandas.api.types import is_scalar
import pandas as pd


NUMERIC_STRIP_REGEX = re.compile(r"[^0-9.\-]+")


def is_na_scalar(v: Any) -> bool:
    """
    Safe NA check that never returns an array/Series.
    """
    if v is None:
        return True
    if is_scalar(v):
        return bool(pd.isna(v))
    return False


def is_blank(v: Any) -> bool:
    """True for None, NaN and the empty string (whitespace is NOT blank)."""
    if is_na_scalar(v):
        return True
    return isinstance(v, str) and v == ""


def to_number(v: Any) -> Optional[float]:
    """
    Convert a cell to a float, or None when it holds no usable number.

    - None / NaN / "" -> None
    - strings: drop everything except digits, '.' and '-', then parse
      ("$1,234.56" -> 1234.56, "abc" -> None)
    - bools count as 1 / 0
    - anything else goes through float(); failures and NaN -> None
    """
    if is_blank(v):
        return None

    if isinstance(v, str):
        cleaned = NUMERIC_STRIP_REGEX.sub("", v)
        if not cleaned:
            return None
        try:
            num = float(cleaned)
        except ValueError:
            return None
    else:
        try:
            num = float(v)
        except (TypeError, ValueError):
            return None

    if math.isnan(num):
        return None
    return num


def to_display_string(v: Any) -> str:
    if is_na_scalar(v):
        return ""
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if isinstance(v, float) and math.isfinite(v) and v.is_integer():
        # Excel stores whole numbers as floats; show them the way the sheet does
        return str(int(v))
    return str(v)


def tidy_number(num: float) -> Any:
    """Return integral floats as int so the summary shows 30, not 30.0."""
    if isinstance(num, float) and math.isfinite(num) and num.is_integer():
        return int(num)
    return num
