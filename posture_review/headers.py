"""
Header resolution shared by the config, registry and posture sheets.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from posture_review.coercion import is_na_scalar


def _norm_header(h: Any) -> str:
    """
    Normalize header text for case-insensitive matching.
    """
    if is_na_scalar(h):
        return ""
    s = str(h)
    s = s.replace("\u00A0", " ")      # NBSP
    s = s.replace("\u2007", " ")      # figure space
    s = s.replace("\u202F", " ")      # narrow NBSP
    return s.strip().lower()


def find_column_index(header_row: Sequence[Any], candidates: Sequence[str]) -> Optional[int]:
    """
    Return the index of the first header matching any candidate, or None.

    Candidates are tried in order; the first candidate that matches anything
    wins, even if a later candidate sits further left in the row.
    """
    normalized = [_norm_header(h) for h in header_row]
    for cand in candidates:
        target = _norm_header(cand)
        if not target:
            continue
        for idx, h in enumerate(normalized):
            if h == target:
                return idx
    return None


def split_header_list(raw: Any) -> List[str]:
    """
    Split a comma separated config cell: "UniqueID, App ID,," -> ["UniqueID", "App ID"].
    """
    if is_na_scalar(raw):
        return []
    return [t.strip() for t in str(raw).split(",") if t.strip()]
