"""
Master application registry: the authoritative set of entity ids plus the
passthrough fields the config asked for.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from posture_review.coercion import to_display_string
from posture_review.errors import RegistryError
from posture_review.headers import find_column_index
from posture_review.workbook import Grid


@dataclass
class MasterRegistry:
    id_header: str
    entity_ids: List[str]
    attributes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._id_set = set(self.entity_ids)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._id_set

    def __len__(self) -> int:
        return len(self.entity_ids)

    def sorted_ids(self) -> List[str]:
        return sorted(self.entity_ids)

    def attribute(self, entity_id: str, name: str, missing: Any = "") -> Any:
        return self.attributes.get(entity_id, {}).get(name, missing)


def load_master_registry(
    grid: Optional[Grid],
    id_header_candidates: Sequence[str],
    attribute_names: Sequence[str],
    logger: logging.Logger,
) -> MasterRegistry:
    """
    Build the registry from its sheet grid (row 0 = header).

    Fatal: sheet missing, header only, identifier column not found.
    Missing attribute columns are dropped with a warning.
    Duplicate ids: first row wins, later rows are ignored.
    """
    if grid is None:
        raise RegistryError("Master sheet not found.")
    if len(grid) <= 1:
        raise RegistryError("Master sheet is empty or header only.")

    header_row = grid[0]
    id_idx = find_column_index(header_row, id_header_candidates)
    if id_idx is None:
        raise RegistryError(f"Master App ID header not found (tried {list(id_header_candidates)}).")
    id_header = to_display_string(header_row[id_idx]).strip()

    warnings: List[str] = []
    attr_cols: Dict[str, int] = {}
    for name in attribute_names:
        idx = find_column_index(header_row, [name])
        if idx is None:
            msg = f"Warning: Master field \"{name}\" not found in master sheet; it will be left blank."
            warnings.append(msg)
            logger.warning(msg)
        else:
            attr_cols[name] = idx

    entity_ids: List[str] = []
    seen = set()
    attributes: Dict[str, Dict[str, Any]] = {}
    duplicates = 0

    for i in range(1, len(grid)):
        row = grid[i]
        if id_idx >= len(row):
            continue
        entity_id = to_display_string(row[id_idx]).strip()
        if not entity_id:
            continue
        if entity_id in seen:
            duplicates += 1
            logger.debug(f"Master sheet row {i + 1}: duplicate App ID \"{entity_id}\" ignored (first occurrence wins).")
            continue

        seen.add(entity_id)
        entity_ids.append(entity_id)
        attributes[entity_id] = {name: row[idx] for name, idx in attr_cols.items() if idx < len(row)}

    if duplicates:
        msg = f"Warning: {duplicates} duplicate App ID row(s) in master sheet ignored."
        warnings.append(msg)
        logger.warning(msg)

    if not entity_ids:
        msg = "Warning: master sheet holds no App IDs; summary will have no data rows."
        warnings.append(msg)
        logger.warning(msg)

    logger.info(f"Found {len(entity_ids)} unique App IDs (id column \"{id_header}\").")
    return MasterRegistry(id_header=id_header, entity_ids=entity_ids, attributes=attributes, warnings=warnings)
