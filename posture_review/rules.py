"""
Aggregation rules and the per-entity value store they populate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from posture_review.coercion import is_blank


class Strategy(str, Enum):
    LIST = "List"
    COUNT = "Count"
    SUM = "Sum"
    AVERAGE = "Average"
    MIN = "Min"
    MAX = "Max"
    UNIQUE_LIST = "UniqueList"

    @classmethod
    def parse(cls, raw: Any) -> Optional["Strategy"]:
        """
        "sum" / "SUM" -> Strategy.SUM, "uniquelist" -> Strategy.UNIQUE_LIST.
        Unknown or empty text -> None (caller falls back to List).
        """
        text = "" if raw is None else str(raw).strip()
        if not text:
            return None
        key = text.lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return None

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_STRATEGIES

    @property
    def needs_data_headers(self) -> bool:
        return self in (Strategy.LIST, Strategy.COUNT, Strategy.UNIQUE_LIST)


NUMERIC_STRATEGIES = (Strategy.SUM, Strategy.AVERAGE, Strategy.MIN, Strategy.MAX)


@dataclass(frozen=True)
class AggregationRule:
    source_name: str
    entity_id_headers: Tuple[str, ...]
    data_headers: Tuple[str, ...]
    strategy: Strategy
    value_header: Optional[str] = None
    passthrough_attributes: Tuple[str, ...] = ()
    # 1-based row in the config sheet, for messages
    config_row: Optional[int] = None

    def needed_headers(self) -> List[str]:
        """data_headers plus value_header, order kept, no repeats."""
        out = list(self.data_headers)
        if self.value_header and self.value_header not in out:
            out.append(self.value_header)
        return out

    def critical_headers(self) -> List[str]:
        """Headers whose absence in the source makes the rule useless."""
        if self.strategy.is_numeric:
            return [self.value_header] if self.value_header else []
        if self.strategy == Strategy.UNIQUE_LIST:
            return list(self.data_headers[:1])
        return list(self.data_headers)

    def label(self) -> str:
        row = f"Row {self.config_row}, " if self.config_row else ""
        return f"{row}Sheet \"{self.source_name}\", {self.strategy.value}"


@dataclass
class EntityAttributeStore:
    """
    entity id -> header name -> raw values in source row order.

    Filled by the extractor (one writer, rule by rule), read-only afterwards.
    Blank values are never stored, duplicates are.
    """

    data: Dict[str, Dict[str, List[Any]]] = field(default_factory=dict)

    def append(self, entity_id: str, header: str, value: Any) -> bool:
        if is_blank(value):
            return False
        self.data.setdefault(entity_id, {}).setdefault(header, []).append(value)
        return True

    def values(self, entity_id: str, header: str) -> List[Any]:
        return self.data.get(entity_id, {}).get(header, [])

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self.data

    def entities(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)
