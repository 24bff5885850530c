"""
Reduce one application's stored values into one summary cell.

Strategies
----------
List        row-aligned "a - b" lines joined by newline
Count       row-aligned groups, "a - b: n" lines sorted by group key; 0 if none
Sum/Average/Min/Max
            numeric reduction over ValueHeaderForAggregation only
UniqueList  distinct values of the first data header, sorted

Row-aligned: the i-th stored value of header A pairs with the i-th stored
value of header B, up to the longest list; shorter lists pad with "".
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Sequence

from posture_review.coercion import tidy_number, to_display_string, to_number
from posture_review.rules import AggregationRule, EntityAttributeStore, Strategy


LIST_FIELD_SEPARATOR = " - "
LINE_SEPARATOR = "\n"
# never appears in real cell text
GROUP_KEY_SEPARATOR = "|||"
ERROR_CELL = "ERROR"
AVERAGE_DECIMALS = 2

Handler = Callable[[AggregationRule, str, EntityAttributeStore, Any], Any]


def aligned_rows(store: EntityAttributeStore, entity_id: str, headers: Sequence[str]) -> List[List[str]]:
    columns = [[to_display_string(v) for v in store.values(entity_id, h)] for h in headers]
    depth = max((len(c) for c in columns), default=0)
    return [[c[i] if i < len(c) else "" for c in columns] for i in range(depth)]


def _numeric_values(rule: AggregationRule, entity_id: str, store: EntityAttributeStore) -> List[float]:
    if not rule.value_header:
        return []
    nums = (to_number(v) for v in store.values(entity_id, rule.value_header))
    return [n for n in nums if n is not None]


# ----------
# Handlers
# ----------

def _aggregate_list(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    rows = aligned_rows(store, entity_id, rule.data_headers)
    if not rows:
        return missing
    return LINE_SEPARATOR.join(LIST_FIELD_SEPARATOR.join(r) for r in rows)


def _aggregate_count(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    rows = aligned_rows(store, entity_id, rule.data_headers)
    if not rows:
        return 0

    counts: Dict[str, int] = {}
    labels: Dict[str, str] = {}
    for r in rows:
        key = GROUP_KEY_SEPARATOR.join(r)
        counts[key] = counts.get(key, 0) + 1
        labels.setdefault(key, LIST_FIELD_SEPARATOR.join(r))

    return LINE_SEPARATOR.join(f"{labels[k]}: {counts[k]}" for k in sorted(counts))


def _aggregate_sum(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    nums = _numeric_values(rule, entity_id, store)
    return tidy_number(sum(nums)) if nums else missing


def _aggregate_average(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    nums = _numeric_values(rule, entity_id, store)
    if not nums:
        return missing
    return tidy_number(round(sum(nums) / len(nums), AVERAGE_DECIMALS))


def _aggregate_min(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    nums = _numeric_values(rule, entity_id, store)
    return tidy_number(min(nums)) if nums else missing


def _aggregate_max(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    nums = _numeric_values(rule, entity_id, store)
    return tidy_number(max(nums)) if nums else missing


def _aggregate_unique_list(rule: AggregationRule, entity_id: str, store: EntityAttributeStore, missing: Any) -> Any:
    if not rule.data_headers:
        return missing
    values = store.values(entity_id, rule.data_headers[0])
    if not values:
        return missing
    unique = sorted({to_display_string(v) for v in values})
    return LINE_SEPARATOR.join(unique)


HANDLERS: Dict[Strategy, Handler] = {
    Strategy.LIST: _aggregate_list,
    Strategy.COUNT: _aggregate_count,
    Strategy.SUM: _aggregate_sum,
    Strategy.AVERAGE: _aggregate_average,
    Strategy.MIN: _aggregate_min,
    Strategy.MAX: _aggregate_max,
    Strategy.UNIQUE_LIST: _aggregate_unique_list,
}


def aggregate(
    rule: AggregationRule,
    entity_id: str,
    store: EntityAttributeStore,
    logger: logging.Logger,
    missing: Any = "",
) -> Any:
    """
    Summary cell for (rule, entity). Any exception degrades to "ERROR" for
    this cell only.
    """
    try:
        return HANDLERS[rule.strategy](rule, entity_id, store, missing)
    except Exception as e:
        logger.error(
            f"Error during aggregation type \"{rule.strategy.value}\" for App \"{entity_id}\", "
            f"Sheet \"{rule.source_name}\": {e}"
        )
        return ERROR_CELL
