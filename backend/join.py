"""
Relational joins over lists of row dicts.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Literal, Mapping, Sequence

logger = logging.getLogger(__name__)

JoinType = Literal["inner", "left", "right"]


def _first_match_index(rows: Iterable[Mapping[str, Any]], on_field: str) -> Dict[Any, Mapping[str, Any]]:
    """key -> first row carrying that key (same result as a linear find-first)."""
    index: Dict[Any, Mapping[str, Any]] = {}
    for row in rows:
        if on_field not in row:
            continue
        index.setdefault(row[on_field], row)
    return index


def join_on_field(
    join_type: JoinType,
    on_field: str,
    left: Sequence[Mapping[str, Any]],
    right: Sequence[Mapping[str, Any]],
    add_fields_from_join: Sequence[str],
) -> List[Dict[str, Any]]:
    """
    Join left and right rows where on_field is equal.

    Args:
        join_type: "inner", "left" or "right"
        on_field: key field present on both sides (exact match, no normalization)
        left: primary rows; output keeps their order
        right: rows searched for the first match
        add_fields_from_join: fields copied from the matched row.
            Fields the matched row does not have are left out, not defaulted.

    Returns:
        New row dicts. Unmatched rows are dropped for "inner" and kept
        unchanged for "left".
    """
    if join_type == "right":
        return join_on_field("left", on_field, right, left, add_fields_from_join)
    if join_type not in ("inner", "left"):
        raise ValueError(f"Unsupported join type: {join_type}")

    index = _first_match_index(right, on_field)
    joined: List[Dict[str, Any]] = []

    for left_row in left:
        right_row = index.get(left_row[on_field]) if on_field in left_row else None

        if right_row is None:
            if join_type == "left":
                joined.append(dict(left_row))
            continue

        merged = dict(left_row)
        for field_name in add_fields_from_join:
            if field_name in right_row:
                merged[field_name] = right_row[field_name]
        joined.append(merged)

    logger.debug(
        "%s join on %s: %d left rows -> %d joined rows",
        join_type,
        on_field,
        len(left),
        len(joined),
    )
    return joined
