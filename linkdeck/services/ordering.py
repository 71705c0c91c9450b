from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence

from sqlalchemy import func

from linkdeck.errors import ValidationError
from linkdeck.extensions import db
from linkdeck.models import Category, Link, MenuLink
from linkdeck.services.common import coerce_id

# Column that defines the sibling group of each ordered model.
GROUP_COLUMNS = {
    Category: "parent_id",
    Link: "category_id",
    MenuLink: "position",
}


def plan_reindex(
    current: Mapping[Hashable, int], sequence: Sequence[Hashable]
) -> dict[Hashable, int]:
    writes: dict[Hashable, int] = {}
    for position, key in enumerate(sequence):
        if current.get(key) != position:
            writes[key] = position
    return writes


def reindex(entities: Iterable) -> list:
    ordered = list(entities)
    by_key = {id(entity): entity for entity in ordered}
    writes = plan_reindex(
        {key: entity.sort_order for key, entity in by_key.items()},
        [id(entity) for entity in ordered],
    )
    changed = []
    for key, position in writes.items():
        entity = by_key[key]
        entity.sort_order = position
        changed.append(entity)
    return changed


def _group_filter(model, group_value):
    column = getattr(model, GROUP_COLUMNS[model])
    if group_value is None:
        return column.is_(None)
    return column == group_value


def ordered_siblings(model, group_value) -> list:
    return (
        model.query.filter(_group_filter(model, group_value))
        .order_by(model.sort_order.asc(), model.id.asc())
        .all()
    )


def next_sort_order(model, group_value) -> int:
    highest = (
        db.session.query(func.max(model.sort_order))
        .filter(_group_filter(model, group_value))
        .scalar()
    )
    if highest is None:
        return 0
    return int(highest) + 1


def place_in_group(siblings: list, entity, position: int | None) -> list:
    sequence = [item for item in siblings if item is not entity]
    if position is None or position > len(sequence):
        position = len(sequence)
    sequence.insert(position, entity)
    return sequence


def reorder_group(model, group_value, ordered_ids: Sequence) -> list:
    if not isinstance(ordered_ids, (list, tuple)):
        raise ValidationError("ordered_ids must be a list")

    siblings = ordered_siblings(model, group_value)
    by_id = {item.id: item for item in siblings}
    seen: set[int] = set()
    sequence = []
    for raw in ordered_ids:
        entity_id = coerce_id(raw)
        if entity_id in seen:
            raise ValidationError("duplicate id in ordering", id=entity_id)
        entity = by_id.get(entity_id)
        if entity is None:
            raise ValidationError("id does not belong to this group", id=entity_id)
        seen.add(entity_id)
        sequence.append(entity)

    # Siblings the caller did not list keep their relative order at the end.
    sequence.extend(item for item in siblings if item.id not in seen)
    return reindex(sequence)


def normalize_group(model, group_value) -> list:
    return reindex(ordered_siblings(model, group_value))


def normalize_all() -> dict[str, int]:
    counts: dict[str, int] = {}
    for model, column_name in GROUP_COLUMNS.items():
        column = getattr(model, column_name)
        changed = 0
        for (group_value,) in db.session.query(column).distinct().all():
            changed += len(normalize_group(model, group_value))
        counts[model.__tablename__] = changed
    return counts
