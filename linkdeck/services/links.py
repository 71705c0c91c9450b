from __future__ import annotations

from sqlalchemy import or_

from linkdeck.errors import NotFoundError, ValidationError
from linkdeck.extensions import db
from linkdeck.models import Link
from linkdeck.services.categories import default_category, get_category
from linkdeck.services.common import (
    clean_text,
    coerce_optional_id,
    coerce_position,
    format_tags,
    text_field,
)
from linkdeck.services.ordering import (
    next_sort_order,
    normalize_group,
    ordered_siblings,
    place_in_group,
    reindex,
    reorder_group,
)
from linkdeck.services.transactions import atomic


def list_links(category_id: int | None = None, q: str | None = None) -> list[Link]:
    query = Link.query
    if category_id is not None:
        query = query.filter_by(category_id=category_id)
    term = (q or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(
                Link.title.ilike(pattern),
                Link.description.ilike(pattern),
                Link.url.ilike(pattern),
                Link.tags.ilike(pattern),
            )
        )
    return query.order_by(
        Link.category_id.asc(), Link.sort_order.asc(), Link.id.asc()
    ).all()


def get_link(link_id: int) -> Link:
    link = db.session.get(Link, link_id)
    if link is None:
        raise NotFoundError("link not found", link_id=link_id)
    return link


def create_link(
    url: str,
    title: str | None = None,
    description: str | None = None,
    icon: str | None = None,
    category_id=None,
    tags=None,
) -> Link:
    url = text_field(url, "url")
    category_id = coerce_optional_id(category_id, "category_id")

    with atomic():
        if category_id is None:
            category = default_category()
        else:
            category = get_category(category_id)
        link = Link(
            url=url,
            title=clean_text(title),
            description=clean_text(description),
            icon=clean_text(icon),
            category_id=category.id,
            tags=format_tags(tags),
            sort_order=next_sort_order(Link, category.id),
        )
        db.session.add(link)
        db.session.flush()
    return link


def update_link(link_id: int, fields: dict) -> Link:
    with atomic():
        link = get_link(link_id)
        if "url" in fields:
            link.url = text_field(fields.get("url"), "url")
        for field in ("title", "description", "icon"):
            if field in fields:
                setattr(link, field, clean_text(fields.get(field)))
        if "tags" in fields:
            link.tags = format_tags(fields.get("tags"))
        if "category_id" in fields:
            category_id = coerce_optional_id(fields.get("category_id"), "category_id")
            if category_id is None:
                raise ValidationError("category_id must not be empty")
            _place_link(link, category_id, None)
    return link


def delete_link(link_id: int) -> None:
    with atomic():
        link = get_link(link_id)
        category_id = link.category_id
        db.session.delete(link)
        db.session.flush()
        normalize_group(Link, category_id)


def _place_link(link: Link, target_category_id, target_sort_order) -> None:
    source_category_id = link.category_id

    if target_category_id is not None and target_category_id != source_category_id:
        target = get_category(target_category_id)
        destination = ordered_siblings(Link, target.id)
        link.category_id = target.id
        reindex(place_in_group(destination, link, target_sort_order))
        db.session.flush()
        normalize_group(Link, source_category_id)
        return

    if target_sort_order is None:
        return
    siblings = ordered_siblings(Link, source_category_id)
    reindex(place_in_group(siblings, link, target_sort_order))


def move_link(link_id: int, target_category_id=None, target_sort_order=None) -> Link:
    target_category_id = coerce_optional_id(target_category_id, "category_id")
    target_sort_order = coerce_position(target_sort_order)
    if target_category_id is None and target_sort_order is None:
        raise ValidationError("category_id or sort_order is required")

    with atomic():
        link = get_link(link_id)
        _place_link(link, target_category_id, target_sort_order)
    return link


def reorder_within_category(category_id: int, ordered_link_ids) -> list[Link]:
    with atomic():
        get_category(category_id)
        changed = reorder_group(Link, category_id, ordered_link_ids)
    return changed
