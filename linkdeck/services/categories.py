from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from linkdeck.errors import ConflictError, NotFoundError, StorageError, ValidationError
from linkdeck.extensions import db
from linkdeck.models import SITE_CONFIG_ID, Category, Link, SiteConfig
from linkdeck.services.common import coerce_optional_id, text_field
from linkdeck.services.ordering import (
    next_sort_order,
    normalize_group,
    reorder_group,
)
from linkdeck.services.transactions import atomic


def list_categories() -> list[Category]:
    return Category.query.order_by(Category.sort_order.asc(), Category.id.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("category not found", category_id=category_id)
    return category


def ensure_default_category(config: SiteConfig) -> Category:
    category = None
    if config.default_category_id is not None:
        category = db.session.get(Category, config.default_category_id)
    if category is not None:
        return category

    name = current_app.config["DEFAULT_CATEGORY_NAME"]
    category = Category.query.filter_by(name=name).first()
    if category is None:
        category = Category(
            name=name,
            icon=current_app.config["DEFAULT_CATEGORY_ICON"],
            parent_id=None,
            sort_order=next_sort_order(Category, None),
        )
        db.session.add(category)
        db.session.flush()
        current_app.logger.info("Created default category %r", name)
    config.default_category_id = category.id
    return category


def default_category() -> Category:
    config = db.session.get(SiteConfig, SITE_CONFIG_ID)
    if config is None:
        raise StorageError("store is not initialized")
    return ensure_default_category(config)


def _has_children(category_id: int) -> bool:
    return Category.query.filter_by(parent_id=category_id).first() is not None


def _validate_parent(parent_id: int, category: Category | None) -> Category:
    parent = db.session.get(Category, parent_id)
    if parent is None:
        raise NotFoundError("parent category not found", parent_id=parent_id)
    if category is not None and parent.id == category.id:
        raise ValidationError("a category cannot be its own parent")
    if parent.parent_id is not None:
        raise ValidationError(
            "subcategories cannot have children", parent_id=parent_id
        )
    if category is not None and _has_children(category.id):
        raise ValidationError(
            "a category with subcategories cannot be nested",
            category_id=category.id,
        )
    return parent


def _name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = Category.query.filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return query.first() is not None


def _flush_named(name: str) -> None:
    # The unique index still catches a name inserted by a concurrent writer.
    try:
        db.session.flush()
    except IntegrityError:
        raise ConflictError("category already exists", name=name) from None


def create_category(name: str, icon: str = "", parent_id=None) -> Category:
    name = text_field(name, "name")
    icon = text_field(icon, "icon", required=False)
    parent_id = coerce_optional_id(parent_id, "parent_id")

    with atomic():
        if _name_taken(name):
            raise ConflictError("category already exists", name=name)
        if parent_id is not None:
            _validate_parent(parent_id, None)

        category = Category(
            name=name,
            icon=icon,
            parent_id=parent_id,
            sort_order=next_sort_order(Category, parent_id),
        )
        db.session.add(category)
        _flush_named(name)
        category_id = category.id

    current_app.logger.debug("Created category %s (%r)", category_id, name)
    return category


def update_category(category_id: int, fields: dict) -> Category:
    with atomic():
        category = get_category(category_id)

        if "name" in fields:
            name = text_field(fields.get("name"), "name")
            if name != category.name:
                if _name_taken(name, exclude_id=category.id):
                    raise ConflictError("category already exists", name=name)
                category.name = name
                _flush_named(name)

        if "icon" in fields:
            category.icon = text_field(fields.get("icon"), "icon", required=False)

        if "parent_id" in fields:
            parent_id = coerce_optional_id(fields.get("parent_id"), "parent_id")
            if parent_id != category.parent_id:
                if parent_id is not None:
                    _validate_parent(parent_id, category)
                previous_parent_id = category.parent_id
                new_order = next_sort_order(Category, parent_id)
                category.parent_id = parent_id
                category.sort_order = new_order
                db.session.flush()
                normalize_group(Category, previous_parent_id)

    return category


def delete_category(category_id: int) -> list[int]:
    with atomic():
        category = get_category(category_id)
        default_id = default_category().id
        group_parent_id = category.parent_id

        children = (
            Category.query.filter_by(parent_id=category.id)
            .order_by(Category.sort_order.asc(), Category.id.asc())
            .all()
        )
        targets = [category, *children]
        target_ids = [item.id for item in targets]

        links = Link.query.filter(Link.category_id.in_(target_ids)).all()
        for link in links:
            db.session.delete(link)

        deleted_ids: list[int] = []
        for item in targets:
            if item.id == default_id:
                if item.parent_id is not None and item.parent_id in target_ids:
                    item.sort_order = next_sort_order(Category, None)
                    item.parent_id = None
                continue
            db.session.delete(item)
            deleted_ids.append(item.id)

        db.session.flush()
        normalize_group(Category, group_parent_id)
        if group_parent_id is not None:
            normalize_group(Category, None)

    current_app.logger.info(
        "Deleted categories %s with %d links", deleted_ids, len(links)
    )
    return deleted_ids


def clear_links(category_id: int) -> int:
    with atomic():
        get_category(category_id)
        links = Link.query.filter_by(category_id=category_id).all()
        for link in links:
            db.session.delete(link)
    current_app.logger.info(
        "Cleared %d links from category %s", len(links), category_id
    )
    return len(links)


def find_orphans() -> list[Category]:
    categories = Category.query.order_by(Category.id.asc()).all()
    known_ids = {category.id for category in categories}
    return [
        category
        for category in categories
        if category.parent_id is not None and category.parent_id not in known_ids
    ]


def cleanup_orphans() -> list[int]:
    with atomic():
        categories = Category.query.order_by(Category.id.asc()).all()
        known_ids = {category.id for category in categories}
        doomed = {
            category.id
            for category in categories
            if category.parent_id is not None and category.parent_id not in known_ids
        }

        # Descendants of an orphan lose their parent with it.
        grew = bool(doomed)
        while grew:
            grew = False
            for category in categories:
                if category.id not in doomed and category.parent_id in doomed:
                    doomed.add(category.id)
                    grew = True

        if not doomed:
            return []

        default_id = default_category().id
        if default_id in doomed:
            keeper = db.session.get(Category, default_id)
            keeper.sort_order = next_sort_order(Category, None)
            keeper.parent_id = None
            doomed.discard(default_id)

        links = Link.query.filter(Link.category_id.in_(doomed)).all()
        for link in links:
            db.session.delete(link)
        for category in categories:
            if category.id in doomed:
                db.session.delete(category)
        db.session.flush()
        normalize_group(Category, None)

    deleted_ids = sorted(doomed)
    current_app.logger.warning(
        "Removed %d orphaned categories %s and %d links",
        len(deleted_ids),
        deleted_ids,
        len(links),
    )
    return deleted_ids


def reorder_categories(parent_id, ordered_ids) -> list[Category]:
    parent_id = coerce_optional_id(parent_id, "parent_id")
    with atomic():
        if parent_id is not None:
            get_category(parent_id)
        changed = reorder_group(Category, parent_id, ordered_ids)
    return changed
