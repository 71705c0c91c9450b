from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from linkdeck.errors import LinkDeckError
from linkdeck.extensions import db
from linkdeck.models import MENU_POSITIONS, Category, Link, MenuLink, utcnow
from linkdeck.services.bookmark_import import (
    ImportDocument,
    ImportedCategory,
    ImportedLink,
    ImportedMenuLink,
    parse_html_document,
    parse_import_document,
)
from linkdeck.services.categories import default_category
from linkdeck.services.ordering import next_sort_order, normalize_group
from linkdeck.services.transactions import atomic


@dataclass
class ImportResult:
    source: str
    added_count: int = 0
    merged_count: int = 0
    skipped_count: int = 0
    categories_imported: int = 0
    categories_created: int = 0
    menu_links_added: int = 0

    def as_dict(self) -> dict:
        return {
            "source": self.source,
            "addedCount": self.added_count,
            "mergedCount": self.merged_count,
            "skippedCount": self.skipped_count,
            "categoriesImported": self.categories_imported,
            "categoriesCreated": self.categories_created,
            "menuLinksAdded": self.menu_links_added,
        }


def import_document(data) -> ImportResult:
    return reconcile_document(parse_import_document(data))


def import_bookmark_html(html: str) -> ImportResult:
    return reconcile_document(parse_html_document(html))


def reconcile_document(document: ImportDocument) -> ImportResult:
    result = ImportResult(
        source=document.source, categories_imported=len(document.categories)
    )
    try:
        with atomic():
            category_map, touched_groups = _map_categories(document.categories, result)
            touched_groups |= _attach_parents(document.categories, category_map)
            _merge_links(document.links, category_map, result)
            _merge_menu_links(document.menu_links, result)

            db.session.flush()
            for parent_id in touched_groups:
                normalize_group(Category, parent_id)
    except LinkDeckError as exc:
        exc.context.setdefault("partial", result.as_dict())
        current_app.logger.warning(
            "Import of %s document rolled back: %s", document.source, exc.message
        )
        raise

    current_app.logger.info(
        "Imported %s document: %d added, %d merged, %d skipped, %d categories",
        document.source,
        result.added_count,
        result.merged_count,
        result.skipped_count,
        result.categories_imported,
    )
    return result


def _map_categories(
    categories: list[ImportedCategory], result: ImportResult
) -> tuple[dict[str, int], set[int | None]]:
    category_map: dict[str, int] = {}
    touched: set[int | None] = set()
    ordered = sorted(
        enumerate(categories), key=lambda pair: (pair[1].sort_order, pair[0])
    )
    for _, item in ordered:
        existing = Category.query.filter_by(name=item.name).first()
        if existing:
            category_map[item.key] = existing.id
            continue

        category = Category(
            name=item.name,
            icon=item.icon or "",
            parent_id=None,
            sort_order=next_sort_order(Category, None),
        )
        db.session.add(category)
        db.session.flush()
        category_map[item.key] = category.id
        result.categories_created += 1
        touched.add(None)
    return category_map, touched


def _attach_parents(
    categories: list[ImportedCategory], category_map: dict[str, int]
) -> set[int | None]:
    touched: set[int | None] = set()
    for item in categories:
        if item.parent_key is None:
            continue
        category_id = category_map.get(item.key)
        parent_id = category_map.get(item.parent_key)
        if category_id is None or parent_id is None:
            current_app.logger.warning(
                "Dropped unknown parent %r of imported category %r",
                item.parent_key,
                item.name,
            )
            continue

        category = db.session.get(Category, category_id)
        parent = db.session.get(Category, parent_id)
        if parent.parent_id is not None:
            parent = db.session.get(Category, parent.parent_id)
            if parent is None:
                continue
        if parent.id == category.id or category.parent_id == parent.id:
            continue
        if Category.query.filter_by(parent_id=category.id).first() is not None:
            current_app.logger.warning(
                "Kept imported category %r at top level: it has subcategories",
                item.name,
            )
            continue

        touched.add(category.parent_id)
        touched.add(parent.id)
        category.sort_order = next_sort_order(Category, parent.id)
        category.parent_id = parent.id
        db.session.flush()
    return touched


def _merge_links(
    links: list[ImportedLink], category_map: dict[str, int], result: ImportResult
) -> None:
    default_id = default_category().id
    for item in links:
        if not item.url:
            result.skipped_count += 1
            continue

        existing = (
            Link.query.filter_by(url=item.url).order_by(Link.id.asc()).first()
        )
        if existing:
            if item.title:
                existing.title = item.title
            if item.description:
                existing.description = item.description
            if item.icon:
                existing.icon = item.icon
            result.merged_count += 1
            continue

        category_id = category_map.get(item.category_key) or default_id
        link = Link(
            url=item.url,
            title=item.title,
            description=item.description,
            icon=item.icon,
            category_id=category_id,
            tags=item.tags or "",
            sort_order=next_sort_order(Link, category_id),
            created_at=item.created_at or utcnow(),
        )
        db.session.add(link)
        db.session.flush()
        result.added_count += 1


def _merge_menu_links(menu_links: list[ImportedMenuLink], result: ImportResult) -> None:
    ordered = sorted(
        enumerate(menu_links), key=lambda pair: (pair[1].sort_order, pair[0])
    )
    for _, item in ordered:
        if not item.title or not item.url:
            continue
        existing = MenuLink.query.filter_by(title=item.title, url=item.url).first()
        if existing:
            continue
        position = item.position if item.position in MENU_POSITIONS else "left"
        menu_link = MenuLink(
            title=item.title,
            url=item.url,
            icon=item.icon,
            position=position,
            sort_order=next_sort_order(MenuLink, position),
        )
        db.session.add(menu_link)
        db.session.flush()
        result.menu_links_added += 1
