from __future__ import annotations

from linkdeck.errors import NotFoundError, ValidationError
from linkdeck.extensions import db
from linkdeck.models import MENU_POSITIONS, MenuLink
from linkdeck.services.common import clean_text, text_field
from linkdeck.services.ordering import next_sort_order, normalize_group, reorder_group
from linkdeck.services.transactions import atomic


def normalize_position(value, default: str | None = "left") -> str:
    position = (str(value).strip().lower() if value is not None else "") or default
    if position not in MENU_POSITIONS:
        raise ValidationError("invalid menu position", position=value)
    return position


def list_menu_links() -> list[MenuLink]:
    return MenuLink.query.order_by(
        MenuLink.position.asc(), MenuLink.sort_order.asc(), MenuLink.id.asc()
    ).all()


def get_menu_link(menu_link_id: int) -> MenuLink:
    menu_link = db.session.get(MenuLink, menu_link_id)
    if menu_link is None:
        raise NotFoundError("menu link not found", menu_link_id=menu_link_id)
    return menu_link


def create_menu_link(title: str, url: str, icon: str | None = None, position=None):
    title = text_field(title, "title")
    url = text_field(url, "url")
    position = normalize_position(position)

    with atomic():
        menu_link = MenuLink(
            title=title,
            url=url,
            icon=clean_text(icon),
            position=position,
            sort_order=next_sort_order(MenuLink, position),
        )
        db.session.add(menu_link)
        db.session.flush()
    return menu_link


def update_menu_link(menu_link_id: int, fields: dict) -> MenuLink:
    with atomic():
        menu_link = get_menu_link(menu_link_id)
        for field in ("title", "url"):
            if field in fields:
                setattr(menu_link, field, text_field(fields.get(field), field))
        if "icon" in fields:
            menu_link.icon = clean_text(fields.get("icon"))
        if "position" in fields:
            position = normalize_position(fields.get("position"))
            if position != menu_link.position:
                previous = menu_link.position
                new_order = next_sort_order(MenuLink, position)
                menu_link.position = position
                menu_link.sort_order = new_order
                db.session.flush()
                normalize_group(MenuLink, previous)
    return menu_link


def delete_menu_link(menu_link_id: int) -> None:
    with atomic():
        menu_link = get_menu_link(menu_link_id)
        position = menu_link.position
        db.session.delete(menu_link)
        db.session.flush()
        normalize_group(MenuLink, position)


def reorder_menu_links(position, ordered_ids) -> list[MenuLink]:
    position = normalize_position(position)
    with atomic():
        changed = reorder_group(MenuLink, position, ordered_ids)
    return changed
