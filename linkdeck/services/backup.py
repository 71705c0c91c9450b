from __future__ import annotations

from linkdeck.models import Category, Link, MenuLink, utcnow
from linkdeck.services.bookmark_import import FORMAT_VERSION


def export_backup() -> dict:
    categories = Category.query.order_by(Category.id.asc()).all()
    links = Link.query.order_by(Link.id.asc()).all()
    menu_links = MenuLink.query.order_by(MenuLink.id.asc()).all()
    return {
        "_format_version": FORMAT_VERSION,
        "_export_time": utcnow().isoformat(),
        "categories": [category.as_dict() for category in categories],
        "links": [link.as_dict() for link in links],
        "menu_links": [menu_link.as_dict() for menu_link in menu_links],
    }
