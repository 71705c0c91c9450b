from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from linkdeck.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


MENU_POSITIONS = ("left", "right")
SITE_CONFIG_ID = 1


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    icon = db.Column(db.String(512), nullable=False, default="")
    parent_id = db.Column(db.Integer, nullable=True, index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_category_parent_order", "parent_id", "sort_order"),
    )

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon or "",
            "parent_id": self.parent_id,
            "sort_order": self.sort_order,
        }


class Link(db.Model):
    __tablename__ = "links"

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.Text, nullable=False, index=True)
    title = db.Column(db.String(512), nullable=True)
    description = db.Column(db.Text, nullable=True)
    icon = db.Column(db.Text, nullable=True)
    category_id = db.Column(db.Integer, nullable=False, index=True)
    tags = db.Column(db.Text, nullable=False, default="")
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_link_category_order", "category_id", "sort_order"),
    )

    def as_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title or "",
            "description": self.description or "",
            "icon": self.icon or "",
            "category_id": self.category_id,
            "tags": self.tags or "",
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class MenuLink(db.Model):
    __tablename__ = "menu_links"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    url = db.Column(db.Text, nullable=False)
    icon = db.Column(db.Text, nullable=True)
    position = db.Column(db.String(16), nullable=False, default="left")
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def as_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "icon": self.icon or "",
            "position": self.position,
            "sort_order": self.sort_order,
        }


class SiteConfig(db.Model):
    __tablename__ = "site_config"

    id = db.Column(db.Integer, primary_key=True, default=SITE_CONFIG_ID)
    site_name = db.Column(db.String(255), nullable=False, default="LinkDeck")
    site_logo = db.Column(db.Text, nullable=False, default="")
    site_description = db.Column(db.Text, nullable=False, default="")
    page_title = db.Column(db.String(255), nullable=False, default="LinkDeck")
    page_description = db.Column(db.Text, nullable=False, default="")
    page_icon = db.Column(db.Text, nullable=False, default="")
    admin_username = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    login_path = db.Column(db.String(120), nullable=False)
    default_category_id = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        db.CheckConstraint(f"id = {SITE_CONFIG_ID}", name="ck_site_config_singleton"),
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def as_dict(self):
        return {
            "site_name": self.site_name,
            "site_logo": self.site_logo,
            "site_description": self.site_description,
            "page_title": self.page_title,
            "page_description": self.page_description,
            "page_icon": self.page_icon,
        }
