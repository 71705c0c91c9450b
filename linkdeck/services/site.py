from __future__ import annotations

from flask import current_app

from linkdeck.errors import ValidationError
from linkdeck.extensions import db
from linkdeck.models import SITE_CONFIG_ID, SiteConfig
from linkdeck.services.categories import ensure_default_category
from linkdeck.services.common import text_field
from linkdeck.services.transactions import atomic

DISPLAY_FIELDS = (
    "site_name",
    "site_logo",
    "site_description",
    "page_title",
    "page_description",
    "page_icon",
)


def _create_site_config() -> SiteConfig:
    config = SiteConfig(
        id=SITE_CONFIG_ID,
        admin_username=current_app.config["DEFAULT_ADMIN_USERNAME"],
        login_path=current_app.config["DEFAULT_LOGIN_PATH"],
    )
    config.set_password(current_app.config["DEFAULT_ADMIN_PASSWORD"])
    db.session.add(config)
    db.session.flush()
    current_app.logger.info(
        "Initialized site configuration for admin %r", config.admin_username
    )
    return config


def load_site_config() -> SiteConfig:
    config = db.session.get(SiteConfig, SITE_CONFIG_ID)
    if config is None:
        with atomic():
            config = _create_site_config()
    return config


def initialize_store() -> SiteConfig:
    with atomic():
        config = db.session.get(SiteConfig, SITE_CONFIG_ID) or _create_site_config()
        ensure_default_category(config)
    return config


def update_site_config(fields: dict) -> SiteConfig:
    with atomic():
        config = load_site_config()
        for field in DISPLAY_FIELDS:
            if field in fields:
                value = text_field(fields.get(field), field, required=False)
                setattr(config, field, value)
        if not config.site_name:
            raise ValidationError("site_name must not be empty")
    return config


def change_admin_credentials(
    old_password: str,
    username: str | None = None,
    password: str | None = None,
    login_path: str | None = None,
) -> SiteConfig:
    old_password = text_field(old_password, "old_password", required=False)
    username = text_field(username, "username", required=False)
    password = text_field(password, "password", required=False)
    login_path = text_field(login_path, "login_path", required=False).strip("/")

    with atomic():
        config = load_site_config()
        if not config.check_password(old_password):
            raise ValidationError("old password is incorrect")
        if username:
            config.admin_username = username
        if login_path:
            config.login_path = login_path
        if password:
            config.set_password(password)
    current_app.logger.info("Updated admin credentials for %r", config.admin_username)
    return config
