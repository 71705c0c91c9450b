from __future__ import annotations

import json

from flask import current_app, jsonify, request

from linkdeck.api import api_bp
from linkdeck.errors import FormatError, LinkDeckError, ValidationError
from linkdeck.services.backup import export_backup
from linkdeck.services.categories import (
    cleanup_orphans,
    clear_links,
    create_category,
    delete_category,
    find_orphans,
    get_category,
    list_categories,
    reorder_categories,
    update_category,
)
from linkdeck.services.common import coerce_optional_id, text_field
from linkdeck.services.links import (
    create_link,
    delete_link,
    get_link,
    list_links,
    move_link,
    reorder_within_category,
    update_link,
)
from linkdeck.services.menu_links import (
    create_menu_link,
    delete_menu_link,
    list_menu_links,
    reorder_menu_links,
    update_menu_link,
)
from linkdeck.services.reconcile import import_bookmark_html, import_document
from linkdeck.services.security import api_auth_required, issue_api_token
from linkdeck.services.site import (
    change_admin_credentials,
    load_site_config,
    update_site_config,
)


@api_bp.errorhandler(LinkDeckError)
def handle_linkdeck_error(exc: LinkDeckError):
    if exc.status_code >= 500:
        current_app.logger.error("Request failed: %s", exc.message)
    return jsonify(exc.to_dict()), exc.status_code


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "LinkDeck"})


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = _payload()
    username = text_field(payload.get("username"), "username", required=False)
    password = text_field(payload.get("password"), "password", required=False)

    config = load_site_config()
    if username != config.admin_username or not config.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token = issue_api_token(current_app.config["SECRET_KEY"])
    return jsonify({"token": token, "username": config.admin_username})


@api_bp.route("/config/site", methods=["GET"])
def site_config_get():
    config = load_site_config()
    payload = config.as_dict()
    payload["login_path"] = config.login_path
    return jsonify(payload)


@api_bp.route("/config/site", methods=["PUT"])
@api_auth_required
def site_config_update():
    config = update_site_config(_payload())
    return jsonify(config.as_dict())


@api_bp.route("/config/admin", methods=["PUT"])
@api_auth_required
def admin_credentials_update():
    payload = _payload()
    config = change_admin_credentials(
        payload.get("old_password") or "",
        username=payload.get("username"),
        password=payload.get("password"),
        login_path=payload.get("login_path"),
    )
    return jsonify({"status": "updated", "username": config.admin_username})


@api_bp.route("/categories", methods=["GET"])
def categories_list():
    return jsonify({"items": [item.as_dict() for item in list_categories()]})


@api_bp.route("/categories", methods=["POST"])
@api_auth_required
def categories_create():
    payload = _payload()
    category = create_category(
        payload.get("name") or "",
        icon=payload.get("icon") or "",
        parent_id=payload.get("parent_id"),
    )
    return jsonify(category.as_dict()), 201


@api_bp.route("/categories/reorder", methods=["POST"])
@api_auth_required
def categories_reorder():
    payload = _payload()
    changed = reorder_categories(
        payload.get("parent_id"), payload.get("ordered_ids") or []
    )
    return jsonify({"status": "reordered", "changed": len(changed)})


@api_bp.route("/categories/orphans", methods=["GET"])
@api_auth_required
def categories_orphans():
    return jsonify({"items": [item.as_dict() for item in find_orphans()]})


@api_bp.route("/categories/cleanup-orphans", methods=["POST"])
@api_auth_required
def categories_cleanup_orphans():
    deleted_ids = cleanup_orphans()
    return jsonify({"deletedIds": deleted_ids, "count": len(deleted_ids)})


@api_bp.route("/categories/<int:category_id>", methods=["GET"])
def categories_get(category_id: int):
    return jsonify(get_category(category_id).as_dict())


@api_bp.route("/categories/<int:category_id>", methods=["PATCH"])
@api_auth_required
def categories_update(category_id: int):
    category = update_category(category_id, _payload())
    return jsonify(category.as_dict())


@api_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@api_auth_required
def categories_delete(category_id: int):
    deleted_ids = delete_category(category_id)
    return jsonify({"status": "deleted", "deletedIds": deleted_ids})


@api_bp.route("/categories/<int:category_id>/links", methods=["DELETE"])
@api_auth_required
def categories_clear_links(category_id: int):
    count = clear_links(category_id)
    return jsonify({"status": "cleared", "count": count})


@api_bp.route("/categories/<int:category_id>/links/reorder", methods=["POST"])
@api_auth_required
def categories_reorder_links(category_id: int):
    changed = reorder_within_category(
        category_id, _payload().get("ordered_ids") or []
    )
    return jsonify({"status": "reordered", "changed": len(changed)})


@api_bp.route("/links", methods=["GET"])
def links_list():
    category_id = coerce_optional_id(request.args.get("category_id"), "category_id")
    items = list_links(category_id=category_id, q=request.args.get("q"))
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/links", methods=["POST"])
@api_auth_required
def links_create():
    payload = _payload()
    link = create_link(
        payload.get("url") or "",
        title=payload.get("title"),
        description=payload.get("description"),
        icon=payload.get("icon"),
        category_id=payload.get("category_id"),
        tags=payload.get("tags"),
    )
    return jsonify(link.as_dict()), 201


@api_bp.route("/links/<int:link_id>", methods=["GET"])
def links_get(link_id: int):
    return jsonify(get_link(link_id).as_dict())


@api_bp.route("/links/<int:link_id>", methods=["PATCH"])
@api_auth_required
def links_update(link_id: int):
    link = update_link(link_id, _payload())
    return jsonify(link.as_dict())


@api_bp.route("/links/<int:link_id>", methods=["DELETE"])
@api_auth_required
def links_delete(link_id: int):
    delete_link(link_id)
    return jsonify({"status": "deleted"})


@api_bp.route("/links/<int:link_id>/move", methods=["PATCH"])
@api_auth_required
def links_move(link_id: int):
    payload = _payload()
    link = move_link(
        link_id,
        target_category_id=payload.get("category_id"),
        target_sort_order=payload.get("sort_order"),
    )
    return jsonify(link.as_dict())


@api_bp.route("/menu-links", methods=["GET"])
def menu_links_list():
    return jsonify({"items": [item.as_dict() for item in list_menu_links()]})


@api_bp.route("/menu-links", methods=["POST"])
@api_auth_required
def menu_links_create():
    payload = _payload()
    menu_link = create_menu_link(
        payload.get("title") or "",
        payload.get("url") or "",
        icon=payload.get("icon"),
        position=payload.get("position"),
    )
    return jsonify(menu_link.as_dict()), 201


@api_bp.route("/menu-links/reorder", methods=["POST"])
@api_auth_required
def menu_links_reorder():
    payload = _payload()
    changed = reorder_menu_links(
        payload.get("position"), payload.get("ordered_ids") or []
    )
    return jsonify({"status": "reordered", "changed": len(changed)})


@api_bp.route("/menu-links/<int:menu_link_id>", methods=["PATCH"])
@api_auth_required
def menu_links_update(menu_link_id: int):
    menu_link = update_menu_link(menu_link_id, _payload())
    return jsonify(menu_link.as_dict())


@api_bp.route("/menu-links/<int:menu_link_id>", methods=["DELETE"])
@api_auth_required
def menu_links_delete(menu_link_id: int):
    delete_menu_link(menu_link_id)
    return jsonify({"status": "deleted"})


@api_bp.route("/backup/export", methods=["GET"])
@api_auth_required
def backup_export():
    return jsonify(export_backup())


@api_bp.route("/backup/import", methods=["POST"])
@api_auth_required
def backup_import():
    upload = request.files.get("file")
    if upload is None:
        data = request.get_json(silent=True)
        if data is None:
            raise FormatError("request body must be a JSON document or a file upload")
        result = import_document(data)
        return jsonify({"status": "imported", "stats": result.as_dict()})

    raw = upload.read(current_app.config["MAX_IMPORT_BYTES"] + 1)
    if len(raw) > current_app.config["MAX_IMPORT_BYTES"]:
        raise ValidationError("import file is too large")
    text = raw.decode("utf-8", errors="ignore")
    filename = (upload.filename or "").lower()

    if filename.endswith((".html", ".htm")) or text.lstrip().startswith("<"):
        result = import_bookmark_html(text)
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            raise FormatError("import file is not valid JSON") from None
        result = import_document(data)
    return jsonify({"status": "imported", "stats": result.as_dict()})
