from __future__ import annotations

from sqlalchemy import inspect, text

from linkdeck.extensions import db


def migrate_legacy_ordering_columns() -> bool:
    engine = db.engine
    if engine.dialect.name != "sqlite":
        return False

    inspector = inspect(engine)
    if not inspector.has_table("categories") or not inspector.has_table("links"):
        return False

    changed = False
    category_columns = {column["name"] for column in inspector.get_columns("categories")}
    if "parent_id" not in category_columns:
        db.session.execute(
            text("ALTER TABLE categories ADD COLUMN parent_id INTEGER DEFAULT NULL")
        )
        changed = True

    link_columns = {column["name"] for column in inspector.get_columns("links")}
    if "sort_order" not in link_columns:
        db.session.execute(
            text("ALTER TABLE links ADD COLUMN sort_order INTEGER NOT NULL DEFAULT 0")
        )
        rows = db.session.execute(
            text("SELECT id, category_id FROM links ORDER BY category_id, id")
        ).mappings()

        positions: dict[int | None, int] = {}
        for row in rows.all():
            position = positions.get(row["category_id"], 0)
            db.session.execute(
                text("UPDATE links SET sort_order = :position WHERE id = :id"),
                {"position": position, "id": row["id"]},
            )
            positions[row["category_id"]] = position + 1
        changed = True

    db.session.commit()
    return changed
