import pytest

from linkdeck.errors import ConflictError, NotFoundError, ValidationError
from linkdeck.extensions import db
from linkdeck.models import Category, Link
from linkdeck.services.categories import (
    cleanup_orphans,
    clear_links,
    create_category,
    default_category,
    delete_category,
    find_orphans,
    reorder_categories,
    update_category,
)
from linkdeck.services.links import create_link
from linkdeck.services.ordering import ordered_siblings


def _top_level_names():
    return [category.name for category in ordered_siblings(Category, None)]


def _assert_dense(model, group_value):
    orders = [item.sort_order for item in ordered_siblings(model, group_value)]
    assert orders == list(range(len(orders)))


def test_create_appends_to_sibling_group(app):
    with app.app_context():
        tools = create_category("Tools", icon="🛠")
        news = create_category("News")
        child_a = create_category("CLI", parent_id=tools.id)
        child_b = create_category("Editors", parent_id=tools.id)

        assert _top_level_names() == ["Favorites", "Tools", "News"]
        assert news.sort_order == 2
        assert (child_a.sort_order, child_b.sort_order) == (0, 1)
        assert child_a.parent_id == tools.id


def test_create_rejects_duplicate_name_and_third_level(app):
    with app.app_context():
        tools = create_category("Tools")
        child = create_category("CLI", parent_id=tools.id)

        with pytest.raises(ConflictError):
            create_category("Tools")
        with pytest.raises(ValidationError):
            create_category("Too Deep", parent_id=child.id)
        with pytest.raises(NotFoundError):
            create_category("Lost", parent_id=999)
        with pytest.raises(ValidationError):
            create_category("   ")

        assert Category.query.count() == 3


def test_conflict_error_is_a_validation_error():
    assert issubclass(ConflictError, ValidationError)


def test_update_reparents_and_reindexes_old_group(app):
    with app.app_context():
        tools = create_category("Tools")
        news = create_category("News")
        create_category("Blogs")

        update_category(news.id, {"parent_id": tools.id})

        assert _top_level_names() == ["Favorites", "Tools", "Blogs"]
        _assert_dense(Category, None)
        assert news.parent_id == tools.id
        assert news.sort_order == 0


def test_update_rejects_invalid_nesting(app):
    with app.app_context():
        tools = create_category("Tools")
        news = create_category("News")
        create_category("CLI", parent_id=tools.id)

        with pytest.raises(ValidationError):
            update_category(tools.id, {"parent_id": news.id})
        with pytest.raises(ValidationError):
            update_category(news.id, {"parent_id": news.id})
        with pytest.raises(NotFoundError):
            update_category(news.id, {"parent_id": 404})
        with pytest.raises(ConflictError):
            update_category(news.id, {"name": "Tools"})

        assert tools.parent_id is None
        assert news.name == "News"


def test_update_can_move_subcategory_back_to_top_level(app):
    with app.app_context():
        tools = create_category("Tools")
        cli = create_category("CLI", parent_id=tools.id)
        create_category("Editors", parent_id=tools.id)

        update_category(cli.id, {"parent_id": None, "name": "Shell", "icon": "🐚"})

        assert cli.parent_id is None
        assert cli.name == "Shell"
        assert _top_level_names()[-1] == "Shell"
        _assert_dense(Category, tools.id)


def test_delete_cascades_to_children_and_links(app):
    with app.app_context():
        tools = create_category("Tools")
        cli = create_category("CLI", parent_id=tools.id)
        editors = create_category("Editors", parent_id=tools.id)
        keep = create_category("Keep")
        create_link("https://t.test", category_id=tools.id)
        create_link("https://c1.test", category_id=cli.id)
        create_link("https://c2.test", category_id=cli.id)
        create_link("https://e.test", category_id=editors.id)
        create_link("https://k.test", category_id=keep.id)
        categories_before = Category.query.count()
        expected = sorted([tools.id, cli.id, editors.id])

        deleted = delete_category(tools.id)

        assert sorted(deleted) == expected
        assert Category.query.count() == categories_before - 3
        assert [link.url for link in Link.query.all()] == ["https://k.test"]
        assert _top_level_names() == ["Favorites", "Keep"]
        _assert_dense(Category, None)


def test_delete_never_removes_default_category(app):
    with app.app_context():
        favorites = default_category()
        child = create_category("Pinned", parent_id=favorites.id)
        create_link("https://fav.test")
        create_link("https://pinned.test", category_id=child.id)
        child_id = child.id

        deleted = delete_category(favorites.id)

        assert deleted == [child_id]
        assert db.session.get(Category, favorites.id) is not None
        assert Link.query.count() == 0


def test_delete_detaches_default_category_when_parent_removed(app):
    with app.app_context():
        tools = create_category("Tools")
        favorites = default_category()
        update_category(favorites.id, {"parent_id": tools.id})
        tools_id = tools.id

        deleted = delete_category(tools_id)

        assert deleted == [tools_id]
        assert favorites.parent_id is None
        assert find_orphans() == []


def test_delete_unknown_category_raises(app):
    with app.app_context():
        with pytest.raises(NotFoundError):
            delete_category(12345)


def test_clear_links_keeps_category(app):
    with app.app_context():
        tools = create_category("Tools")
        create_link("https://a.test", category_id=tools.id)
        create_link("https://b.test", category_id=tools.id)
        create_link("https://other.test")

        assert clear_links(tools.id) == 2
        assert db.session.get(Category, tools.id) is not None
        assert Link.query.count() == 1


def test_cleanup_orphans_is_idempotent(app):
    with app.app_context():
        tools = create_category("Tools")
        db.session.add(Category(name="Ghost", parent_id=777, sort_order=0))
        db.session.commit()
        ghost_id = Category.query.filter_by(name="Ghost").one().id
        db.session.add(Link(url="https://ghost.test", category_id=ghost_id))
        create_link("https://tools.test", category_id=tools.id)

        assert [c.name for c in find_orphans()] == ["Ghost"]

        first = cleanup_orphans()
        second = cleanup_orphans()

        assert first == [ghost_id]
        assert second == []
        assert find_orphans() == []
        assert [link.url for link in Link.query.all()] == ["https://tools.test"]


def test_reorder_top_level_categories(app):
    with app.app_context():
        tools = create_category("Tools")
        news = create_category("News")
        favorites = default_category()

        reorder_categories(None, [news.id, favorites.id, tools.id])

        assert _top_level_names() == ["News", "Favorites", "Tools"]
        _assert_dense(Category, None)


def test_reorder_subcategories_requires_existing_parent(app):
    with app.app_context():
        with pytest.raises(NotFoundError):
            reorder_categories(55, [])


def test_unique_name_race_surfaces_as_conflict(app, monkeypatch):
    from linkdeck.services import categories

    with app.app_context():
        tools = create_category("Tools")
        news = create_category("News")
        monkeypatch.setattr(categories, "_name_taken", lambda *args, **kwargs: False)

        with pytest.raises(ConflictError):
            create_category("Tools")
        with pytest.raises(ConflictError):
            update_category(news.id, {"name": "Tools"})

        assert Category.query.count() == 3
        assert db.session.get(Category, news.id).name == "News"
        assert tools.name == "Tools"


def test_non_string_names_are_rejected(app):
    with app.app_context():
        with pytest.raises(ValidationError):
            create_category(5)
        tools = create_category("Tools")
        with pytest.raises(ValidationError):
            update_category(tools.id, {"name": ["Tools"]})
