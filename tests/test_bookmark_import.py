import pytest

from linkdeck.errors import FormatError, ValidationError
from linkdeck.services.bookmark_import import (
    SOURCE_BROWSER,
    SOURCE_NATIVE,
    bookmarks_to_tree,
    detect_format,
    parse_bookmark_html,
    parse_browser_document,
    parse_native_document,
)


def test_parse_bookmark_html_handles_nested_netscape_structure():
    html = """
<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
  <DT><H3>Root Folder</H3>
  <DL><p>
    <DT><A HREF="https://example.com/a">A</A>
    <DT><H3>Inner Folder</H3>
    <DL><p>
      <DT><A HREF="https://example.com/b">B</A>
      <DT><A HREF="https://example.com/c#frag">C</A>
    </DL><p>
  </DL><p>
  <DT><A HREF="https://example.com/root">Root Link</A>
</DL><p>
"""

    rows = parse_bookmark_html(html)
    urls = [row.url for row in rows]
    assert urls == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c#frag",
        "https://example.com/root",
    ]

    assert rows[0].folder_path == ["Root Folder"]
    assert rows[1].folder_path == ["Root Folder", "Inner Folder"]
    assert rows[2].folder_path == ["Root Folder", "Inner Folder"]
    assert rows[3].folder_path == []


def test_bookmarks_to_tree_groups_entries_by_folder_path():
    html = """
<DL><p>
  <DT><H3>Work</H3>
  <DL><p>
    <DT><A HREF="https://one.test">One</A>
    <DT><A HREF="https://two.test">Two</A>
  </DL><p>
</DL><p>
"""
    tree = bookmarks_to_tree(parse_bookmark_html(html))
    children = tree["roots"]["bookmark_bar"]["children"]
    assert len(children) == 1
    assert children[0]["name"] == "Work"
    assert [node["url"] for node in children[0]["children"]] == [
        "https://one.test",
        "https://two.test",
    ]


def test_detect_format():
    assert detect_format({"roots": {}}) == SOURCE_BROWSER
    assert detect_format({"categories": [], "links": []}) == SOURCE_NATIVE
    assert detect_format({"_format_version": "1.0"}) == SOURCE_NATIVE
    with pytest.raises(FormatError):
        detect_format({"foo": 1})
    with pytest.raises(FormatError):
        detect_format("roots")


def test_parse_native_document_normalizes_fields():
    document = parse_native_document(
        {
            "categories": [{"id": 7, "name": " Tools ", "parent_id": 3}],
            "links": [
                {
                    "url": " https://a.test ",
                    "title": "",
                    "category_id": 7,
                    "tags": ["B", "a", "b"],
                    "created_at": "2024-03-01 10:00:00",
                }
            ],
            "menu_links": [{"title": "Home", "url": "https://h.test", "position": "RIGHT"}],
        }
    )

    category = document.categories[0]
    link = document.links[0]
    assert (category.key, category.name, category.parent_key) == ("7", "Tools", "3")
    assert link.url == "https://a.test"
    assert link.title is None
    assert link.category_key == "7"
    assert link.tags == "a,b"
    assert link.created_at.year == 2024
    assert link.created_at.tzinfo is not None
    assert document.menu_links[0].position == "right"


def test_parse_native_document_rejects_nameless_category():
    with pytest.raises(ValidationError):
        parse_native_document({"categories": [{"id": 1, "name": ""}], "links": []})
    with pytest.raises(FormatError):
        parse_native_document({"categories": {"id": 1}, "links": []})


def test_parse_browser_document_flattens_deep_folders(app):
    with app.app_context():
        document = parse_browser_document(
            {
                "roots": {
                    "bookmark_bar": {
                        "children": [
                            {
                                "type": "folder",
                                "name": "L1",
                                "children": [
                                    {
                                        "type": "folder",
                                        "name": "L2",
                                        "children": [
                                            {"type": "folder", "name": "L3", "children": []}
                                        ],
                                    }
                                ],
                            }
                        ]
                    },
                    "other": {
                        "children": [{"type": "url", "name": "Loose", "url": "https://l.test"}]
                    },
                }
            }
        )

        by_name = {category.name: category for category in document.categories}
        assert by_name["L1"].parent_key is None
        assert by_name["L2"].parent_key == by_name["L1"].key
        assert by_name["L3"].parent_key == by_name["L1"].key
        assert document.links[0].category_key == by_name["Uncategorized"].key
        assert document.links[0].description == "https://l.test"
