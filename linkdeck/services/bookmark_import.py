from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import cast

from bs4 import BeautifulSoup, Tag
from dateutil import parser as dt_parser
from flask import current_app

from linkdeck.errors import FormatError, ValidationError
from linkdeck.services.common import clean_text, favicon_for, format_tags, title_from_url

FORMAT_VERSION = "1.0"
SOURCE_NATIVE = "native"
SOURCE_BROWSER = "browser"
SOURCE_HTML = "html"

BROWSER_ROOTS = ("bookmark_bar", "other", "synced")
NATIVE_MARKERS = ("_format_version", "_export_time")


@dataclass
class ImportedCategory:
    key: str
    name: str
    icon: str = ""
    parent_key: str | None = None
    sort_order: int = 0


@dataclass
class ImportedLink:
    url: str
    title: str | None = None
    description: str | None = None
    icon: str | None = None
    category_key: str | None = None
    tags: str = ""
    created_at: datetime | None = None


@dataclass
class ImportedMenuLink:
    title: str
    url: str
    icon: str | None = None
    position: str = "left"
    sort_order: int = 0


@dataclass
class ImportDocument:
    source: str
    categories: list[ImportedCategory] = field(default_factory=list)
    links: list[ImportedLink] = field(default_factory=list)
    menu_links: list[ImportedMenuLink] = field(default_factory=list)


@dataclass
class ImportedBookmark:
    title: str
    url: str
    folder_path: list[str]


def _key(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int_or_zero(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _parse_timestamp(value) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = dt_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def detect_format(data) -> str:
    if not isinstance(data, dict):
        raise FormatError("unrecognized import format")
    if isinstance(data.get("roots"), dict):
        return SOURCE_BROWSER
    has_lists = isinstance(data.get("categories"), list) and isinstance(
        data.get("links"), list
    )
    if has_lists or any(marker in data for marker in NATIVE_MARKERS):
        return SOURCE_NATIVE
    raise FormatError("unrecognized import format")


def _list_field(data: dict, name: str) -> list:
    rows = data.get(name)
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise FormatError(f"{name} must be a list")
    return rows


def parse_native_document(data: dict) -> ImportDocument:
    document = ImportDocument(source=SOURCE_NATIVE)

    for index, row in enumerate(_list_field(data, "categories")):
        if not isinstance(row, dict):
            raise ValidationError("invalid category entry", index=index)
        name = (str(row.get("name") or "")).strip()
        if not name:
            raise ValidationError("imported category has no name", index=index)
        document.categories.append(
            ImportedCategory(
                key=_key(row.get("id")) or f"anonymous-{index}",
                name=name,
                icon=str(row.get("icon") or ""),
                parent_key=_key(row.get("parent_id")),
                sort_order=_int_or_zero(row.get("sort_order")),
            )
        )

    for index, row in enumerate(_list_field(data, "links")):
        if not isinstance(row, dict):
            raise ValidationError("invalid link entry", index=index)
        document.links.append(
            ImportedLink(
                url=(str(row.get("url") or "")).strip(),
                title=clean_text(row.get("title")),
                description=clean_text(row.get("description")),
                icon=clean_text(row.get("icon")),
                category_key=_key(row.get("category_id")),
                tags=format_tags(row.get("tags")),
                created_at=_parse_timestamp(row.get("created_at")),
            )
        )

    for index, row in enumerate(_list_field(data, "menu_links")):
        if not isinstance(row, dict):
            raise ValidationError("invalid menu link entry", index=index)
        document.menu_links.append(
            ImportedMenuLink(
                title=(str(row.get("title") or "")).strip(),
                url=(str(row.get("url") or "")).strip(),
                icon=clean_text(row.get("icon")),
                position=(str(row.get("position") or "left")).strip().lower(),
                sort_order=_int_or_zero(row.get("sort_order")),
            )
        )

    return document


class _BrowserTreeWalker:
    def __init__(self, folder_icon: str, uncategorized_name: str, uncategorized_icon: str):
        self.document = ImportDocument(source=SOURCE_BROWSER)
        self.folder_icon = folder_icon
        self.uncategorized_name = uncategorized_name
        self.uncategorized_icon = uncategorized_icon
        self.flattened = 0
        self._counter = 0
        self._uncategorized_key: str | None = None

    def _next_key(self) -> str:
        self._counter += 1
        return f"folder-{self._counter}"

    def _uncategorized(self) -> str:
        if self._uncategorized_key is None:
            self._uncategorized_key = self._next_key()
            self.document.categories.append(
                ImportedCategory(
                    key=self._uncategorized_key,
                    name=self.uncategorized_name,
                    icon=self.uncategorized_icon,
                    sort_order=len(self.document.categories),
                )
            )
        return self._uncategorized_key

    def walk(
        self,
        children: list,
        folder_key: str | None,
        top_key: str | None,
        depth: int,
    ) -> None:
        for node in children:
            if not isinstance(node, dict):
                continue
            node_type = node.get("type")
            nested = node.get("children")
            if node_type == "folder" or (node_type is None and isinstance(nested, list)):
                self._add_folder(node, folder_key, top_key, depth)
            elif node.get("url"):
                self._add_bookmark(node, folder_key)

    def _add_folder(self, node: dict, folder_key, top_key, depth: int) -> None:
        key = self._next_key()
        if folder_key is None:
            parent_key = None
            top_key = key
        elif depth >= 2:
            # Only two levels are kept: deeper folders hang off the top folder.
            parent_key = top_key
            self.flattened += 1
        else:
            parent_key = folder_key

        name = (str(node.get("name") or "")).strip() or "Untitled Folder"
        self.document.categories.append(
            ImportedCategory(
                key=key,
                name=name,
                icon=self.folder_icon,
                parent_key=parent_key,
                sort_order=len(self.document.categories),
            )
        )
        nested = node.get("children")
        if isinstance(nested, list):
            self.walk(nested, key, top_key, depth + 1)

    def _add_bookmark(self, node: dict, folder_key) -> None:
        url = str(node.get("url") or "").strip()
        self.document.links.append(
            ImportedLink(
                url=url,
                title=clean_text(node.get("name")) or title_from_url(url),
                description=url,
                icon=favicon_for(url) or None,
                category_key=folder_key or self._uncategorized(),
            )
        )


def parse_browser_document(
    data: dict,
    folder_icon: str = "📁",
    uncategorized_name: str = "Uncategorized",
    uncategorized_icon: str = "📌",
    source: str = SOURCE_BROWSER,
) -> ImportDocument:
    walker = _BrowserTreeWalker(folder_icon, uncategorized_name, uncategorized_icon)
    roots = data.get("roots") or {}
    for root_name in BROWSER_ROOTS:
        root = roots.get(root_name)
        if isinstance(root, dict) and isinstance(root.get("children"), list):
            walker.walk(root["children"], None, None, 0)

    if walker.flattened:
        current_app.logger.warning(
            "Flattened %d bookmark folders nested deeper than two levels",
            walker.flattened,
        )
    walker.document.source = source
    return walker.document


def _parser_options() -> dict:
    config = current_app.config
    return {
        "folder_icon": config["IMPORT_FOLDER_ICON"],
        "uncategorized_name": config["UNCATEGORIZED_CATEGORY_NAME"],
        "uncategorized_icon": config["UNCATEGORIZED_CATEGORY_ICON"],
    }


def parse_import_document(data) -> ImportDocument:
    kind = detect_format(data)
    if kind == SOURCE_BROWSER:
        return parse_browser_document(data, **_parser_options())
    return parse_native_document(data)


def _iter_dt_entries(dl: Tag) -> list[Tag]:
    entries: list[Tag] = []
    for dt in dl.find_all("dt"):
        if not isinstance(dt, Tag):
            continue
        parent_dl = dt.find_parent("dl")
        if parent_dl is dl:
            entries.append(cast(Tag, dt))
    return entries


def _find_nested_dl(dt: Tag) -> Tag | None:
    nested = dt.find("dl")
    if isinstance(nested, Tag):
        return nested

    sibling = dt.next_sibling
    while sibling is not None:
        if isinstance(sibling, Tag):
            name = (sibling.name or "").lower()
            if name == "dl":
                return sibling
            if name == "dt":
                return None
        sibling = sibling.next_sibling
    return None


def _find_anchor_in_dt(dt: Tag) -> Tag | None:
    for anchor in dt.find_all("a"):
        if isinstance(anchor, Tag) and anchor.find_parent("dt") is dt:
            return anchor
    return None


def _find_folder_in_dt(dt: Tag) -> Tag | None:
    for folder in dt.find_all(["h3", "h2", "h1"]):
        if isinstance(folder, Tag) and folder.find_parent("dt") is dt:
            return folder
    return None


def _parse_dl(dl: Tag, folder_path: list[str], out: list[ImportedBookmark]) -> None:
    for dt in _iter_dt_entries(dl):
        anchor = _find_anchor_in_dt(dt)
        href = ""
        if isinstance(anchor, Tag):
            href_value = anchor.get("href")
            href = href_value.strip() if isinstance(href_value, str) else ""

        if href:
            text = anchor.get_text(strip=True) if isinstance(anchor, Tag) else ""
            out.append(
                ImportedBookmark(
                    title=text.strip(),
                    url=href,
                    folder_path=folder_path.copy(),
                )
            )

        nested_dl = _find_nested_dl(dt)
        folder = _find_folder_in_dt(dt)
        if folder is None and nested_dl is not None:
            # lxml nests the folder DL inside the DT, hiding the heading's owner.
            for heading in dt.find_all(["h3", "h2", "h1"]):
                if isinstance(heading, Tag):
                    folder = heading
                    break

        if folder and nested_dl:
            name = folder.get_text(strip=True)
            _parse_dl(nested_dl, folder_path + [name], out)


def parse_bookmark_html(html: str) -> list[ImportedBookmark]:
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("dl")
    if not isinstance(root, Tag):
        return []

    bookmarks: list[ImportedBookmark] = []
    _parse_dl(root, [], bookmarks)
    return [bm for bm in bookmarks if bm.url]


def bookmarks_to_tree(entries: list[ImportedBookmark]) -> dict:
    root: dict = {"type": "folder", "name": "", "children": []}
    folders: dict[tuple[str, ...], dict] = {(): root}
    for entry in entries:
        path: tuple[str, ...] = ()
        node = root
        for part in entry.folder_path:
            name = part.strip()
            if not name:
                continue
            path = path + (name,)
            folder = folders.get(path)
            if folder is None:
                folder = {"type": "folder", "name": name, "children": []}
                node["children"].append(folder)
                folders[path] = folder
            node = folder
        node["children"].append({"type": "url", "name": entry.title, "url": entry.url})
    return {"roots": {"bookmark_bar": root}}


def parse_html_document(html: str) -> ImportDocument:
    entries = parse_bookmark_html(html)
    if not entries:
        raise FormatError("no bookmarks found in HTML document")
    return parse_browser_document(
        bookmarks_to_tree(entries), source=SOURCE_HTML, **_parser_options()
    )
