from __future__ import annotations

from urllib.parse import urlparse

from linkdeck.errors import ValidationError


def parse_tags(raw: str) -> list[str]:
    if not raw:
        return []
    tokens = [t.strip().lower() for t in raw.replace(";", ",").split(",")]
    return sorted({t for t in tokens if t})


def format_tags(value) -> str:
    if isinstance(value, (list, tuple)):
        raw = ",".join(str(item) for item in value if item is not None)
    else:
        raw = str(value or "")
    return ",".join(parse_tags(raw))


def clean_text(value) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


def text_field(value, field: str, required: bool = True) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    text = value.strip()
    if required and not text:
        raise ValidationError(f"{field} is required", field=field)
    return text


def coerce_id(value, field: str = "id") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"invalid {field}", field=field)
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"invalid {field}", field=field) from None
    if parsed <= 0:
        raise ValidationError(f"invalid {field}", field=field)
    return parsed


def coerce_optional_id(value, field: str = "id") -> int | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return coerce_id(value, field)


def coerce_position(value, field: str = "sort_order") -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"invalid {field}", field=field)
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"invalid {field}", field=field) from None
    if parsed < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    return parsed


def favicon_for(url: str) -> str:
    parsed = urlparse(url or "")
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"


def title_from_url(url: str) -> str:
    hostname = urlparse(url or "").hostname or ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    name = hostname.split(".")[0] if hostname else ""
    if not name:
        return "Link"
    return name[:1].upper() + name[1:]
