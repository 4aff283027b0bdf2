"""
Mapping of Notion pages onto the normalized event shape.

Everything in here is best effort: malformed or missing properties resolve
to safe defaults ("0" for prices, ``None`` for images, dropped attachments)
instead of raising.
"""

import re
from datetime import datetime, tzinfo
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote, urlparse
from zoneinfo import ZoneInfo

from momente.schemas.event import Event
from momente.services.notion import plain_text

VIENNA = ZoneInfo("Europe/Vienna")

DEFAULT_CATEGORY = "Sonstiges"
DEFAULT_ORGANIZER = "Event Partner"
AUDIENCE_PROPERTY = "Für wen?"
ORGANIZER_PROPERTY = "Veranstalter / Brand"
FAVORITE_PROPERTY = "Conni's Favorites"
EVENT_SORTS = [{"property": "Datum", "direction": "ascending"}]

PRICE_PROPERTIES = ("Preis", "Eintritt", "Kosten", "Price")
WEBSITE_PROPERTIES = ("URL", "Website", "Tickets")
FREE_KEYWORDS = ("gratis", "free", "kostenlos", "eintritt frei", "freier eintritt")

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".svg"}
DOCUMENT_EXTENSIONS = {
    ".pdf",
    ".doc",
    ".docx",
    ".txt",
    ".zip",
    ".ppt",
    ".pptx",
    ".xls",
    ".xlsx",
}
TRUSTED_IMAGE_HOSTS = (
    "prod-files-secure.s3.us-west-2.amazonaws.com",
    "images.unsplash.com",
    "imgur.com",
    "cloudinary.com",
)

# (field, keyword, organizer) used when the organizer relation is not readable
ORGANIZER_HINTS = (
    ("location", "schlossberg", "Schlossberg Graz"),
    ("location", "mur", "Mur Events"),
    ("title", "brunch", "Gastronomie Partner"),
    ("title", "konzert", "Musik Veranstalter"),
    ("title", "musik", "Musik Veranstalter"),
    ("title", "kunst", "Kultur Graz"),
    ("title", "kultur", "Kultur Graz"),
)


def property_text(prop: Optional[Dict[str, Any]]) -> str:
    """Plain text of a Notion property value, whatever its type."""
    if not prop:
        return ""
    kind = prop.get("type")
    value = prop.get(kind) if kind else None
    if kind in ("title", "rich_text"):
        return plain_text(value).strip()
    if kind in ("select", "status"):
        return (value or {}).get("name", "")
    if kind == "multi_select":
        return ", ".join(option.get("name", "") for option in value or [])
    if kind in ("url", "email", "phone_number"):
        return value or ""
    if kind == "number":
        return "" if value is None else str(value)
    if kind == "formula":
        formula = value or {}
        result = formula.get(formula.get("type"))
        return "" if result is None else str(result)
    return ""


def multi_select_names(prop: Optional[Dict[str, Any]]) -> List[str]:
    if not prop or prop.get("type") != "multi_select":
        return []
    return [option["name"] for option in prop.get("multi_select") or [] if option.get("name")]


def _format_number(amount: float) -> str:
    if amount <= 0:
        return "0"
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


def parse_price(raw: Any) -> str:
    """Normalize a raw price value to a numeric string, "0" meaning free."""
    if raw is None or isinstance(raw, bool):
        return "0"
    if isinstance(raw, (int, float)):
        return _format_number(raw)

    text = str(raw).strip().lower()
    if not text or any(keyword in text for keyword in FREE_KEYWORDS):
        return "0"

    cleaned = re.sub(r"[^0-9.,]", "", text).strip(".,")
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")  # 1.234,50
        else:
            cleaned = cleaned.replace(",", "")  # 1,234.50
    else:
        cleaned = cleaned.replace(",", ".")

    try:
        amount = float(cleaned)
    except ValueError:
        return "0"
    return cleaned if amount > 0 else "0"


def extract_price(properties: Dict[str, Any]) -> str:
    for name in PRICE_PROPERTIES:
        prop = properties.get(name)
        if not prop:
            continue
        if prop.get("type") == "number":
            if prop.get("number") is not None:
                return parse_price(prop["number"])
            continue
        text = property_text(prop)
        if text:
            return parse_price(text)
    return "0"


def extract_website(properties: Dict[str, Any]) -> str:
    for name in WEBSITE_PROPERTIES:
        text = property_text(properties.get(name))
        if text:
            return text
    return ""


def _url_extension(url: str) -> str:
    return PurePosixPath(unquote(urlparse(url).path)).suffix.lower()


def _is_trusted_image_host(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == trusted or host.endswith("." + trusted) for trusted in TRUSTED_IMAGE_HOSTS)


def classify_attachment(url: str) -> Optional[str]:
    """Return "image", "document" or ``None`` for an attachment URL."""
    extension = _url_extension(url)
    if extension in DOCUMENT_EXTENSIONS:
        return "document"
    if extension in IMAGE_EXTENSIONS or _is_trusted_image_host(url):
        return "image"
    return None


def _file_url(file: Dict[str, Any]) -> str:
    kind = file.get("type")
    if kind in ("file", "external"):
        return (file.get(kind) or {}).get("url") or ""
    return ""


def split_attachments(
    files: Iterable[Dict[str, Any]],
) -> Tuple[Optional[str], List[str]]:
    """First image URL and all document URLs of a Notion files property."""
    image_url = None
    documents = []
    for file in files:
        url = _file_url(file)
        if not url:
            continue
        kind = classify_attachment(url)
        if kind == "image" and image_url is None:
            image_url = url
        elif kind == "document":
            documents.append(url)
    return image_url, documents


def split_datetime(value: Optional[str], tz: tzinfo = VIENNA) -> Tuple[Optional[str], str]:
    """Split a Notion date string into local ``(YYYY-MM-DD, HH:MM)``."""
    if not value:
        return None, ""
    if "T" not in value:
        return value[:10], ""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value[:10], ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    local = moment.astimezone(tz)
    return local.date().isoformat(), local.strftime("%H:%M")


def guess_organizer(title: str, location: str) -> str:
    fields = {"title": title.lower(), "location": location.lower()}
    for field, keyword, organizer in ORGANIZER_HINTS:
        if keyword in fields[field]:
            return organizer
    return DEFAULT_ORGANIZER


def organizer_from_page(page: Dict[str, Any]) -> Optional[str]:
    """Name of a related organizer page: title, else rich text, else select."""
    properties = page.get("properties") or {}
    for kind in ("title", "rich_text", "select"):
        for prop in properties.values():
            if prop.get("type") == kind:
                text = property_text(prop)
                if text:
                    return text
    return None


def organizer_relation_id(properties: Dict[str, Any]) -> Optional[str]:
    relation = (properties.get(ORGANIZER_PROPERTY) or {}).get("relation") or []
    return relation[0].get("id") if relation else None


def page_to_event(
    page: Dict[str, Any],
    organizer: str = DEFAULT_ORGANIZER,
    tz: tzinfo = VIENNA,
) -> Event:
    properties = page.get("properties") or {}

    categories = multi_select_names(properties.get("Kategorie"))
    audiences = multi_select_names(properties.get(AUDIENCE_PROPERTY))

    date_value = (properties.get("Datum") or {}).get("date") or {}
    event_date, event_time = split_datetime(date_value.get("start"), tz)
    end_date, _ = split_datetime(date_value.get("end"), tz)

    files = (properties.get("Dateien") or {}).get("files") or []
    image_url, documents = split_attachments(files)

    favorite = properties.get(FAVORITE_PROPERTY) or {}

    return Event(
        notion_id=page["id"],
        title=property_text(properties.get("Name")) or "Untitled Event",
        subtitle=property_text(properties.get("Untertitel")),
        description=property_text(properties.get("Details"))
        or property_text(properties.get("Beschreibung")),
        category=categories[0] if categories else DEFAULT_CATEGORY,
        categories=categories,
        location=property_text(properties.get("Ort")),
        date=event_date,
        end_date=end_date,
        time=event_time,
        price=extract_price(properties),
        website=extract_website(properties),
        organizer=organizer,
        attendees=", ".join(audiences),
        audiences=audiences,
        image_url=image_url,
        documents_urls=documents,
        is_favorite=favorite.get("checkbox") is True,
    )
