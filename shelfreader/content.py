import logging
import re

from .errors import RemoteCallError

logger = logging.getLogger(__name__)

PARTIAL_NOTE = (
    "Note: the full text of this book is not available here. "
    "What follows is the publisher's overview and a short preview excerpt."
)
UNAVAILABLE_NOTE = "Preview content is not available for this book."

_BOLD_TAG = re.compile(r"</?b\s*>", re.IGNORECASE)


def normalize_snippet(snippet):
    """Swap the catalog's <b> highlighting for markdown-style bold markers."""
    return _BOLD_TAG.sub("**", snippet).strip()


def _header(book):
    return f"{book.title}\n\nby {book.author_line}\n\n"


def _read_more_allowed(access_info):
    if not isinstance(access_info, dict):
        return False
    if access_info.get("textToSpeechPermission") == "ALLOWED":
        return True
    return access_info.get("viewability") not in (None, "NO_PAGES", "UNKNOWN")


def compose_text(book, volume):
    """Build the displayable text for book from a catalog volume resource."""
    info = volume.get("volumeInfo") or {}
    parts = [_header(book)]

    description = info.get("description") or book.description
    if description:
        parts.append(f"{description.strip()}\n\n")

    details = []
    if info.get("publisher"):
        details.append(f"Publisher: {info['publisher']}")
    if info.get("publishedDate"):
        details.append(f"Published: {info['publishedDate']}")
    if info.get("pageCount"):
        details.append(f"Pages: {info['pageCount']}")
    categories = info.get("categories")
    if categories:
        details.append(f"Categories: {', '.join(str(c) for c in categories)}")
    if details:
        parts.append("\n".join(details) + "\n\n")

    parts.append(PARTIAL_NOTE + "\n\n")
    if book.preview_link and _read_more_allowed(volume.get("accessInfo")):
        parts.append(f"You can read more at: {book.preview_link}\n\n")

    snippet = (volume.get("searchInfo") or {}).get("textSnippet")
    if snippet:
        parts.append(f"Preview Content:\n\n{normalize_snippet(snippet)}\n")

    return "".join(parts)


def compose_fallback(book):
    """Text built from the locally known fields only."""
    text = _header(book)
    if book.description:
        text += f"{book.description.strip()}\n\n"
    text += UNAVAILABLE_NOTE
    if book.preview_link:
        text += f" Please visit: {book.preview_link}"
    return text + "\n"


def fetch_book_text(book, catalog):
    """Look the book up in the catalog and compose its text.

    Never raises for remote problems: any failure falls back to
    compose_fallback so the reader always has something to show.
    """
    try:
        volume = catalog.get_volume(book.id)
        return compose_text(book, volume)
    except (RemoteCallError, AttributeError, TypeError, KeyError) as exc:
        logger.warning("Error fetching book content for %s: %s", book.id, exc)
        return compose_fallback(book)
