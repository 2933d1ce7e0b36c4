import itertools
from dataclasses import dataclass, field

ORIGINAL = "ORIGINAL"

# Offered in the language dropdown, in display order.
SUPPORTED_LANGUAGES = {
    "hi": "Hindi",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ja": "Japanese",
    "zh": "Chinese",
    "ar": "Arabic",
    "ru": "Russian",
}

USER = "user"
ASSISTANT = "assistant"

_notice_ids = itertools.count(1)


@dataclass(frozen=True)
class Book:
    id: str
    title: str
    authors: tuple = ()
    description: str = ""
    image_url: str = ""
    preview_link: str = ""

    @classmethod
    def from_dict(cls, data):
        """Build a Book from the camelCase payload the catalog UI sends."""
        if not isinstance(data, dict):
            raise ValueError("Book payload must be an object")
        book_id = str(data.get("id") or "").strip()
        title = str(data.get("title") or "").strip()
        if not book_id or not title:
            raise ValueError("Book requires 'id' and 'title'")
        authors = data.get("authors") or ()
        if isinstance(authors, str):
            authors = [authors]
        if not isinstance(authors, (list, tuple)) or not all(isinstance(a, str) for a in authors):
            raise ValueError("'authors' must be a list")
        return cls(
            id=book_id,
            title=title,
            authors=tuple(a for a in authors if a.strip()),
            description=str(data.get("description") or ""),
            image_url=str(data.get("imageUrl") or ""),
            preview_link=str(data.get("previewLink") or ""),
        )

    @property
    def author_line(self):
        return ", ".join(self.authors) if self.authors else "Unknown author"

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "description": self.description,
            "imageUrl": self.image_url,
            "previewLink": self.preview_link,
        }


@dataclass(frozen=True)
class Message:
    role: str
    content: str

    def to_dict(self):
        return {"role": self.role, "content": self.content}


@dataclass
class Notice:
    """Transient, dismissible message shown to the reader (a toast)."""

    title: str
    description: str = ""
    variant: str = "default"
    id: int = field(default_factory=lambda: next(_notice_ids))

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
        }


@dataclass
class ViewState:
    page_index: int = 0
    language: str = ORIGINAL
    # Translation of the displayed page only, keyed by (page_index, language)
    translated_key: tuple | None = None
    translated_text: str | None = None

    def clear_translation(self):
        self.translated_key = None
        self.translated_text = None
