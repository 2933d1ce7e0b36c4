from .app import create_app
from .chat import ChatSession
from .config import ReaderConfig
from .content import compose_fallback, compose_text, fetch_book_text
from .errors import (
    CatalogError,
    ChatError,
    ConfigError,
    RemoteCallError,
    ShelfReaderError,
    TranslationError,
)
from .models import ORIGINAL, SUPPORTED_LANGUAGES, Book, Message, Notice, ViewState
from .paginator import split_into_pages
from .reader import ReaderShell
from .translation import TranslationController, TranslationMode

__all__ = [
    "create_app",
    "Book",
    "Message",
    "Notice",
    "ViewState",
    "ORIGINAL",
    "SUPPORTED_LANGUAGES",
    "ReaderConfig",
    "ReaderShell",
    "ChatSession",
    "TranslationController",
    "TranslationMode",
    "split_into_pages",
    "compose_text",
    "compose_fallback",
    "fetch_book_text",
    "ShelfReaderError",
    "ConfigError",
    "RemoteCallError",
    "CatalogError",
    "TranslationError",
    "ChatError",
]
