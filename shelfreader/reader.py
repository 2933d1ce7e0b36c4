import logging
import threading

from .chat import ChatSession
from .content import fetch_book_text
from .models import ORIGINAL, SUPPORTED_LANGUAGES, ViewState
from .paginator import PAGE_SIZE, split_into_pages
from .translation import TranslationController

logger = logging.getLogger(__name__)


class ReaderShell:
    """One open reader view: the book, its pages, translation and chat.

    Remote collaborators are passed in. Navigation, language choice and chat
    may be driven from different request threads; state changes go through
    one lock that is never held while a remote call is outstanding.
    """

    def __init__(self, book, catalog, functions, on_back=None, page_size=PAGE_SIZE):
        self.book = book
        self.on_back = on_back
        self.page_size = page_size
        self.view = ViewState()
        self.notices = []
        self.show_chat = False
        self.is_loading = False
        self.closed = False
        self.text = ""
        self.pages = [""]
        self._lock = threading.RLock()
        self._catalog = catalog
        self.translation = TranslationController(
            functions, self.view, self.page_text, notify=self.notify, lock=self._lock
        )
        self.chat = ChatSession(book.title, functions, notify=self.notify)

    def load(self):
        """Fetch and paginate the book text. Safe to call again to refresh."""
        with self._lock:
            self.is_loading = True
        try:
            text = fetch_book_text(self.book, self._catalog)
        finally:
            with self._lock:
                self.is_loading = False
        with self._lock:
            self.text = text
            self.pages = split_into_pages(text, self.page_size)
            self.view.page_index = 0
            language = self.view.language
        logger.info("Loaded %s: %d page(s)", self.book.id, len(self.pages))
        # Invalidates any in-flight translation and refetches page 0 if needed
        self.translation.select_language(language)
        return self

    @property
    def page_count(self):
        return len(self.pages)

    def page_text(self, index):
        return self.pages[index]

    def notify(self, notice):
        with self._lock:
            self.notices.append(notice)

    def dismiss_notice(self, notice_id):
        with self._lock:
            before = len(self.notices)
            self.notices = [n for n in self.notices if n.id != notice_id]
            return len(self.notices) != before

    def go_to_page(self, index):
        """Display page index, clamped to the valid range."""
        with self._lock:
            index = max(0, min(int(index), self.page_count - 1))
            if index == self.view.page_index:
                return index
            self.view.page_index = index
        self.translation.on_page_change()
        return index

    def change_page(self, delta):
        return self.go_to_page(self.view.page_index + int(delta))

    def select_language(self, code):
        if code != ORIGINAL and code not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {code}")
        return self.translation.select_language(code)

    def handle_selection(self, text):
        """Forward a non-blank selection to the chat and open the chat panel."""
        text = (text or "").strip()
        if not text:
            return False
        self.chat.receive_selection(text)
        with self._lock:
            self.show_chat = True
        return True

    def toggle_chat(self, show=None):
        with self._lock:
            self.show_chat = (not self.show_chat) if show is None else bool(show)
            return self.show_chat

    def back(self):
        self.close()
        if self.on_back is not None:
            return self.on_back()
        return None

    def close(self):
        with self._lock:
            self.closed = True
            self.notices = []

    def snapshot(self):
        with self._lock:
            return {
                "book": self.book.to_dict(),
                "page": self.view.page_index,
                "pageCount": self.page_count,
                "text": self.translation.displayed_text(),
                "language": self.view.language,
                "translationMode": self.translation.mode.value,
                "isTranslating": self.translation.is_translating,
                "isLoading": self.is_loading,
                "showChat": self.show_chat,
                "chat": self.chat.to_dict(),
                "notices": [n.to_dict() for n in self.notices],
            }
