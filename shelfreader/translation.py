import enum
import logging
import threading

from .errors import RemoteCallError
from .models import ORIGINAL, SUPPORTED_LANGUAGES, Notice

logger = logging.getLogger(__name__)


class TranslationMode(str, enum.Enum):
    ORIGINAL = "original"
    TRANSLATING = "translating"
    TRANSLATED = "translated"
    FAILED = "failed"


class TranslationController:
    """Translates the displayed page and decides which text is shown.

    Every request is tagged with the (page, language, generation) it was
    issued for. A response is applied only while that key still matches the
    view; anything else is a stale response and is dropped.
    """

    def __init__(self, client, view, page_text, notify=None, lock=None):
        self.client = client
        self.view = view
        self._page_text = page_text
        self._notify = notify or (lambda notice: None)
        self._lock = lock or threading.RLock()
        self._generation = 0
        self.mode = TranslationMode.ORIGINAL

    @property
    def is_translating(self):
        return self.mode is TranslationMode.TRANSLATING

    def _current_key(self):
        return (self.view.page_index, self.view.language, self._generation)

    def select_language(self, code):
        """Show the current page in language code (or the original text).

        Returns True when the result of this call was applied to the view,
        False when the call failed or its response went stale.
        """
        with self._lock:
            self._generation += 1
            self.view.language = code
            self.view.clear_translation()
            if code == ORIGINAL:
                self.mode = TranslationMode.ORIGINAL
                return True
            key = self._current_key()
            text = self._page_text(self.view.page_index)
            self.mode = TranslationMode.TRANSLATING

        logger.info("Translating page %d into %s", key[0], code)
        translated = None
        try:
            translated = self.client.translate(text, code)
        except RemoteCallError as exc:
            logger.error("Translation error: %s", exc)
        finally:
            # also runs for unexpected errors, which then propagate
            if translated is None:
                self._fail(key)
        if translated is None:
            return False

        with self._lock:
            if key != self._current_key():
                logger.debug("Dropping stale translation for %s", key)
                return False
            self.view.translated_key = (key[0], code)
            self.view.translated_text = translated
            self.mode = TranslationMode.TRANSLATED
            language = SUPPORTED_LANGUAGES.get(code, code)
            self._notify(Notice("Translation complete", f"Page {key[0] + 1} has been translated to {language}"))
        return True

    def _fail(self, key):
        with self._lock:
            if key != self._current_key():
                logger.debug("Dropping stale translation failure for %s", key)
                return
            self.mode = TranslationMode.FAILED
            self.view.clear_translation()
            self._notify(Notice("Translation failed", "Please try again later", variant="destructive"))

    def on_page_change(self):
        """Refetch the translation for a newly displayed page, if one is wanted."""
        with self._lock:
            self.view.clear_translation()
            language = self.view.language
            if language == ORIGINAL:
                return True
        return self.select_language(language)

    def displayed_text(self):
        with self._lock:
            if (
                self.mode is TranslationMode.TRANSLATED
                and self.view.translated_key == (self.view.page_index, self.view.language)
            ):
                return self.view.translated_text
            return self._page_text(self.view.page_index)
