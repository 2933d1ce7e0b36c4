import pytest

from shelfreader.errors import CatalogError, ChatError, TranslationError
from shelfreader.models import Book


class FakeCatalog:
    def __init__(self, volume=None, error=None):
        self.volume = volume
        self.error = error
        self.calls = []

    def get_volume(self, volume_id):
        self.calls.append(volume_id)
        if self.error is not None:
            raise self.error
        if self.volume is None:
            raise CatalogError("not found")
        return self.volume


class FakeFunctions:
    """Stands in for FunctionsClient; hooks run while a call is "in flight"."""

    def __init__(self):
        self.translate_calls = []
        self.chat_calls = []
        self.translate_hook = None
        self.chat_hook = None
        self.fail_translate = False
        self.fail_chat = False
        self.reply = "Happy to help."

    def translate(self, text, target_language):
        self.translate_calls.append((text, target_language))
        if self.translate_hook is not None:
            self.translate_hook(text, target_language)
        if self.fail_translate:
            raise TranslationError("translate failed with status 500")
        return f"[{target_language}] {text}"

    def chat(self, messages, book_title, book_context=""):
        self.chat_calls.append((list(messages), book_title, book_context))
        if self.chat_hook is not None:
            self.chat_hook(messages)
        if self.fail_chat:
            raise ChatError("chat failed with status 500")
        return self.reply


@pytest.fixture
def dune():
    return Book(
        id="dune-1",
        title="Dune",
        authors=("Frank Herbert",),
        description="A desert planet and its spice.",
        preview_link="https://books.example/dune",
    )


@pytest.fixture
def functions():
    return FakeFunctions()


@pytest.fixture
def failing_catalog():
    return FakeCatalog(error=CatalogError("network down"))
