import logging
import threading

from .errors import RemoteCallError
from .models import ASSISTANT, USER, Message, Notice

logger = logging.getLogger(__name__)

GREETING = (
    'Hello! I\'m your reading assistant for "{title}". I can help explain concepts, '
    "summarize passages, or answer questions about what you're reading. "
    "How can I help you today?"
)
SELECTION_PROMPT = 'Explain this passage: "{text}"'


class ChatSession:
    """Conversation with the reading assistant about one book.

    The transcript only ever grows. A failed send leaves the user's message in
    place without a reply; nothing is retried or rolled back.
    """

    def __init__(self, book_title, client, notify=None):
        self.book_title = book_title
        self.client = client
        self._notify = notify or (lambda notice: None)
        self._lock = threading.Lock()
        self.messages = [Message(ASSISTANT, GREETING.format(title=book_title))]
        self.draft = ""
        self.selected_text = ""
        self.is_loading = False

    def receive_selection(self, text):
        text = (text or "").strip()
        if not text:
            return
        with self._lock:
            self.selected_text = text
            self.draft = SELECTION_PROMPT.format(text=text)

    def send(self, text=None):
        """Send text (or the pending draft) and return the assistant's reply.

        Returns None when nothing was sent (blank text, request in flight) or
        when the chat function failed.
        """
        if text is None:
            text = self.draft
        if not text or not text.strip():
            return None

        with self._lock:
            if self.is_loading:
                logger.debug("Chat request already in flight, ignoring send")
                return None
            self.messages.append(Message(USER, text))
            self.draft = ""
            self.is_loading = True
            transcript = list(self.messages)
            context = self.selected_text

        try:
            reply = self.client.chat(transcript, self.book_title, context)
        except RemoteCallError as exc:
            logger.error("Chat error: %s", exc)
            self._notify(Notice("Failed to send message", "Please try again later", variant="destructive"))
            return None
        else:
            message = Message(ASSISTANT, reply)
            with self._lock:
                self.messages.append(message)
            return message
        finally:
            with self._lock:
                self.is_loading = False

    def to_dict(self):
        with self._lock:
            return {
                "messages": [m.to_dict() for m in self.messages],
                "draft": self.draft,
                "selectedText": self.selected_text,
                "isLoading": self.is_loading,
            }
