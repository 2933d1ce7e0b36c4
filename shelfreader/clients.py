"""HTTP clients for the three remote collaborators.

CatalogClient talks to the Google Books volumes API. FunctionsClient invokes
the hosted ``translate`` and ``chat`` functions. Each client raises a
RemoteCallError subclass for every kind of failure so callers only need to
handle one exception type per call site.
"""

import json
import logging

import requests

from .errors import CatalogError, ChatError, RemoteCallError, TranslationError

logger = logging.getLogger(__name__)


class CatalogClient:
    def __init__(self, base_url, api_key=None, timeout=30.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_volume(self, volume_id):
        """Return the raw volume resource for volume_id."""
        params = {"key": self.api_key} if self.api_key else None
        url = f"{self.base_url}/volumes/{volume_id}"
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CatalogError(f"Failed to contact catalog at {self.base_url}") from exc

        if resp.status_code != 200:
            raise CatalogError(f"Volume lookup for {volume_id} failed with status {resp.status_code}")
        try:
            payload = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise CatalogError("Catalog returned invalid JSON") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("volumeInfo"), dict):
            raise CatalogError(f"Volume {volume_id} has no volumeInfo")
        return payload


class FunctionsClient:
    """Invokes the backend functions that do translation and chat inference."""

    def __init__(self, base_url, api_key=None, timeout=30.0, session=None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    def invoke(self, name, body):
        if not self.base_url:
            raise RemoteCallError(f"No functions URL configured, cannot invoke '{name}'")
        url = f"{self.base_url}/{name}"
        logger.debug("Invoking function %s", url)
        try:
            resp = self._session.post(url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteCallError(f"Failed to contact function '{name}'") from exc

        if not 200 <= resp.status_code < 300:
            raise RemoteCallError(f"Function '{name}' failed with status {resp.status_code}: {resp.text}")
        try:
            payload = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise RemoteCallError(f"Function '{name}' returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise RemoteCallError(f"Function '{name}' returned {type(payload).__name__}, expected an object")
        if payload.get("error"):
            raise RemoteCallError(f"Function '{name}' reported an error: {payload['error']}")
        return payload

    def translate(self, text, target_language):
        try:
            payload = self.invoke("translate", {"text": text, "targetLanguage": target_language})
        except RemoteCallError as exc:
            raise TranslationError(str(exc)) from exc
        translated = payload.get("translatedText")
        if not isinstance(translated, str):
            raise TranslationError("Translate response is missing 'translatedText'")
        return translated

    def chat(self, messages, book_title, book_context=""):
        body = {
            "messages": [m.to_dict() for m in messages],
            "bookTitle": book_title,
            "bookContext": book_context or "",
        }
        try:
            payload = self.invoke("chat", body)
        except RemoteCallError as exc:
            raise ChatError(str(exc)) from exc
        message = payload.get("message")
        if not isinstance(message, str):
            raise ChatError("Chat response is missing 'message'")
        return message
