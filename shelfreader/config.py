import os
from dataclasses import dataclass

from .errors import ConfigError
from .paginator import PAGE_SIZE

# --- CONFIGURATION ---
DEFAULT_CATALOG_URL = "https://www.googleapis.com/books/v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_READERS = 100
ENV_PREFIX = "SHELFREADER_"


@dataclass(frozen=True)
class ReaderConfig:
    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_key: str | None = None
    functions_url: str | None = None
    functions_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    page_size: int = PAGE_SIZE
    max_readers: int = DEFAULT_MAX_READERS

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ

        def get(name, default=None):
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or default

        try:
            timeout = float(get("TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}TIMEOUT must be a number") from exc
        try:
            page_size = int(get("PAGE_SIZE", PAGE_SIZE))
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}PAGE_SIZE must be an integer") from exc
        try:
            max_readers = int(get("MAX_READERS", DEFAULT_MAX_READERS))
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}MAX_READERS must be an integer") from exc
        if timeout <= 0:
            raise ConfigError(f"{ENV_PREFIX}TIMEOUT must be positive")
        if page_size <= 0:
            raise ConfigError(f"{ENV_PREFIX}PAGE_SIZE must be positive")
        if max_readers <= 0:
            raise ConfigError(f"{ENV_PREFIX}MAX_READERS must be positive")

        return cls(
            catalog_url=get("CATALOG_URL", DEFAULT_CATALOG_URL).rstrip("/"),
            catalog_key=get("CATALOG_KEY"),
            functions_url=(get("FUNCTIONS_URL") or "").rstrip("/") or None,
            functions_key=get("FUNCTIONS_KEY"),
            timeout=timeout,
            page_size=page_size,
            max_readers=max_readers,
        )
