class ShelfReaderError(Exception):
    """Base class for every error raised by shelfreader."""


class ConfigError(ShelfReaderError):
    pass


class RemoteCallError(ShelfReaderError):
    """A remote call (catalog lookup, translate or chat function) failed."""


class CatalogError(RemoteCallError):
    pass


class TranslationError(RemoteCallError):
    pass


class ChatError(RemoteCallError):
    pass
