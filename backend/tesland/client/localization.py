"""
tesland/client/localization.py - Active language and its string table.
"""
import logging
from typing import Callable, List, get_args

from tesland.client.storage import LocalStorage
from tesland.core.validation import AuthSchemas, schemas_for
from tesland.i18n.translations import DEFAULT_LANGUAGE, Language, Translations, get_translations

logger = logging.getLogger("tesland.client.localization")

LANGUAGE_STORAGE_KEY = "preferred-language"
SUPPORTED_LANGUAGES = get_args(Language)


class LocalizationStore:
    def __init__(self, storage: LocalStorage):
        self._storage = storage
        stored = storage.get_item(LANGUAGE_STORAGE_KEY)
        self._language = stored if stored in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE
        self._listeners: List[Callable[[str], None]] = []

    @property
    def language(self) -> str:
        return self._language

    @property
    def t(self) -> Translations:
        return get_translations(self._language)

    @property
    def schemas(self) -> AuthSchemas:
        return schemas_for(self._language)

    def on_change(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def set_language(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        if language == self._language:
            return
        self._language = language
        self._storage.set_item(LANGUAGE_STORAGE_KEY, language)
        logger.debug("Language switched to %s", language)
        for listener in list(self._listeners):
            listener(language)
