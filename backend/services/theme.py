"""
UI theme preference, read and written through an injected storage backend.
"""
from typing import Protocol

from backend import database

THEMES = ("black", "blue")


class ThemeStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict | None = None):
        self._values = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class DatabaseStorage:
    """Persists preferences in the sqlite `preferences` table."""

    def get(self, key: str) -> str | None:
        return database.get_preference(key)

    def set(self, key: str, value: str) -> None:
        database.set_preference(key, value)


class ThemeProvider:
    def __init__(
        self,
        storage: ThemeStorage,
        storage_key: str = "tradevault-theme",
        default_theme: str = "black",
    ):
        if default_theme not in THEMES:
            raise ValueError(f"Unknown theme: {default_theme}")
        self.storage = storage
        self.storage_key = storage_key
        self.default_theme = default_theme

    @property
    def theme(self) -> str:
        stored = self.storage.get(self.storage_key)
        return stored if stored in THEMES else self.default_theme

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.storage.set(self.storage_key, theme)
        return theme
