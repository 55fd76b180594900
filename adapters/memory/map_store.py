from __future__ import annotations

from collections.abc import MutableMapping

from domain.ports.repositories import MapStore

DEFAULT_KEY = "mapItems"


class InMemoryMapStore(MapStore):
    """Keeps the document in a plain key-value mapping, e.g. per browser session."""

    def __init__(
        self,
        storage: MutableMapping[str, str] | None = None,
        key: str = DEFAULT_KEY,
    ) -> None:
        self._storage: MutableMapping[str, str] = storage if storage is not None else {}
        self._key = key

    def load_text(self) -> str:
        return self._storage.get(self._key, "")

    def save_text(self, text: str) -> str:
        self._storage[self._key] = text
        return f"memory://{self._key}"
