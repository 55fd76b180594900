from __future__ import annotations

from typing import Protocol


class MapStore(Protocol):
    def load_text(self) -> str: ...

    def save_text(self, text: str) -> str: ...
