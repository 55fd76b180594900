from __future__ import annotations

from typing import Protocol

from domain.models import MapDocument, MapLayout


class LayoutEngine(Protocol):
    def build_layout(self, document: MapDocument) -> MapLayout:
        ...
