from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from domain.bounds import POS_MAX, ConnectionField, coerce_field
from domain.models import (
    CONNECTION_SLOTS,
    HOME_NODE_ID,
    Direction,
    MapDocument,
    MapLayout,
    MapNode,
)
from domain.ports.layout import LayoutEngine
from domain.services.map_persistence import MapPersistence

logger = logging.getLogger(__name__)


class MapEditingSession:
    """Owns the map being edited and the id counter that goes with it.

    Every operation runs under one lock, so a ``save`` issued while a ``load``
    is in flight waits for the load to finish. Readers get deep copies.

    Removing a node renumbers the remaining ids to ``1..n`` without touching
    connection targets, so removing the home node promotes whichever node comes
    first. Pass ``pin_home=True`` to refuse removal of the home node instead.
    """

    def __init__(
        self,
        persistence: MapPersistence,
        document: MapDocument | None = None,
        next_id: int | None = None,
        *,
        pin_home: bool = False,
    ) -> None:
        self._persistence = persistence
        if document is None:
            document = MapDocument.default()
        self._document = document.model_copy(deep=True)
        if next_id is None:
            self._next_id = self._document.next_free_id()
        else:
            # The counter never hands out an id that is already taken or below 1.
            self._next_id = max(next_id, self._document.max_id() + 1)
        self._pin_home = pin_home
        self._lock = threading.Lock()

    @classmethod
    def from_snapshot(
        cls,
        snapshot: Mapping[str, Any],
        persistence: MapPersistence,
        *,
        pin_home: bool = False,
    ) -> MapEditingSession:
        document = MapDocument.model_validate({"nodes": snapshot.get("items") or []})
        if document.is_empty:
            document = MapDocument.default()
        raw_next_id = snapshot.get("next_id")
        next_id = raw_next_id if isinstance(raw_next_id, int) else None
        return cls(persistence, document, next_id, pin_home=pin_home)

    @property
    def document(self) -> MapDocument:
        with self._lock:
            return self._document.model_copy(deep=True)

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def pin_home(self) -> bool:
        return self._pin_home

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {"items": self._document.to_list(), "next_id": self._next_id}

    def add_node(self) -> MapNode | None:
        with self._lock:
            if self._next_id > POS_MAX:
                logger.warning("Node id space exhausted at %d; add ignored", self._next_id)
                return None
            node = MapNode.blank(self._next_id)
            self._document.nodes.append(node)
            self._next_id += 1
            logger.debug("Added node %d", node.id)
            return node.model_copy(deep=True)

    def remove_node(self, node_id: int) -> bool:
        with self._lock:
            if self._pin_home and node_id == HOME_NODE_ID:
                logger.warning("Home node %d is pinned; remove ignored", node_id)
                return False
            remaining = [node for node in self._document.nodes if node.id != node_id]
            if len(remaining) == len(self._document.nodes):
                return False
            self._document = MapDocument(
                nodes=[
                    node.model_copy(update={"id": index})
                    for index, node in enumerate(remaining, start=1)
                ]
            )
            self._next_id = len(remaining) + 1
            logger.debug("Removed node %d; %d nodes reindexed", node_id, len(remaining))
            return True

    def rename_node(self, node_id: int, name: str) -> bool:
        with self._lock:
            node = self._document.find(node_id)
            if node is None:
                return False
            node.name = name
            logger.debug("Renamed node %d to %r", node_id, name)
            return True

    def update_connection(
        self,
        node_id: int,
        slot: Direction | int,
        field: ConnectionField,
        raw_value: object,
    ) -> bool:
        index = int(slot)
        if index < 0 or index >= CONNECTION_SLOTS:
            return False
        value = coerce_field(field, raw_value)
        with self._lock:
            node = self._document.find(node_id)
            if node is None:
                return False
            connection = node.connect[index]
            if field == "pos":
                connection.pos = value
            else:
                connection.length = value
            logger.debug(
                "Node %d %s %s set to %d", node_id, Direction(index).short_label, field, value
            )
            return True

    def load(self) -> MapDocument:
        with self._lock:
            loaded = self._persistence.load()
            if loaded.is_empty:
                self._document = MapDocument.default()
                self._next_id = HOME_NODE_ID + 1
            else:
                self._document = loaded
                self._next_id = loaded.max_id() + 1
            return self._document.model_copy(deep=True)

    def save(self) -> str:
        with self._lock:
            return self._persistence.save(self._document)

    def layout(self, engine: LayoutEngine) -> MapLayout:
        return engine.build_layout(self.document)
