from __future__ import annotations

import logging

from domain.errors import MapStoreError
from domain.models import MapDocument
from domain.ports.repositories import MapStore
from domain.services.map_codec import decode_map_document, encode_map_document

logger = logging.getLogger(__name__)


class MapPersistence:
    def __init__(self, store: MapStore) -> None:
        self._store = store

    @property
    def store(self) -> MapStore:
        return self._store

    def load(self) -> MapDocument:
        try:
            text = self._store.load_text()
        except OSError as exc:
            msg = f"Failed to read map document: {exc}"
            raise MapStoreError(msg) from exc
        document = decode_map_document(text)
        logger.info("Loaded map document with %d nodes", len(document.nodes))
        return document

    def save(self, document: MapDocument) -> str:
        text = encode_map_document(document)
        try:
            acknowledgement = self._store.save_text(text)
        except OSError as exc:
            msg = f"Failed to write map document: {exc}"
            raise MapStoreError(msg) from exc
        logger.info("Saved map document with %d nodes to %s", len(document.nodes), acknowledgement)
        return acknowledgement
