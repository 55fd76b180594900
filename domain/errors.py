from __future__ import annotations


class MapPersistenceError(Exception):
    """Base class for failures while loading or saving a map document."""


class MapStoreError(MapPersistenceError):
    """The backing store could not be read or written."""


class MapDocumentError(MapPersistenceError, ValueError):
    """The stored text is not a valid map document."""
