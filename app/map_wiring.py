from __future__ import annotations

from adapters.filesystem.map_store import FileSystemMapStore
from adapters.layout.compass import CompassLayoutEngine
from adapters.memory.map_store import InMemoryMapStore
from adapters.s3.map_store import S3MapStore
from app.config import AppSettings
from domain.ports.layout import LayoutEngine
from domain.ports.repositories import MapStore
from domain.services.map_editing_session import MapEditingSession
from domain.services.map_persistence import MapPersistence


def build_map_store(settings: AppSettings) -> MapStore:
    if settings.map.store == "s3":
        s3 = settings.map.s3
        if not s3.bucket:
            msg = "map.s3.bucket is required when store is s3"
            raise ValueError(msg)
        return S3MapStore.from_settings(s3)
    if settings.map.store == "memory":
        return InMemoryMapStore()
    return FileSystemMapStore(
        settings.map.store_dir,
        settings.map.document_name,
        emit_c_sources=settings.map.emit_c_sources,
    )


def build_layout_engine(settings: AppSettings) -> LayoutEngine:
    return CompassLayoutEngine(settings.layout.to_config())


def build_session(settings: AppSettings, store: MapStore | None = None) -> MapEditingSession:
    persistence = MapPersistence(store or build_map_store(settings))
    return MapEditingSession(persistence, pin_home=settings.map.pin_home)
