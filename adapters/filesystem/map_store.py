from __future__ import annotations

import logging
from pathlib import Path

from filelock import FileLock

from adapters.export.c_initializer import MAP_BASE_HEADER, render_c_initializer
from adapters.filesystem.file_utils import ensure_file, write_text_atomic
from domain.ports.repositories import MapStore
from domain.services.map_codec import decode_map_document

logger = logging.getLogger(__name__)

C_SOURCE_NAME = "map_info.c"
C_HEADER_NAME = "map_base.h"


class FileSystemMapStore(MapStore):
    def __init__(
        self,
        directory: Path,
        file_name: str = "map_info.json",
        *,
        emit_c_sources: bool = True,
    ) -> None:
        self.directory = directory
        self.file_name = file_name
        self.emit_c_sources = emit_c_sources

    @property
    def path(self) -> Path:
        return self.directory / self.file_name

    def load_text(self) -> str:
        path = ensure_file(self.path)
        with FileLock(str(self._lock_path())):
            return path.read_text(encoding="utf-8")

    def save_text(self, text: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        acknowledgement = self.path
        # The C export is derived from the JSON text and only written once that text is stored.
        document = decode_map_document(text) if self.emit_c_sources else None
        with FileLock(str(self._lock_path())):
            write_text_atomic(self.path, text)
            logger.info("Wrote JSON file to %s", self.path.as_posix())
            if document is not None:
                c_path = self.directory / C_SOURCE_NAME
                write_text_atomic(self.directory / C_HEADER_NAME, MAP_BASE_HEADER)
                write_text_atomic(c_path, render_c_initializer(document))
                logger.info("Wrote C file to %s", c_path.as_posix())
                acknowledgement = c_path
        return acknowledgement.as_posix()

    def _lock_path(self) -> Path:
        return self.path.with_suffix(f"{self.path.suffix}.lock")
