from __future__ import annotations

from typing import Any, List

import orjson
from pydantic import TypeAdapter, ValidationError

from domain.errors import MapDocumentError
from domain.models import MapDocument, MapNode

_NODE_LIST_ADAPTER = TypeAdapter(List[MapNode])


def encode_map_document(document: MapDocument) -> str:
    return orjson.dumps(document.to_list(), option=orjson.OPT_INDENT_2).decode("utf-8")


def decode_map_document(text: str) -> MapDocument:
    if not text.strip():
        return MapDocument()
    try:
        payload: Any = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        msg = f"Map document is not valid JSON: {exc}"
        raise MapDocumentError(msg) from exc
    if not isinstance(payload, list):
        msg = f"Map document must be a JSON array, got {type(payload).__name__}"
        raise MapDocumentError(msg)
    try:
        nodes = _NODE_LIST_ADAPTER.validate_python(payload)
        return MapDocument(nodes=nodes)
    except ValidationError as exc:
        msg = f"Map document failed validation: {exc}"
        raise MapDocumentError(msg) from exc
