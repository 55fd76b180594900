from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse, PlainTextResponse
from pydantic import BaseModel

from adapters.export.c_initializer import render_c_initializer
from app.config import AppSettings, load_settings
from app.map_wiring import build_layout_engine, build_map_store
from domain.bounds import ConnectionField
from domain.errors import MapDocumentError, MapStoreError
from domain.models import CONNECTION_SLOTS, HOME_NODE_ID
from domain.ports.layout import LayoutEngine
from domain.ports.repositories import MapStore
from domain.services.map_editing_session import MapEditingSession
from domain.services.map_health import inspect_map
from domain.services.map_persistence import MapPersistence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapContext:
    settings: AppSettings
    session: MapEditingSession
    layout_engine: LayoutEngine


class RenameRequest(BaseModel):
    name: str


class ConnectionUpdateRequest(BaseModel):
    field: ConnectionField
    # Raw user input; out-of-range or non-numeric values are stored as 0.
    value: Any = None


def create_app(settings: AppSettings, store: MapStore | None = None) -> FastAPI:
    app = FastAPI(title=settings.title, default_response_class=ORJSONResponse)

    session = MapEditingSession(
        MapPersistence(store or build_map_store(settings)),
        pin_home=settings.map.pin_home,
    )
    app.state.context = MapContext(
        settings=settings,
        session=session,
        layout_engine=build_layout_engine(settings),
    )

    @app.get("/api/map")
    def api_map(context: MapContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse(context.session.snapshot())

    @app.post("/api/map/nodes", status_code=201)
    def api_add_node(context: MapContext = Depends(get_context)) -> ORJSONResponse:
        node = context.session.add_node()
        if node is None:
            raise HTTPException(status_code=409, detail="Node id space exhausted")
        return ORJSONResponse(node.to_dict(), status_code=201)

    @app.delete("/api/map/nodes/{node_id}")
    def api_remove_node(
        node_id: int,
        context: MapContext = Depends(get_context),
    ) -> ORJSONResponse:
        if context.session.pin_home and node_id == HOME_NODE_ID:
            raise HTTPException(status_code=409, detail="Home node cannot be removed")
        if not context.session.remove_node(node_id):
            raise HTTPException(status_code=404, detail="Node not found")
        return ORJSONResponse(context.session.snapshot())

    @app.patch("/api/map/nodes/{node_id}")
    def api_rename_node(
        node_id: int,
        payload: RenameRequest,
        context: MapContext = Depends(get_context),
    ) -> ORJSONResponse:
        if not context.session.rename_node(node_id, payload.name):
            raise HTTPException(status_code=404, detail="Node not found")
        return ORJSONResponse(find_node_payload(context, node_id))

    @app.put("/api/map/nodes/{node_id}/connections/{slot}")
    def api_update_connection(
        node_id: int,
        slot: int,
        payload: ConnectionUpdateRequest,
        context: MapContext = Depends(get_context),
    ) -> ORJSONResponse:
        if slot < 0 or slot >= CONNECTION_SLOTS:
            raise HTTPException(status_code=422, detail="Slot must be between 0 and 7")
        if not context.session.update_connection(node_id, slot, payload.field, payload.value):
            raise HTTPException(status_code=404, detail="Node not found")
        return ORJSONResponse(find_node_payload(context, node_id))

    @app.post("/api/map/load")
    def api_load(context: MapContext = Depends(get_context)) -> ORJSONResponse:
        try:
            context.session.load()
        except MapDocumentError as exc:
            logger.exception("Stored map document is invalid.")
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except MapStoreError as exc:
            logger.exception("Map store unavailable during load.")
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return ORJSONResponse(context.session.snapshot())

    @app.post("/api/map/save")
    def api_save(context: MapContext = Depends(get_context)) -> ORJSONResponse:
        try:
            location = context.session.save()
        except MapStoreError as exc:
            logger.exception("Map store unavailable during save.")
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return ORJSONResponse({"saved": location})

    @app.get("/api/map/layout")
    def api_layout(context: MapContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse(context.session.layout(context.layout_engine).to_dict())

    @app.get("/api/map/health")
    def api_health(context: MapContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse(inspect_map(context.session.document).to_dict())

    @app.get("/api/map/export/c", response_class=PlainTextResponse)
    def api_export_c(context: MapContext = Depends(get_context)) -> PlainTextResponse:
        return PlainTextResponse(render_c_initializer(context.session.document))

    return app


def get_context(request: Request) -> MapContext:
    return cast(MapContext, request.app.state.context)


def find_node_payload(context: MapContext, node_id: int) -> dict[str, Any]:
    node = context.session.document.find(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return node.to_dict()


app = create_app(load_settings())
