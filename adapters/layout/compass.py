from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from domain.models import (
    DIRECTION_ANGLES,
    HOME_NODE_ID,
    LinkPlacement,
    MapDocument,
    MapLayout,
    MapNode,
    NodePlacement,
    Point,
)
from domain.ports.layout import LayoutEngine

COORDINATE_PRECISION = 6


@dataclass(frozen=True)
class CompassLayoutConfig:
    width: float = 800.0
    height: float = 600.0
    scale: float = 20.0  # pixels per unit of link length

    @property
    def origin(self) -> Point:
        return Point(self.width / 2, self.height / 2)


class CompassLayoutEngine(LayoutEngine):
    """Places nodes around the home node along its compass links.

    Only nodes linked directly from home get their own position; everything
    else is drawn on top of home at the origin.
    """

    def __init__(self, config: CompassLayoutConfig | None = None) -> None:
        self.config = config or CompassLayoutConfig()

    def build_layout(self, document: MapDocument) -> MapLayout:
        if document.is_empty:
            return MapLayout.empty()
        home = document.home()
        if home is None:
            return MapLayout.empty()

        origin = self.config.origin
        nodes: List[NodePlacement] = []
        for node in document.nodes:
            if node.id == HOME_NODE_ID:
                position = origin
            else:
                position = self._project(home, node.id, origin)
            nodes.append(NodePlacement(id=node.id, label=node.name, position=position))

        links = [
            LinkPlacement(source=node.id, target=connection.pos, label=str(connection.length))
            for node, _, connection in document.active_links()
        ]
        return MapLayout(nodes=nodes, links=links)

    def _project(self, home: MapNode, node_id: int, origin: Point) -> Point:
        for index, connection in enumerate(home.connect):
            if connection.pos != node_id or not connection.is_set:
                continue
            angle = math.radians(DIRECTION_ANGLES[index])
            distance = connection.length * self.config.scale
            return Point(
                round(origin.x + math.cos(angle) * distance, COORDINATE_PRECISION),
                round(origin.y + math.sin(angle) * distance, COORDINATE_PRECISION),
            )
        return origin
