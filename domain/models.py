from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.bounds import LenValue, NodeId, PosValue

CONNECTION_SLOTS = 8
HOME_NODE_ID = 1


class Direction(IntEnum):
    NORTH = 0
    NORTH_EAST = 1
    EAST = 2
    SOUTH_EAST = 3
    SOUTH = 4
    SOUTH_WEST = 5
    WEST = 6
    NORTH_WEST = 7

    @property
    def label(self) -> str:
        return _DIRECTION_LABELS[self]

    @property
    def short_label(self) -> str:
        return _DIRECTION_SHORT_LABELS[self]

    @property
    def angle_degrees(self) -> float:
        return DIRECTION_ANGLES[self]

    @classmethod
    def parse(cls, value: str | int) -> Direction:
        """Resolve a slot index, enum name, label or short label to a direction."""
        if isinstance(value, int):
            return cls(value)
        raw = value.strip()
        if raw.isdigit():
            return cls(int(raw))
        normalized = raw.upper().replace("-", "_").replace(" ", "_")
        for direction in cls:
            if normalized in {
                direction.name,
                direction.label.upper().replace("-", "_"),
                direction.short_label,
            }:
                return direction
        msg = f"Unknown direction: {value}"
        raise ValueError(msg)


_DIRECTION_LABELS = (
    "North",
    "North-East",
    "East",
    "South-East",
    "South",
    "South-West",
    "West",
    "North-West",
)
_DIRECTION_SHORT_LABELS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

# Screen coordinates: y grows downwards, so North is -90 degrees.
DIRECTION_ANGLES: tuple[float, ...] = (-90.0, -45.0, 0.0, 45.0, 90.0, 135.0, 180.0, -135.0)


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pos: PosValue
    length: LenValue = Field(alias="len")

    @classmethod
    def unset(cls) -> Connection:
        return cls(pos=0, length=0)

    @property
    def is_set(self) -> bool:
        return self.length > 0

    def to_dict(self) -> dict[str, int]:
        return {"pos": self.pos, "len": self.length}


def _blank_connections() -> List[Connection]:
    return [Connection.unset() for _ in range(CONNECTION_SLOTS)]


class MapNode(BaseModel):
    id: NodeId
    name: str
    connect: List[Connection]

    @field_validator("connect", mode="after")
    @classmethod
    def ensure_slot_count(cls, connect: List[Connection]) -> List[Connection]:
        if len(connect) != CONNECTION_SLOTS:
            msg = f"Expected {CONNECTION_SLOTS} connection slots, got {len(connect)}"
            raise ValueError(msg)
        return connect

    @classmethod
    def blank(cls, node_id: int) -> MapNode:
        return cls(id=node_id, name="", connect=_blank_connections())

    def connection(self, direction: Direction | int) -> Connection:
        return self.connect[int(direction)]

    def active_connections(self) -> Iterator[tuple[Direction, Connection]]:
        for index, connection in enumerate(self.connect):
            if connection.is_set:
                yield Direction(index), connection

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "connect": [connection.to_dict() for connection in self.connect],
        }


class MapDocument(BaseModel):
    nodes: List[MapNode] = Field(default_factory=list)

    @field_validator("nodes", mode="after")
    @classmethod
    def ensure_unique_ids(cls, nodes: List[MapNode]) -> List[MapNode]:
        seen: Set[int] = set()
        for node in nodes:
            if node.id in seen:
                msg = f"Duplicate node id found: {node.id}"
                raise ValueError(msg)
            seen.add(node.id)
        return nodes

    @classmethod
    def default(cls) -> MapDocument:
        return cls(nodes=[MapNode.blank(HOME_NODE_ID)])

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def ids(self) -> List[int]:
        return [node.id for node in self.nodes]

    def find(self, node_id: int) -> Optional[MapNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def home(self) -> Optional[MapNode]:
        return self.find(HOME_NODE_ID)

    def resolves(self, pos: int) -> bool:
        return pos != 0 and self.find(pos) is not None

    def max_id(self) -> int:
        return max(self.ids(), default=0)

    def next_free_id(self) -> int:
        return max(self.max_id() + 1, HOME_NODE_ID + 1)

    def active_links(self) -> Iterator[tuple[MapNode, Direction, Connection]]:
        for node in self.nodes:
            for direction, connection in node.active_connections():
                yield node, direction, connection

    def to_list(self) -> List[dict[str, Any]]:
        return [node.to_dict() for node in self.nodes]


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class NodePlacement:
    id: int
    label: str
    position: Point

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "x": self.position.x,
            "y": self.position.y,
        }


@dataclass(frozen=True)
class LinkPlacement:
    source: int
    target: int
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "label": self.label}


@dataclass(frozen=True)
class MapLayout:
    nodes: List[NodePlacement]
    links: List[LinkPlacement]

    @classmethod
    def empty(cls) -> MapLayout:
        return cls(nodes=[], links=[])

    def position_of(self, node_id: int) -> Optional[Point]:
        for placement in self.nodes:
            if placement.id == node_id:
                return placement.position
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }
