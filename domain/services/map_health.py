from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from domain.models import HOME_NODE_ID, Direction, MapDocument

MAP_ISSUE_MISSING_HOME = "missing_home"
MAP_ISSUE_DANGLING_TARGET = "dangling_target"
MAP_ISSUE_UNSET_TARGET = "unset_target"
MAP_ISSUE_UNPLACED_NODE = "unplaced_node"


@dataclass(frozen=True)
class MapIssue:
    code: str
    node_id: int | None = None
    direction: Direction | None = None
    target: int | None = None

    def describe(self) -> str:
        if self.code == MAP_ISSUE_MISSING_HOME:
            return f"No home node with id {HOME_NODE_ID}; layout will be empty"
        slot = self.direction.label if self.direction is not None else "?"
        if self.code == MAP_ISSUE_DANGLING_TARGET:
            return f"Node {self.node_id} {slot} links to missing node {self.target}"
        if self.code == MAP_ISSUE_UNSET_TARGET:
            return f"Node {self.node_id} {slot} has a length but no target"
        if self.code == MAP_ISSUE_UNPLACED_NODE:
            return f"Node {self.node_id} is not linked from home and is drawn at the origin"
        return self.code

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "node_id": self.node_id,
            "direction": self.direction.short_label if self.direction is not None else None,
            "target": self.target,
            "message": self.describe(),
        }


@dataclass(frozen=True)
class MapHealth:
    node_count: int
    link_count: int
    issues: tuple[MapIssue, ...] = field(default_factory=tuple)

    @property
    def is_problem(self) -> bool:
        return bool(self.issues)

    @property
    def issue_codes(self) -> tuple[str, ...]:
        return tuple(sorted({issue.code for issue in self.issues}))

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_count": self.node_count,
            "link_count": self.link_count,
            "is_problem": self.is_problem,
            "issue_codes": list(self.issue_codes),
            "issues": [issue.to_dict() for issue in self.issues],
        }


def inspect_map(document: MapDocument) -> MapHealth:
    issues: list[MapIssue] = []
    link_count = 0
    for node, direction, connection in document.active_links():
        link_count += 1
        if connection.pos == 0:
            issues.append(MapIssue(MAP_ISSUE_UNSET_TARGET, node.id, direction))
        elif not document.resolves(connection.pos):
            issues.append(
                MapIssue(MAP_ISSUE_DANGLING_TARGET, node.id, direction, connection.pos)
            )

    home = document.home()
    if document.nodes and home is None:
        issues.insert(0, MapIssue(MAP_ISSUE_MISSING_HOME))
    elif home is not None:
        placed = {connection.pos for _, connection in home.active_connections()}
        for node in document.nodes:
            if node.id != HOME_NODE_ID and node.id not in placed:
                issues.append(MapIssue(MAP_ISSUE_UNPLACED_NODE, node.id))

    return MapHealth(
        node_count=len(document.nodes),
        link_count=link_count,
        issues=tuple(issues),
    )
