from __future__ import annotations

import math
import threading

import pytest

from adapters.layout.compass import CompassLayoutEngine
from adapters.memory.map_store import InMemoryMapStore
from domain.bounds import POS_MAX
from domain.errors import MapDocumentError, MapStoreError
from domain.models import Direction, MapDocument
from domain.services.map_codec import decode_map_document, encode_map_document
from domain.services.map_editing_session import MapEditingSession
from domain.services.map_persistence import MapPersistence
from tests.helpers.map_fixtures import chain_document, load_map_text, make_document, make_node


class UnreachableStore:
    def load_text(self) -> str:
        raise OSError("backend unreachable")

    def save_text(self, text: str) -> str:
        raise OSError("backend unreachable")


class GatedStore:
    """Holds every load until ``release_load`` is set and records call order."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.calls: list[str] = []
        self.saved_text: str | None = None
        self.load_started = threading.Event()
        self.release_load = threading.Event()

    def load_text(self) -> str:
        self.load_started.set()
        self.release_load.wait(timeout=5)
        self.calls.append("load")
        return self.text

    def save_text(self, text: str) -> str:
        self.calls.append("save")
        self.saved_text = text
        return "gated://map"


def build_session(
    document: MapDocument | None = None,
    storage: dict[str, str] | None = None,
    **kwargs: object,
) -> MapEditingSession:
    store = InMemoryMapStore(storage if storage is not None else {})
    return MapEditingSession(MapPersistence(store), document, **kwargs)  # type: ignore[arg-type]


def test_new_session_starts_with_home_node() -> None:
    session = build_session()
    assert session.document.ids() == [1]
    assert session.next_id == 2


def test_add_node_appends_blank_node_and_bumps_counter() -> None:
    session = build_session()
    node = session.add_node()
    assert node is not None
    assert node.id == 2
    assert node.name == ""
    assert not list(node.active_connections())
    assert session.document.ids() == [1, 2]
    assert session.next_id == 3


def test_add_node_saturates_at_16_bit_limit() -> None:
    session = build_session(MapDocument.default(), next_id=POS_MAX - 1)
    assert session.add_node() is not None
    assert session.add_node() is not None
    assert session.next_id == POS_MAX + 1
    for _ in range(3):
        assert session.add_node() is None
    assert session.document.ids() == [1, POS_MAX - 1, POS_MAX]
    assert session.next_id == POS_MAX + 1


def test_remove_node_reindexes_remaining_ids() -> None:
    session = build_session(chain_document(5))
    assert session.remove_node(3)
    document = session.document
    assert document.ids() == [1, 2, 3, 4]
    assert [node.name for node in document.nodes] == ["node-1", "node-2", "node-4", "node-5"]
    assert session.next_id == 5


def test_remove_home_promotes_next_node() -> None:
    session = build_session(chain_document(3))
    assert session.remove_node(1)
    home = session.document.home()
    assert home is not None
    assert home.name == "node-2"


def test_remove_keeps_connection_targets_as_they_were() -> None:
    document = make_document(
        make_node(1, "home", {Direction.EAST: (3, 4)}),
        make_node(2, "b"),
        make_node(3, "c"),
    )
    session = build_session(document)
    session.remove_node(2)
    home = session.document.home()
    assert home is not None
    assert home.connection(Direction.EAST).pos == 3
    assert session.document.ids() == [1, 2]


def test_pinned_home_cannot_be_removed() -> None:
    session = build_session(chain_document(2), pin_home=True)
    assert not session.remove_node(1)
    assert session.document.ids() == [1, 2]
    assert session.remove_node(2)
    assert session.document.ids() == [1]


def test_remove_unknown_node_reports_false() -> None:
    session = build_session(chain_document(2))
    assert not session.remove_node(9)
    assert session.document.ids() == [1, 2]
    assert session.next_id == 3


def test_remove_last_node_leaves_empty_document() -> None:
    session = build_session()
    assert session.remove_node(1)
    assert session.document.is_empty
    assert session.next_id == 1


def test_rename_node() -> None:
    session = build_session(chain_document(2))
    assert session.rename_node(2, "Pump house")
    assert not session.rename_node(7, "ghost")
    node = session.document.find(2)
    assert node is not None
    assert node.name == "Pump house"


@pytest.mark.parametrize(
    ("field", "raw", "expected"),
    [
        ("pos", 2, 2),
        ("pos", 3.0, 3),
        ("pos", -1, 0),
        ("pos", POS_MAX + 1, 0),
        ("pos", math.nan, 0),
        ("len", 70_000, 70_000),
        ("len", math.inf, 0),
        ("len", 1.5, 0),
    ],
)
def test_update_connection_validates_value(field: str, raw: object, expected: int) -> None:
    session = build_session()
    assert session.update_connection(1, Direction.SOUTH, field, raw)  # type: ignore[arg-type]
    connection = session.document.nodes[0].connection(Direction.SOUTH)
    value = connection.pos if field == "pos" else connection.length
    assert value == expected


def test_update_connection_ignores_unknown_node_and_slot() -> None:
    session = build_session()
    assert not session.update_connection(5, 0, "pos", 1)
    assert not session.update_connection(1, 8, "pos", 1)
    assert not session.update_connection(1, -1, "len", 1)
    assert session.document == MapDocument.default()


def test_document_property_returns_a_copy() -> None:
    session = build_session()
    document = session.document
    document.nodes[0].name = "changed"
    assert session.document.nodes[0].name == ""


def test_load_replaces_document_and_recomputes_next_id() -> None:
    storage = {"mapItems": load_map_text()}
    session = build_session(storage=storage)
    loaded = session.load()
    assert loaded.ids() == [1, 2, 3]
    assert session.document.ids() == [1, 2, 3]
    assert session.next_id == 4


def test_load_uses_max_id_for_sparse_documents() -> None:
    storage = {"mapItems": encode_map_document(make_document(make_node(1), make_node(9)))}
    session = build_session(storage=storage)
    session.load()
    assert session.next_id == 10


def test_load_of_empty_store_resets_to_default() -> None:
    session = build_session(chain_document(4))
    session.load()
    assert session.document == MapDocument.default()
    assert session.next_id == 2


def test_failed_load_leaves_document_untouched() -> None:
    storage = {"mapItems": "{broken"}
    session = build_session(chain_document(3), storage=storage)
    with pytest.raises(MapDocumentError):
        session.load()
    assert session.document == chain_document(3)
    assert session.next_id == 4


def test_unreachable_store_surfaces_store_error() -> None:
    session = MapEditingSession(MapPersistence(UnreachableStore()), chain_document(2))
    with pytest.raises(MapStoreError):
        session.load()
    with pytest.raises(MapStoreError):
        session.save()
    assert session.document.ids() == [1, 2]


def test_save_then_load_round_trips() -> None:
    storage: dict[str, str] = {}
    session = build_session(storage=storage)
    session.add_node()
    session.rename_node(1, "Home")
    session.rename_node(2, "Gate")
    session.update_connection(1, Direction.EAST, "pos", 2)
    session.update_connection(1, Direction.EAST, "len", 12)
    assert session.save() == "memory://mapItems"

    restored = build_session(storage=storage)
    restored.load()
    assert restored.document == session.document
    assert decode_map_document(storage["mapItems"]) == session.document


def test_snapshot_restores_session_state() -> None:
    session = build_session(chain_document(2))
    session.add_node()
    snapshot = session.snapshot()
    assert snapshot["next_id"] == 4
    assert [item["id"] for item in snapshot["items"]] == [1, 2, 3]

    restored = MapEditingSession.from_snapshot(snapshot, MapPersistence(InMemoryMapStore()))
    assert restored.document == session.document
    assert restored.next_id == 4


def test_empty_snapshot_restores_default_document() -> None:
    restored = MapEditingSession.from_snapshot({}, MapPersistence(InMemoryMapStore()))
    assert restored.document == MapDocument.default()
    assert restored.next_id == 2


def test_layout_uses_current_document() -> None:
    session = build_session()
    session.add_node()
    session.update_connection(1, Direction.EAST, "pos", 2)
    session.update_connection(1, Direction.EAST, "len", 5)
    layout = session.layout(CompassLayoutEngine())
    position = layout.position_of(2)
    assert position is not None
    assert (position.x, position.y) == (500.0, 300.0)


def test_remove_unknown_node_leaves_sparse_ids_alone() -> None:
    session = build_session(make_document(make_node(1, "home"), make_node(5, "far")))
    assert not session.remove_node(3)
    assert session.document.ids() == [1, 5]
    assert session.next_id == 6


@pytest.mark.parametrize("stale_next_id", [1, 2, 3])
def test_stale_snapshot_counter_never_reuses_an_id(stale_next_id: int) -> None:
    storage: dict[str, str] = {}
    snapshot = {"items": chain_document(3).to_list(), "next_id": stale_next_id}
    session = MapEditingSession.from_snapshot(snapshot, MapPersistence(InMemoryMapStore(storage)))
    assert session.next_id == 4

    node = session.add_node()
    assert node is not None
    assert node.id == 4
    assert session.document.ids() == [1, 2, 3, 4]

    session.save()
    restored = build_session(storage=storage)
    assert restored.load().ids() == [1, 2, 3, 4]


@pytest.mark.parametrize("next_id", [0, -5])
def test_counter_below_one_is_raised_to_first_free_id(next_id: int) -> None:
    session = build_session(MapDocument(), next_id=next_id)
    assert session.next_id == 1
    node = session.add_node()
    assert node is not None
    assert node.id == 1

    session = build_session(chain_document(2), next_id=next_id)
    assert session.next_id == 3


def test_save_waits_for_in_flight_load() -> None:
    store = GatedStore(load_map_text())
    session = MapEditingSession(MapPersistence(store))
    saved: list[str] = []

    loader = threading.Thread(target=session.load, daemon=True)
    loader.start()
    assert store.load_started.wait(timeout=5)

    saver = threading.Thread(target=lambda: saved.append(session.save()), daemon=True)
    saver.start()
    saver.join(timeout=0.2)
    assert saver.is_alive()
    assert store.calls == []

    store.release_load.set()
    loader.join(timeout=5)
    saver.join(timeout=5)

    assert store.calls == ["load", "save"]
    assert saved == ["gated://map"]
    assert store.saved_text is not None
    assert decode_map_document(store.saved_text) == decode_map_document(load_map_text())
