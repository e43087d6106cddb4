"""In-process stand-ins for the orchestrator services, plus a JSON fixture loader.

Used by the replay CLI and the test-suite. Fixture layout::

    {
      "deployments": [{"id": "d1", "source_name": "App1", "deployer_username": "alice"}],
      "types": [{"name": "my.Web", "derived_from": [], "meta_properties": {"meta-1": "module"}}],
      "meta_properties": {"module": "meta-1"},
      "topologies": {"d1": {"unprocessed": {...}, "runtime": {...}}},
      "events": [{"kind": "deployment_status", "deployment_id": "d1", "status": "DEPLOYED", "date": 0}]
    }

A topology is ``{"dependencies": [...], "node_templates": [{"id", "type", "name",
"properties", "relationships": [{"name", "type", "target"}]}]}``; lists keep
declaration order.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .model import (
    Deployment,
    LifecycleEvent,
    NodeTemplate,
    NodeType,
    RelationshipTemplate,
    Topology,
    event_from_dict,
)
from .services import EventListener


class InMemoryEventSource:
    def __init__(self) -> None:
        self._listeners: List[EventListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: EventListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> List[EventListener]:
        with self._lock:
            return list(self._listeners)

    def dispatch(self, event: LifecycleEvent) -> None:
        for listener in self.listeners:
            if listener.can_handle(event):
                listener.event_happened(event)


class InMemoryDeploymentStore:
    def __init__(self, deployments: Iterable[Deployment] = ()) -> None:
        self._items: Dict[str, Deployment] = {d.id: d for d in deployments}

    def put(self, deployment: Deployment) -> None:
        self._items[deployment.id] = deployment

    def get(self, deployment_id: str) -> Optional[Deployment]:
        return self._items.get(deployment_id)


class InMemoryTopologyStore:
    def __init__(self) -> None:
        self._unprocessed: Dict[str, Topology] = {}
        self._runtime: Dict[str, Topology] = {}

    def put(self, deployment_id: str, unprocessed: Optional[Topology] = None, runtime: Optional[Topology] = None) -> None:
        if unprocessed is not None:
            self._unprocessed[deployment_id] = unprocessed
        if runtime is not None:
            self._runtime[deployment_id] = runtime

    def get_unprocessed_topology(self, deployment_id: str) -> Optional[Topology]:
        return self._unprocessed.get(deployment_id)

    def get_runtime_topology(self, deployment_id: str) -> Optional[Topology]:
        return self._runtime.get(deployment_id)


class InMemoryTypeRegistry:
    """Type catalog with an explicit, non re-entrant resolution scope per thread."""

    def __init__(self, types: Iterable[NodeType] = ()) -> None:
        self._types: Dict[str, NodeType] = {t.element_id: t for t in types}
        self._local = threading.local()
        self.init_count = 0
        self.destroy_count = 0

    def put(self, node_type: NodeType) -> None:
        self._types[node_type.element_id] = node_type

    @property
    def active(self) -> bool:
        return getattr(self._local, "dependencies", None) is not None

    def init(self, dependencies: Iterable[str]) -> None:
        if self.active:
            raise RuntimeError("type context already initialized")
        self._local.dependencies = list(dependencies)
        self.init_count += 1

    def get(self, type_name: str) -> Optional[NodeType]:
        if not self.active:
            raise RuntimeError("type context not initialized")
        return self._types.get(type_name)

    def destroy(self) -> None:
        self._local.dependencies = None
        self.destroy_count += 1


class InMemoryMetaPropertyStore:
    def __init__(self, keys: Optional[Mapping[str, str]] = None) -> None:
        # name -> meta-property id
        self._keys: Dict[str, str] = dict(keys or {})

    def key_by_name(self, name: str, target: str) -> Optional[str]:
        return self._keys.get(name)


# ------------------------
# Fixture loading
# ------------------------

def topology_from_dict(data: Mapping[str, Any]) -> Topology:
    nodes: Dict[str, NodeTemplate] = {}
    for raw in data.get("node_templates", []):
        relationships = {
            str(rel.get("name") or f"rel_{i}"): RelationshipTemplate(str(rel["type"]), str(rel["target"]))
            for i, rel in enumerate(raw.get("relationships", []))
        }
        node = NodeTemplate(
            id=str(raw["id"]),
            type=str(raw["type"]),
            name=str(raw.get("name") or ""),
            properties=dict(raw.get("properties") or {}),
            relationships=relationships,
        )
        nodes[node.id] = node
    return Topology(dependencies=list(data.get("dependencies", [])), node_templates=nodes)


def node_type_from_dict(data: Mapping[str, Any]) -> NodeType:
    return NodeType(
        element_id=str(data["name"]),
        derived_from=list(data.get("derived_from", [])),
        meta_properties=dict(data.get("meta_properties") or {}),
    )


@dataclass
class Fixture:
    deployments: InMemoryDeploymentStore = field(default_factory=InMemoryDeploymentStore)
    topologies: InMemoryTopologyStore = field(default_factory=InMemoryTopologyStore)
    types: InMemoryTypeRegistry = field(default_factory=InMemoryTypeRegistry)
    meta_properties: InMemoryMetaPropertyStore = field(default_factory=InMemoryMetaPropertyStore)
    events: List[LifecycleEvent] = field(default_factory=list)


def fixture_from_dict(data: Mapping[str, Any]) -> Fixture:
    fixture = Fixture(
        deployments=InMemoryDeploymentStore(
            Deployment(str(d["id"]), str(d.get("source_name", "")), d.get("deployer_username"))
            for d in data.get("deployments", [])
        ),
        types=InMemoryTypeRegistry(node_type_from_dict(t) for t in data.get("types", [])),
        meta_properties=InMemoryMetaPropertyStore(data.get("meta_properties") or {}),
        events=[event_from_dict(e) for e in data.get("events", [])],
    )
    for deployment_id, graphs in dict(data.get("topologies") or {}).items():
        unprocessed, runtime = _graphs(graphs)
        fixture.topologies.put(deployment_id, unprocessed, runtime)
    return fixture


def _graphs(graphs: Mapping[str, Any]) -> Tuple[Optional[Topology], Optional[Topology]]:
    unprocessed = graphs.get("unprocessed")
    runtime = graphs.get("runtime")
    return (
        topology_from_dict(unprocessed) if unprocessed is not None else None,
        topology_from_dict(runtime) if runtime is not None else None,
    )


def load_fixture(path: Path) -> Fixture:
    return fixture_from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
