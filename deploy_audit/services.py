"""Contracts of the orchestrator services the audit logger talks to."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

from .model import Deployment, LifecycleEvent, NodeType, Topology

META_TARGET_COMPONENT = "component"


class AuditError(Exception):
    pass


class UnknownTypeError(AuditError, LookupError):
    def __init__(self, type_name: str) -> None:
        super().__init__(f"node type not found: {type_name}")
        self.type_name = type_name


class EventListener(Protocol):
    def can_handle(self, event: Any) -> bool: ...

    def event_happened(self, event: LifecycleEvent) -> None: ...


class EventSource(Protocol):
    def add_listener(self, listener: EventListener) -> None: ...

    def remove_listener(self, listener: EventListener) -> None: ...


class DeploymentStore(Protocol):
    def get(self, deployment_id: str) -> Optional[Deployment]: ...


class TopologyStore(Protocol):
    def get_unprocessed_topology(self, deployment_id: str) -> Optional[Topology]: ...

    def get_runtime_topology(self, deployment_id: str) -> Optional[Topology]: ...


class TypeRegistry(Protocol):
    """Type lookups bracketed by init/destroy; one scope at a time."""

    def init(self, dependencies: Iterable[str]) -> None: ...

    def get(self, type_name: str) -> Optional[NodeType]: ...

    def destroy(self) -> None: ...


class MetaPropertyStore(Protocol):
    def key_by_name(self, name: str, target: str) -> Optional[str]: ...


class BusClient(Protocol):
    def send(self, topic: str, key: Optional[str], value: str) -> None: ...

    def close(self) -> None: ...
