"""Scoped node-type resolution and small topology navigation helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from .model import NodeTemplate, NodeType, Topology
from .services import TypeRegistry, UnknownTypeError

HOSTED_ON = "tosca.relationships.HostedOn"


class TypeResolver:
    def __init__(self, registry: TypeRegistry) -> None:
        self._registry = registry

    def get(self, type_name: str) -> Optional[NodeType]:
        return self._registry.get(type_name)

    def get_or_fail(self, type_name: str) -> NodeType:
        node_type = self._registry.get(type_name)
        if node_type is None:
            raise UnknownTypeError(type_name)
        return node_type

    def is_of_type(self, node: NodeTemplate, type_name: str) -> bool:
        if node.type == type_name:
            return True
        node_type = self.get(node.type)
        if node_type is None:
            return False
        return type_name in node_type.derived_from

    def nodes_of_type(self, topology: Topology, type_name: str) -> List[NodeTemplate]:
        return [node for node in topology.nodes() if self.is_of_type(node, type_name)]


@contextmanager
def type_context(registry: TypeRegistry, topology: Topology) -> Iterator[TypeResolver]:
    """Open a type-resolution scope for ``topology``; released on every exit path."""
    registry.init(topology.dependencies)
    try:
        yield TypeResolver(registry)
    finally:
        registry.destroy()


def hosted_on_target(node: NodeTemplate) -> Optional[str]:
    # Several HostedOn relationships are not expected; the last one wins.
    target = None
    for relationship in node.relationships.values():
        if relationship.type == HOSTED_ON:
            target = relationship.target
    return target
