from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from deploy_audit.config import AuditSettings
from deploy_audit.memory import (
    InMemoryDeploymentStore,
    InMemoryEventSource,
    InMemoryMetaPropertyStore,
    InMemoryTopologyStore,
    InMemoryTypeRegistry,
)
from deploy_audit.model import Deployment, NodeTemplate, NodeType, RelationshipTemplate, Topology
from deploy_audit.topology import (
    K8S_TYPES_DEPLOYMENT_RESOURCE,
    K8S_TYPES_KUBECONTAINER,
    K8S_TYPES_SIMPLE_RESOURCE,
)
from deploy_audit.tosca import HOSTED_ON

MODULE_META_ID = "meta-module"
MODULE_TAG_NAME = "module"
MODULE_TAG_VALUE = "true"
KUBE_DEPLOYMENT_TYPE = "org.alien4cloud.kubernetes.api.types.KubeDeployment"


class RecordingBusClient:
    def __init__(self) -> None:
        self.sent: List[tuple] = []
        self.closed = False

    def send(self, topic: str, key: Optional[str], value: str) -> None:
        self.sent.append((topic, key, value))

    def close(self) -> None:
        self.closed = True


def node(node_id: str, type_name: str, *, hosted_on: Optional[str] = None, name: str = "", **properties: Any) -> NodeTemplate:
    relationships: Dict[str, RelationshipTemplate] = {}
    if hosted_on is not None:
        relationships["hostedOn"] = RelationshipTemplate(HOSTED_ON, hosted_on)
    return NodeTemplate(id=node_id, type=type_name, name=name, properties=dict(properties), relationships=relationships)


def topology(*nodes: NodeTemplate) -> Topology:
    return Topology(dependencies=["kubernetes-types:3.0.0"], node_templates={n.id: n for n in nodes})


def module_type(name: str, *parents: str) -> NodeType:
    return NodeType(name, list(parents), {MODULE_META_ID: MODULE_TAG_VALUE})


@pytest.fixture
def node_types() -> InMemoryTypeRegistry:
    return InMemoryTypeRegistry([
        module_type("acme.nodes.Api", K8S_TYPES_KUBECONTAINER, "tosca.nodes.Root"),
        module_type("acme.nodes.Worker", K8S_TYPES_KUBECONTAINER, "tosca.nodes.Root"),
        module_type("acme.nodes.Batch", "org.alien4cloud.nodes.Job", "tosca.nodes.Root"),
        NodeType("acme.nodes.Database", ["tosca.nodes.Root"], {"other-meta": "x"}),
        NodeType("acme.nodes.Cron", ["org.alien4cloud.nodes.Job", "tosca.nodes.Root"]),
        NodeType(KUBE_DEPLOYMENT_TYPE, ["tosca.nodes.Root"]),
        NodeType(K8S_TYPES_KUBECONTAINER, ["tosca.nodes.Root"]),
    ])


@pytest.fixture
def kube_unprocessed() -> Topology:
    return topology(
        node("api", "acme.nodes.Api", hosted_on="api_deployment"),
        node("api_deployment", KUBE_DEPLOYMENT_TYPE),
        node("worker", "acme.nodes.Worker"),
        node("db", "acme.nodes.Database"),
        node("batch", "acme.nodes.Batch"),
        node("cron", "acme.nodes.Cron"),
    )


@pytest.fixture
def kube_runtime() -> Topology:
    return topology(
        node("api_deployment_Resource", K8S_TYPES_DEPLOYMENT_RESOURCE, resource_id="api-deployment-7f"),
        node("namespace_Resource", K8S_TYPES_SIMPLE_RESOURCE, resource_id={"value": "prod"}),
    )


@pytest.fixture
def deployment() -> Deployment:
    return Deployment("d1", "App1", "alice")


@pytest.fixture
def settings() -> AuditSettings:
    return AuditSettings(
        bootstrap_servers="localhost:9092",
        site="site-a",
        topic="audit.deploy",
        module_tag_name=MODULE_TAG_NAME,
        module_tag_value=MODULE_TAG_VALUE,
    )


@pytest.fixture
def stores(deployment, kube_unprocessed, kube_runtime, node_types):
    topologies = InMemoryTopologyStore()
    topologies.put(deployment.id, kube_unprocessed, kube_runtime)
    return {
        "deployments": InMemoryDeploymentStore([deployment]),
        "topologies": topologies,
        "types": node_types,
        "meta_properties": InMemoryMetaPropertyStore({MODULE_TAG_NAME: MODULE_META_ID}),
    }


@pytest.fixture
def event_source() -> InMemoryEventSource:
    return InMemoryEventSource()


@pytest.fixture
def bus() -> RecordingBusClient:
    return RecordingBusClient()
