"""Locate module nodes in a deployment topology and resolve where they run.

The unprocessed topology (as authored) tells which nodes are modules and what
they are hosted on. When it contains a Kubernetes container the runtime
topology is scanned for the generated resources to find the concrete
deployment name and namespace. Missing pieces narrow the execution context,
they never abort resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .model import NodeTemplate, NodeType, Topology, scalar_value
from .services import UnknownTypeError
from .tosca import TypeResolver, hosted_on_target

logger = logging.getLogger(__name__)

# A4C K8s types defined by the kubernetes modifier plugin
K8S_TYPES_KUBECONTAINER = "org.alien4cloud.kubernetes.api.types.KubeContainer"
K8S_TYPES_DEPLOYMENT_RESOURCE = "org.alien4cloud.kubernetes.api.types.DeploymentResource"
K8S_TYPES_SIMPLE_RESOURCE = "org.alien4cloud.kubernetes.api.types.SimpleResource"

KUBERNETES_EXECUTOR = "Kubernetes"
RESOURCE_ID = "resource_id"


@dataclass(frozen=True)
class ExecutionContext:
    deployment_name: Optional[str] = None
    namespace: Optional[str] = None
    executor: Optional[str] = None


@dataclass(frozen=True)
class ModuleResolution:
    node: NodeTemplate
    context: ExecutionContext


def is_module(node_type: NodeType, tag_key: str, tag_value: Optional[str]) -> bool:
    if not node_type.meta_properties or tag_value is None:
        return False
    return node_type.meta_properties.get(tag_key) == tag_value


def runtime_deployment_name(runtime: Topology, host_id: str, resource_type: str) -> Optional[str]:
    """``resource_id`` of the last deployment resource whose name starts with ``host_id``."""
    found = None
    for node in runtime.nodes():
        if node.type == resource_type and node.name.startswith(host_id):
            found = scalar_value(node.properties.get(RESOURCE_ID))
    return found


def runtime_namespace(runtime: Topology, resource_type: str) -> Optional[str]:
    found = None
    for node in runtime.nodes():
        if node.type == resource_type:
            found = scalar_value(node.properties.get(RESOURCE_ID))
    return found


def kubernetes_context(
    node: NodeTemplate,
    runtime: Topology,
    deployment_resource_type: str = K8S_TYPES_DEPLOYMENT_RESOURCE,
    namespace_resource_type: str = K8S_TYPES_SIMPLE_RESOURCE,
) -> ExecutionContext:
    host_id = hosted_on_target(node)
    if host_id is None:
        return ExecutionContext(executor=KUBERNETES_EXECUTOR)
    return ExecutionContext(
        deployment_name=runtime_deployment_name(runtime, host_id, deployment_resource_type),
        namespace=runtime_namespace(runtime, namespace_resource_type),
        executor=KUBERNETES_EXECUTOR,
    )


def resolve_modules(
    resolver: TypeResolver,
    unprocessed: Topology,
    runtime: Topology,
    tag_key: str,
    tag_value: Optional[str],
    *,
    container_type: str = K8S_TYPES_KUBECONTAINER,
    deployment_resource_type: str = K8S_TYPES_DEPLOYMENT_RESOURCE,
    namespace_resource_type: str = K8S_TYPES_SIMPLE_RESOURCE,
) -> List[ModuleResolution]:
    container_aware = bool(resolver.nodes_of_type(unprocessed, container_type))
    if container_aware:
        logger.info("Node KubeContainer found")
    else:
        logger.info("Node KubeContainer not found")

    modules: List[ModuleResolution] = []
    for node in unprocessed.nodes():
        try:
            node_type = resolver.get_or_fail(node.type)
        except UnknownTypeError as exc:
            logger.warning("Skipping node <%s>: %s", node.id, exc)
            continue
        if not is_module(node_type, tag_key, tag_value):
            continue
        if container_aware:
            context = kubernetes_context(node, runtime, deployment_resource_type, namespace_resource_type)
        else:
            context = ExecutionContext()
        modules.append(ModuleResolution(node, context))
    return modules
