from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .model import Deployment, NodeTemplate
from .topology import ExecutionContext

ID_APP = "id_app"
NAME = "name"
KUBE_DEPLOYMENT = "KubeDeployment"
KUBE_NAMESPACE = "KubeNamespace"
EXECUTOR = "executor"

Identifier = Tuple[Tuple[str, str], ...]


def build_identifier(
    deployment: Deployment,
    node: Optional[NodeTemplate] = None,
    context: Optional[ExecutionContext] = None,
) -> Identifier:
    """Ordered label/value pairs naming an application or one of its modules."""
    parts: List[Tuple[str, str]] = [(ID_APP, deployment.id)]
    if node is not None:
        parts.append((NAME, node.name))
    if context is not None:
        if context.deployment_name is not None:
            parts.append((KUBE_DEPLOYMENT, context.deployment_name))
        if context.namespace is not None:
            parts.append((KUBE_NAMESPACE, context.namespace))
        if context.executor is not None:
            parts.append((EXECUTOR, context.executor))
    return tuple(parts)


def identifier_to_wire(identifier: Identifier) -> List[Dict[str, str]]:
    return [{label: value} for label, value in identifier]
