"""Read-only views of orchestrator entities consumed by the audit logger."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


class DeploymentStatus(str, Enum):
    DEPLOYED = "DEPLOYED"
    UNDEPLOYED = "UNDEPLOYED"
    FAILURE = "FAILURE"
    DEPLOYMENT_IN_PROGRESS = "DEPLOYMENT_IN_PROGRESS"
    UNDEPLOYMENT_IN_PROGRESS = "UNDEPLOYMENT_IN_PROGRESS"
    WARNING = "WARNING"
    INIT_DEPLOYMENT = "INIT_DEPLOYMENT"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATED = "UPDATED"
    UPDATE_FAILURE = "UPDATE_FAILURE"
    PURGE_FAILURE = "PURGE_FAILURE"
    UNKNOWN = "UNKNOWN"


# ------------------------
# Lifecycle events
# ------------------------

@dataclass(frozen=True)
class DeploymentStatusEvent:
    deployment_id: str
    status: DeploymentStatus
    date: int  # epoch millis


@dataclass(frozen=True)
class WorkflowStartedEvent:
    deployment_id: str
    workflow_name: Optional[str]
    date: int


@dataclass(frozen=True)
class WorkflowStepStartedEvent:
    deployment_id: str
    node_id: str
    operation_name: str
    date: int


LifecycleEvent = Union[DeploymentStatusEvent, WorkflowStartedEvent, WorkflowStepStartedEvent]

EVENT_KINDS = {
    "deployment_status": DeploymentStatusEvent,
    "workflow_started": WorkflowStartedEvent,
    "workflow_step_started": WorkflowStepStartedEvent,
}


def event_from_dict(data: Mapping[str, Any]) -> LifecycleEvent:
    """Build an event from a JSON mapping carrying a ``kind`` discriminator."""
    kind = data.get("kind")
    if kind not in EVENT_KINDS:
        raise ValueError(f"unknown event kind: {kind!r}")
    date = int(data.get("date", 0))
    deployment_id = str(data["deployment_id"])
    if kind == "deployment_status":
        return DeploymentStatusEvent(deployment_id, DeploymentStatus(str(data["status"]).upper()), date)
    if kind == "workflow_started":
        return WorkflowStartedEvent(deployment_id, data.get("workflow_name"), date)
    return WorkflowStepStartedEvent(deployment_id, str(data["node_id"]), str(data["operation_name"]), date)


# ------------------------
# Deployments and topologies
# ------------------------

@dataclass(frozen=True)
class Deployment:
    id: str
    source_name: str
    deployer_username: Optional[str] = None


@dataclass(frozen=True)
class RelationshipTemplate:
    type: str
    target: str


@dataclass
class NodeTemplate:
    id: str
    type: str
    name: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    # Insertion-ordered: name -> relationship
    relationships: Dict[str, RelationshipTemplate] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id


@dataclass
class Topology:
    dependencies: List[str] = field(default_factory=list)
    node_templates: Dict[str, NodeTemplate] = field(default_factory=dict)

    def node(self, node_id: str) -> Optional[NodeTemplate]:
        return self.node_templates.get(node_id)

    def nodes(self) -> List[NodeTemplate]:
        return list(self.node_templates.values())


@dataclass(frozen=True)
class NodeType:
    element_id: str
    derived_from: List[str] = field(default_factory=list)
    meta_properties: Dict[str, str] = field(default_factory=dict)


def scalar_value(prop: Any) -> Optional[str]:
    """Return the scalar text of a property value, or None for complex values."""
    if prop is None:
        return None
    if isinstance(prop, Mapping):
        if "value" not in prop:
            return None
        prop = prop["value"]
        if prop is None:
            return None
    if isinstance(prop, (str, int, float, bool)):
        return str(prop)
    return None
