"""Turn orchestrator lifecycle events into pending audit records.

``classify`` decides, without any lookup, which audit kinds an event maps to
and at which scope. ``AuditEventHandler`` then fetches the deployment and,
where needed, its topologies to produce the records.

Deployed and failed deployments produce an application record plus one
``MODULE_*`` record per module node. Undeployments only produce the
application record: by the time it fires the runtime topology is being torn
down and per-module resolution cannot be trusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import AuditSettings
from .identifier import Identifier, build_identifier
from .model import (
    Deployment,
    DeploymentStatus,
    DeploymentStatusEvent,
    LifecycleEvent,
    WorkflowStartedEvent,
    WorkflowStepStartedEvent,
)
from .record import format_timestamp
from .services import (
    META_TARGET_COMPONENT,
    DeploymentStore,
    MetaPropertyStore,
    TopologyStore,
    TypeRegistry,
    UnknownTypeError,
)
from .topology import resolve_modules
from .tosca import type_context

logger = logging.getLogger(__name__)

JOB_TYPE = "org.alien4cloud.nodes.Job"
SUBMIT_OPERATION = "tosca.interfaces.node.lifecycle.runnable.submit"
INSTALL_WORKFLOW = "install"
UNINSTALL_WORKFLOW = "uninstall"
MODULE_PREFIX = "MODULE_"


class AuditKind(str, Enum):
    DEPLOY_BEGIN = "DEPLOY_BEGIN"
    DEPLOY_SUCCESS = "DEPLOY_SUCCESS"
    DEPLOY_ERROR = "DEPLOY_ERROR"
    UNDEPLOY_BEGIN = "UNDEPLOY_BEGIN"
    UNDEPLOY_SUCCESS = "UNDEPLOY_SUCCESS"
    JOB_SUBMIT = "JOB_SUBMIT"
    MODULE_DEPLOY_SUCCESS = "MODULE_DEPLOY_SUCCESS"
    MODULE_DEPLOY_ERROR = "MODULE_DEPLOY_ERROR"


class Scope(Enum):
    APPLICATION = "application"
    MODULES = "modules"
    JOB = "job"


@dataclass(frozen=True)
class Classification:
    kind: AuditKind
    phase: str
    scope: Scope


@dataclass(frozen=True)
class PendingRecord:
    timestamp: str
    deployment: Deployment
    identifier: Identifier
    kind: str
    message: str


DEPLOYS = "Deploys"
UNDEPLOYS = "Undeploys"

_STATUS_KINDS = {
    DeploymentStatus.DEPLOYED: (AuditKind.DEPLOY_SUCCESS, DEPLOYS),
    DeploymentStatus.FAILURE: (AuditKind.DEPLOY_ERROR, DEPLOYS),
    DeploymentStatus.UNDEPLOYED: (AuditKind.UNDEPLOY_SUCCESS, UNDEPLOYS),
}

_WORKFLOW_KINDS = {
    INSTALL_WORKFLOW: (AuditKind.DEPLOY_BEGIN, DEPLOYS),
    UNINSTALL_WORKFLOW: (AuditKind.UNDEPLOY_BEGIN, UNDEPLOYS),
}


def classify(event: LifecycleEvent) -> List[Classification]:
    if isinstance(event, WorkflowStepStartedEvent):
        if event.operation_name != SUBMIT_OPERATION:
            return []
        return [Classification(AuditKind.JOB_SUBMIT, "", Scope.JOB)]

    if isinstance(event, WorkflowStartedEvent):
        if event.workflow_name not in _WORKFLOW_KINDS:
            return []
        kind, phase = _WORKFLOW_KINDS[event.workflow_name]
        return [Classification(kind, phase, Scope.APPLICATION)]

    if isinstance(event, DeploymentStatusEvent):
        if event.status not in _STATUS_KINDS:
            return []
        kind, phase = _STATUS_KINDS[event.status]
        out = [Classification(kind, phase, Scope.APPLICATION)]
        if event.status in (DeploymentStatus.DEPLOYED, DeploymentStatus.FAILURE):
            out.append(Classification(AuditKind(MODULE_PREFIX + kind.value), phase, Scope.MODULES))
        return out

    return []


class AuditEventHandler:
    def __init__(
        self,
        deployments: DeploymentStore,
        topologies: TopologyStore,
        types: TypeRegistry,
        meta_properties: MetaPropertyStore,
        settings: AuditSettings,
    ) -> None:
        self.deployments = deployments
        self.topologies = topologies
        self.types = types
        self.meta_properties = meta_properties
        self.settings = settings

    def handle(self, event: LifecycleEvent) -> List[PendingRecord]:
        classifications = classify(event)
        if not classifications:
            return []
        deployment = self.deployments.get(event.deployment_id)
        if deployment is None:
            logger.warning("Deployment <%s> not found, audit event dropped", event.deployment_id)
            return []
        stamp = format_timestamp(event.date)

        records: List[PendingRecord] = []
        for classification in classifications:
            if classification.scope is Scope.APPLICATION:
                records.append(self._application_record(stamp, deployment, classification))
            elif classification.scope is Scope.JOB:
                records.extend(self._job_records(stamp, deployment, event))  # type: ignore[arg-type]
            else:
                records.extend(self._module_records(stamp, deployment, classification))
        return records

    def _application_record(self, stamp: str, deployment: Deployment, classification: Classification) -> PendingRecord:
        return PendingRecord(
            stamp,
            deployment,
            build_identifier(deployment),
            classification.kind.value,
            f"{classification.phase} the application {deployment.source_name}",
        )

    def _job_records(self, stamp: str, deployment: Deployment, event: WorkflowStepStartedEvent) -> List[PendingRecord]:
        node_id = event.node_id
        topology = self.topologies.get_unprocessed_topology(deployment.id)
        if topology is None:
            logger.warning("Unprocessed Topology not found for deployment <%s>", deployment.id)
            return []
        node = topology.node(node_id)
        if node is None:
            logger.warning("Node <%s> not found in deployment <%s>", node_id, deployment.id)
            return []

        records: List[PendingRecord] = []
        with type_context(self.types, topology) as resolver:
            try:
                node_type = resolver.get_or_fail(node.type)
            except UnknownTypeError as exc:
                logger.warning("Job submit on <%s> ignored: %s", node_id, exc)
                return []
            if JOB_TYPE in node_type.derived_from:
                records.append(PendingRecord(
                    stamp,
                    deployment,
                    build_identifier(deployment),
                    AuditKind.JOB_SUBMIT.value,
                    f"Job started on application {deployment.source_name} / node {node_id}",
                ))
        logger.info("WORKFLOWSTEP: %s", event)
        return records

    def _module_key(self) -> Optional[str]:
        name = self.settings.module_tag_name
        if not name:
            return None
        return self.meta_properties.key_by_name(name, META_TARGET_COMPONENT)

    def _module_records(self, stamp: str, deployment: Deployment, classification: Classification) -> List[PendingRecord]:
        meta_id = self._module_key()
        if meta_id is None:
            return []
        unprocessed = self.topologies.get_unprocessed_topology(deployment.id)
        if unprocessed is None:
            logger.warning("Unprocessed Topology not found for deployment <%s>", deployment.id)
            return []
        runtime = self.topologies.get_runtime_topology(deployment.id)
        if runtime is None:
            logger.warning("Runtime Topology not found for deployment <%s>", deployment.id)
            return []

        try:
            with type_context(self.types, unprocessed) as resolver:
                modules = resolve_modules(
                    resolver,
                    unprocessed,
                    runtime,
                    meta_id,
                    self.settings.module_tag_value,
                    container_type=self.settings.container_type,
                    deployment_resource_type=self.settings.deployment_resource_type,
                    namespace_resource_type=self.settings.namespace_resource_type,
                )
        except Exception:
            logger.exception("Module resolution failed for deployment <%s>", deployment.id)
            return []

        return [
            PendingRecord(
                stamp,
                deployment,
                build_identifier(deployment, module.node, module.context),
                classification.kind.value,
                f"{classification.phase} the module {module.node.name}",
            )
            for module in modules
        ]
