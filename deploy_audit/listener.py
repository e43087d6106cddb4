"""Registration of the audit logger on the orchestrator event source.

The hosting process calls ``start`` once at boot and ``stop`` at shutdown.
The listener keeps no per-event state, so the dispatcher may call it from
several threads for unrelated deployments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .classifier import AuditEventHandler
from .config import AuditSettings
from .model import (
    DeploymentStatusEvent,
    LifecycleEvent,
    WorkflowStartedEvent,
    WorkflowStepStartedEvent,
)
from .record import RecordAssembler, resolve_hostname
from .services import (
    BusClient,
    DeploymentStore,
    EventSource,
    MetaPropertyStore,
    TopologyStore,
    TypeRegistry,
)
from .streaming.kafka_log import KafkaBusClient
from .streaming.publisher import AuditPublisher

logger = logging.getLogger(__name__)

HANDLED_EVENTS = (DeploymentStatusEvent, WorkflowStartedEvent, WorkflowStepStartedEvent)


class AuditListener:
    def __init__(self, handler: AuditEventHandler, assembler: RecordAssembler, publisher: AuditPublisher) -> None:
        self.handler = handler
        self.assembler = assembler
        self.publisher = publisher

    def can_handle(self, event: Any) -> bool:
        return isinstance(event, HANDLED_EVENTS)

    def event_happened(self, event: LifecycleEvent) -> None:
        # Nothing may escape into the orchestrator's dispatch loop.
        try:
            for pending in self.handler.handle(event):
                record = self.assembler.assemble(
                    pending.timestamp,
                    pending.deployment,
                    pending.identifier,
                    pending.kind,
                    pending.message,
                )
                self.publisher.publish(record)
        except Exception:
            logger.exception("Audit event dropped: %s", event)


@dataclass
class AuditDependencies:
    event_source: EventSource
    deployments: DeploymentStore
    topologies: TopologyStore
    types: TypeRegistry
    meta_properties: MetaPropertyStore
    bus_client: Optional[BusClient] = None


@dataclass
class AuditHandle:
    listener: AuditListener
    publisher: AuditPublisher
    event_source: EventSource


def start(settings: AuditSettings, deps: AuditDependencies) -> Optional[AuditHandle]:
    if not settings.configured:
        logger.error("Kafka audit logger is not configured.")
        return None

    hostname = resolve_hostname()
    client = deps.bus_client
    if client is None:
        client = KafkaBusClient(
            settings.bootstrap_servers or "",
            settings.client_id,
            retry_backoff=settings.retry_backoff,
            flush_timeout=settings.flush_timeout,
        )
    publisher = AuditPublisher(client, settings.topic or "")
    handler = AuditEventHandler(deps.deployments, deps.topologies, deps.types, deps.meta_properties, settings)
    listener = AuditListener(handler, RecordAssembler(settings.site or "", hostname), publisher)

    deps.event_source.add_listener(listener)
    logger.info("Kafka audit logger registered on topic %s", settings.topic)
    return AuditHandle(listener, publisher, deps.event_source)


def stop(handle: Optional[AuditHandle]) -> None:
    if handle is None:
        return
    handle.event_source.remove_listener(handle.listener)
    handle.publisher.close()
    logger.info("Kafka audit logger unregistered")
