"""
Audit trail for application deployments: orchestrator lifecycle events in,
Kafka audit records out.
"""

from .classifier import AuditEventHandler, AuditKind, classify
from .config import AuditSettings, get_settings, load_settings
from .identifier import build_identifier, identifier_to_wire
from .listener import AuditDependencies, AuditHandle, AuditListener, start, stop
from .record import AuditRecord, RecordAssembler
from .topology import ExecutionContext, ModuleResolution, resolve_modules

__all__ = [
    'AuditEventHandler', 'AuditKind', 'classify',
    'AuditSettings', 'get_settings', 'load_settings',
    'build_identifier', 'identifier_to_wire',
    'AuditDependencies', 'AuditHandle', 'AuditListener', 'start', 'stop',
    'AuditRecord', 'RecordAssembler',
    'ExecutionContext', 'ModuleResolution', 'resolve_modules',
]
