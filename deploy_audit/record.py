"""Audit record assembly.

A record is built fresh for every publish and never mutated afterwards. Field
order is part of the wire contract consumed downstream::

    timestamp, hostname, user, source, domaine, composant, site,
    processus, ids_technique, event, message
"""

from __future__ import annotations

import socket
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Optional

from .identifier import Identifier, identifier_to_wire
from .model import Deployment

HOSTNAME_UNKNOWN = "N/A"
SOURCE_TEMPLATE = "Log Audit Deploiement {}"
DOMAINE = "Socle/Service applicatif"
COMPOSANT = "A4C"
PROCESSUS = "python"


def resolve_hostname() -> str:
    try:
        name = socket.getfqdn(socket.gethostname())
    except OSError:
        return HOSTNAME_UNKNOWN
    return name or HOSTNAME_UNKNOWN


def format_timestamp(date_ms: int, tz: Optional[tzinfo] = None) -> str:
    """ISO-8601 with offset; local zone unless ``tz`` is given."""
    seconds, millis = divmod(int(date_ms), 1000)
    stamp = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=millis * 1000).astimezone(tz)
    timespec = "milliseconds" if millis else "seconds"
    return stamp.isoformat(timespec=timespec)


@dataclass(frozen=True)
class AuditRecord:
    timestamp: str
    hostname: str
    user: Optional[str]
    source: str
    domaine: str
    composant: str
    site: str
    processus: str
    ids_technique: Identifier
    event: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "hostname": self.hostname,
            "user": self.user,
            "source": self.source,
            "domaine": self.domaine,
            "composant": self.composant,
            "site": self.site,
            "processus": self.processus,
            "ids_technique": identifier_to_wire(self.ids_technique),
            "event": self.event,
            "message": self.message,
        }


class RecordAssembler:
    def __init__(self, site: str, hostname: Optional[str] = None) -> None:
        self.site = site
        self.hostname = hostname or HOSTNAME_UNKNOWN

    def assemble(
        self,
        timestamp: str,
        deployment: Deployment,
        identifier: Identifier,
        kind: str,
        message: str,
    ) -> AuditRecord:
        return AuditRecord(
            timestamp=timestamp,
            hostname=self.hostname,
            user=deployment.deployer_username,
            source=SOURCE_TEMPLATE.format(deployment.source_name),
            domaine=DOMAINE,
            composant=COMPOSANT,
            site=self.site,
            processus=PROCESSUS,
            ids_technique=identifier,
            event=kind,
            message=message,
        )
