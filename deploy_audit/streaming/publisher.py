from __future__ import annotations

import json
import logging

from ..record import AuditRecord
from ..services import BusClient

logger = logging.getLogger(__name__)


class AuditPublisher:
    def __init__(self, client: BusClient, topic: str) -> None:
        self.client = client
        self.topic = topic

    def publish(self, record: AuditRecord) -> bool:
        """Serialize and send one record. A record that cannot be serialized is dropped."""
        try:
            payload = json.dumps(record.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.error("Cant send kafka event %s: %s", record.event, exc)
            return False
        self.client.send(self.topic, None, payload)
        logger.debug("=> KAFKA[%s] : %s", self.topic, payload)
        return True

    def close(self) -> None:
        self.client.close()
