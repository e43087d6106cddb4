from __future__ import annotations

import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


class KafkaBusClient:
    """Fire-and-forget Kafka producer for audit payloads.

    A failing ``produce`` drops the producer; the next send after
    ``retry_backoff`` seconds builds a new one. Payloads sent meanwhile are
    lost, which is acceptable for advisory audit logging.
    """

    def __init__(
        self,
        bootstrap: str,
        client_id: str = "deploy-audit",
        *,
        retry_backoff: float = 5.0,
        flush_timeout: float = 5.0,
    ) -> None:
        self.bootstrap = bootstrap
        self.client_id = client_id
        self._retry_backoff = max(0.1, retry_backoff)
        self._flush_timeout = max(0.0, flush_timeout)
        self._producer: Any = None
        self._next_retry_at = 0.0
        self._should_attempt = bool(self.bootstrap)
        if self._should_attempt:
            self._maybe_init_producer(initial=True)

    @property
    def enabled(self) -> bool:
        return self._should_attempt

    def _maybe_init_producer(self, *, initial: bool = False) -> None:
        if not self._should_attempt or self._producer is not None:
            return
        now = time.monotonic()
        if not initial and now < self._next_retry_at:
            return
        # Imported lazily: loading the native client at import time can crash the host
        try:
            from confluent_kafka import Producer as _Producer  # type: ignore
        except ImportError:
            logger.error("confluent_kafka is not installed, audit records will not be sent")
            self._should_attempt = False
            return
        conf = {
            "bootstrap.servers": self.bootstrap,
            "client.id": self.client_id,
        }
        try:
            self._producer = _Producer(conf)
            self._next_retry_at = 0.0
        except Exception as exc:
            logger.warning("Cannot create Kafka producer for %s: %s", self.bootstrap, exc)
            self._producer = None
            self._schedule_retry(now)

    def _schedule_retry(self, now: Optional[float] = None) -> None:
        base = time.monotonic() if now is None else now
        self._next_retry_at = base + self._retry_backoff

    def send(self, topic: str, key: Optional[str], value: str) -> None:
        if not self.enabled:
            return
        if self._producer is None:
            self._maybe_init_producer()
            if self._producer is None:
                return
        data = value.encode("utf-8")
        raw_key = key.encode("utf-8") if key is not None else None
        try:
            self._producer.produce(topic, value=data, key=raw_key)
            self._producer.poll(0)
        except Exception as exc:
            logger.warning("Kafka send to %s failed, producer reset: %s", topic, exc)
            self._producer = None
            self._schedule_retry()

    def close(self) -> None:
        prod = self._producer
        self._producer = None
        self._should_attempt = False
        if prod is None:
            return
        try:
            remaining = prod.flush(self._flush_timeout)
        except Exception as exc:
            logger.warning("Kafka flush failed: %s", exc)
            return
        if remaining:
            logger.warning("%s audit records still queued at shutdown", remaining)
