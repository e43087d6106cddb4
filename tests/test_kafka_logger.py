import json
import sys
from types import SimpleNamespace

from deploy_audit.streaming.kafka_log import KafkaBusClient


def _install_producer(monkeypatch, produced, *, fail_produce=False, created=None):
    class DummyProducer:
        def __init__(self, conf):
            self.conf = conf
            if created is not None:
                created.append(conf)

        def produce(self, topic, value=None, key=None):
            if fail_produce:
                raise BufferError("queue full")
            produced.append((topic, key, value))

        def poll(self, timeout):
            return 0

        def flush(self, timeout):
            return 0

    monkeypatch.setitem(sys.modules, 'confluent_kafka', SimpleNamespace(Producer=DummyProducer))


def test_client_disabled_without_bootstrap():
    client = KafkaBusClient("")
    assert not client.enabled
    client.send("topic", None, "{}")  # no-op


def test_client_produces_utf8_payload(monkeypatch):
    produced, created = [], []
    _install_producer(monkeypatch, produced, created=created)

    client = KafkaBusClient("localhost:9092", "audit-test")
    assert client.enabled
    assert created == [{"bootstrap.servers": "localhost:9092", "client.id": "audit-test"}]

    client.send("audit.deploy", None, json.dumps({"message": "Déploie"}, ensure_ascii=False))
    topic, key, payload = produced[0]
    assert topic == "audit.deploy"
    assert key is None
    assert json.loads(payload.decode("utf-8")) == {"message": "Déploie"}


def test_client_resets_producer_after_transport_error(monkeypatch):
    produced, created = [], []
    _install_producer(monkeypatch, produced, fail_produce=True, created=created)

    client = KafkaBusClient("localhost:9092", retry_backoff=60.0)
    client.send("audit.deploy", None, "{}")
    # producer dropped; next send inside the backoff window does not rebuild it
    client.send("audit.deploy", None, "{}")
    assert len(created) == 1
    assert produced == []


def test_client_disabled_when_library_missing(monkeypatch):
    monkeypatch.setitem(sys.modules, 'confluent_kafka', None)
    client = KafkaBusClient("localhost:9092")
    assert not client.enabled


def test_close_flushes_once(monkeypatch):
    flushed = []

    class DummyProducer:
        def __init__(self, conf):
            pass

        def flush(self, timeout):
            flushed.append(timeout)
            return 0

    monkeypatch.setitem(sys.modules, 'confluent_kafka', SimpleNamespace(Producer=DummyProducer))
    client = KafkaBusClient("localhost:9092", flush_timeout=2.5)
    client.close()
    client.close()
    assert flushed == [2.5]
    assert not client.enabled
