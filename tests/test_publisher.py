import json
from dataclasses import replace

from deploy_audit.identifier import build_identifier
from deploy_audit.model import Deployment
from deploy_audit.record import RecordAssembler
from deploy_audit.streaming.publisher import AuditPublisher


def _record(**overrides):
    dep = Deployment("d1", "App1", "alice")
    rec = RecordAssembler("site-a", "host-1").assemble(
        "2023-11-14T22:13:20+00:00", dep, build_identifier(dep), "DEPLOY_SUCCESS", "Deploys the application App1",
    )
    return replace(rec, **overrides) if overrides else rec


def test_publish_sends_ordered_json(bus):
    publisher = AuditPublisher(bus, "audit.deploy")
    assert publisher.publish(_record())
    topic, key, payload = bus.sent[0]
    assert topic == "audit.deploy"
    assert key is None
    data = json.loads(payload)
    assert list(data)[0] == "timestamp" and list(data)[-1] == "message"
    assert data["ids_technique"] == [{"id_app": "d1"}]


def test_unserializable_record_is_dropped(bus, caplog):
    publisher = AuditPublisher(bus, "audit.deploy")
    assert publisher.publish(_record(message=object())) is False
    assert bus.sent == []
    assert "Cant send kafka event" in caplog.text
    # later records still go through
    assert publisher.publish(_record())
    assert len(bus.sent) == 1


def test_close_closes_client(bus):
    AuditPublisher(bus, "t").close()
    assert bus.closed
