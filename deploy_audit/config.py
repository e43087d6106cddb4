from __future__ import annotations

import json as _json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .topology import (
    K8S_TYPES_DEPLOYMENT_RESOURCE,
    K8S_TYPES_KUBECONTAINER,
    K8S_TYPES_SIMPLE_RESOURCE,
)

_ALLOWED_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


@dataclass
class AuditSettings:
    # Kafka transport; the subsystem stays disabled unless bootstrap, site and topic are set
    bootstrap_servers: Optional[str] = None
    site: Optional[str] = None
    topic: Optional[str] = None
    # Meta-property (name and expected value) marking node types as modules
    module_tag_name: Optional[str] = None
    module_tag_value: Optional[str] = None
    client_id: str = "deploy-audit"
    retry_backoff: float = 5.0
    flush_timeout: float = 5.0
    log_level: str = "INFO"
    container_type: str = K8S_TYPES_KUBECONTAINER
    deployment_resource_type: str = K8S_TYPES_DEPLOYMENT_RESOURCE
    namespace_resource_type: str = K8S_TYPES_SIMPLE_RESOURCE

    @property
    def configured(self) -> bool:
        return bool(self.bootstrap_servers and self.site and self.topic)


def _env(key: str, *fallbacks: str) -> Optional[str]:
    for name in (key, *fallbacks):
        raw = (os.getenv(name) or "").strip()
        if raw:
            return raw
    return None


def _env_float(key: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _level(raw: Optional[str]) -> str:
    level = (raw or "INFO").upper()
    return level if level in _ALLOWED_LEVELS else "INFO"


def get_settings() -> AuditSettings:
    return AuditSettings(
        bootstrap_servers=_env("AUDIT_KAFKA_BOOTSTRAP_SERVERS", "KAFKA_BOOTSTRAP_SERVERS"),
        site=_env("AUDIT_SITE"),
        topic=_env("AUDIT_TOPIC"),
        module_tag_name=_env("AUDIT_MODULE_TAG_NAME"),
        module_tag_value=_env("AUDIT_MODULE_TAG_VALUE"),
        client_id=_env("AUDIT_KAFKA_CLIENT_ID") or "deploy-audit",
        retry_backoff=_env_float("AUDIT_KAFKA_RETRY_BACKOFF", 5.0, minimum=0.1),
        flush_timeout=_env_float("AUDIT_KAFKA_FLUSH_TIMEOUT", 5.0),
        log_level=_level(_env("AUDIT_LOG_LEVEL")),
        container_type=_env("AUDIT_K8S_CONTAINER_TYPE") or K8S_TYPES_KUBECONTAINER,
        deployment_resource_type=_env("AUDIT_K8S_DEPLOYMENT_RESOURCE_TYPE") or K8S_TYPES_DEPLOYMENT_RESOURCE,
        namespace_resource_type=_env("AUDIT_K8S_NAMESPACE_RESOURCE_TYPE") or K8S_TYPES_SIMPLE_RESOURCE,
    )


def load_settings(path: Optional[Path] = None) -> AuditSettings:
    """Settings from a JSON file keyed by field name; the environment fills the gaps."""
    base = get_settings()
    if path is None:
        return base
    data = _json.loads(Path(path).read_text(encoding="utf-8"))
    known = {f.name for f in fields(AuditSettings)}
    overrides: Dict[str, Any] = {}
    for key, value in dict(data).items():
        if key not in known or value is None or value == "":
            continue
        if key in ("retry_backoff", "flush_timeout"):
            value = float(value)
        elif key == "log_level":
            value = _level(str(value))
        else:
            value = str(value)
        overrides[key] = value
    return replace(base, **overrides)
