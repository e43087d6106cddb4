"""
Kafka transport for audit records.
"""

from .kafka_log import KafkaBusClient
from .publisher import AuditPublisher

__all__ = ['KafkaBusClient', 'AuditPublisher']
