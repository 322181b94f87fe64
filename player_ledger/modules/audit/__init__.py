"""
Audit trail: the sink services record into, the consumer that persists
bus events, and queries over the persisted log.
"""

from .consumer import AuditConsumer
from .repository import AuditRepository
from .service import AuditService
from .sink import (
    ACCOUNT_CREATED,
    ACCOUNT_DELETED,
    AuditSink,
    EventBusAuditSink,
    MemoryAuditSink,
)

__all__ = [
    "AuditConsumer",
    "AuditRepository",
    "AuditService",
    "AuditSink",
    "EventBusAuditSink",
    "MemoryAuditSink",
    "ACCOUNT_CREATED",
    "ACCOUNT_DELETED",
]
