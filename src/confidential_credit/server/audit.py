"""
Audit sinks.

The engine and registry report every successful operation here. Sinks are
fire-and-forget: a failing sink is logged and never fails the operation.
"""
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from loguru import logger

from confidential_credit.shared.protocol import AuditRecord


class AuditSink(ABC):
    """Append-only consumer of audit records."""

    @abstractmethod
    def record(self, record: AuditRecord) -> None:
        pass


class LoggingAuditSink(AuditSink):
    """Writes audit records to the log."""

    def record(self, record: AuditRecord) -> None:
        payload = record.payload[:8].hex() if record.payload is not None else "-"
        logger.bind(audit=True).info(
            f"audit op={record.operation} caller={record.caller} payload={payload}"
        )


class InMemoryAuditSink(AuditSink):
    """Keeps records in a list. Used by tests."""

    def __init__(self):
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()

    def record(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[AuditRecord]:
        with self._lock:
            return list(self._records)

    def operations(self) -> List[str]:
        return [r.operation for r in self.records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def emit_audit(sink: Optional[AuditSink], record: AuditRecord) -> None:
    """Deliver ``record`` to ``sink``, logging rather than raising on failure."""
    if sink is None:
        return
    try:
        sink.record(record)
    except Exception as e:
        logger.warning(f"Audit sink failed for {record.operation}: {e}")
