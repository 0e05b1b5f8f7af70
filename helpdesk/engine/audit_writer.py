"""Audit Writer - Append-only audit trail that never blocks a mutation"""
import queue
import threading
from typing import Any, Dict, Optional

from ..domain.models import AuditLogEntry, RequestContext, ActorContext
from ..domain.enums import AuditAction, ResourceType
from ..repositories.audit_repo import AuditRepository
from ..config.settings import settings
from ..utils.idgen import generate_audit_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_correlation_id, AUDIT_FALLBACK_LOGGER

logger = get_logger(__name__)
fallback_logger = get_logger(AUDIT_FALLBACK_LOGGER)

_STOP = object()


class AuditWriter:
    """
    Write audit log entries (append-only)

    record() never raises. An entry the store refuses is written to the
    fallback logger instead and the caller carries on; the mutation that
    triggered it is already committed.

    With async dispatch enabled and the worker started, entries go through
    a bounded queue drained by one worker thread, so they are persisted in
    the order they were recorded. A full queue sends the entry to the
    fallback logger. Without a running worker, entries are written inline.
    """

    def __init__(
        self,
        repo: Optional[AuditRepository] = None,
        async_dispatch: Optional[bool] = None,
        queue_size: Optional[int] = None
    ):
        self.repo = repo if repo is not None else AuditRepository()
        self.async_dispatch = settings.audit_async if async_dispatch is None else async_dispatch
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=queue_size or settings.audit_queue_size)
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closing = False

    # =========================================================================
    # Worker lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        """Start the background worker (no-op for inline dispatch)"""
        if not self.async_dispatch:
            return
        with self._lock:
            if self.is_running:
                return
            self._worker = threading.Thread(target=self._run, name="audit-writer", daemon=True)
            self._worker.start()
        logger.info("Audit writer started", extra={"queue_size": self._queue.maxsize})

    def stop(self, timeout: float = 5.0) -> None:
        """
        Drain pending entries and stop the worker

        Entries recorded while stopping are written inline; anything the
        worker did not reach before the timeout is written here.
        """
        with self._lock:
            worker = self._worker
            if worker is None:
                return
            self._closing = True
            self._queue.put(_STOP)

        worker.join(timeout)
        self._drain()

        with self._lock:
            self._worker = None
            self._closing = False
        logger.info("Audit writer stopped")

    def flush(self) -> None:
        """Block until every queued entry has been handled"""
        if self.is_running:
            self._queue.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._persist(item)
            finally:
                self._queue.task_done()

    def _drain(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            try:
                if item is not _STOP:
                    self._persist(item)
            finally:
                self._queue.task_done()

    def _enqueue(self, entry: AuditLogEntry) -> bool:
        """Hand entry to the worker; False means write it inline"""
        with self._lock:
            if not (self.async_dispatch and self.is_running) or self._closing:
                return False
            try:
                self._queue.put_nowait(entry)
            except queue.Full:
                full = True
            else:
                full = False
        if full:
            self._fallback(entry, "audit queue full")
        return True

    # =========================================================================
    # Recording
    # =========================================================================

    def record(
        self,
        actor_id: str,
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[RequestContext] = None
    ) -> None:
        """Record one audit entry; failures go to the fallback log"""
        context = context or RequestContext()
        try:
            entry = AuditLogEntry(
                audit_id=generate_audit_id(),
                actor_id=actor_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details or {},
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                correlation_id=context.correlation_id or get_correlation_id(),
                timestamp=utc_now()
            )
        except Exception as e:
            fallback_logger.error(
                f"Audit entry could not be built: {e}",
                extra={
                    "actor_id": actor_id,
                    "action": getattr(action, "value", action),
                    "resource_id": resource_id
                }
            )
            return

        if not self._enqueue(entry):
            self._persist(entry)

    def record_access_denied(
        self,
        actor: ActorContext,
        attempted: str,
        resource_type: ResourceType,
        resource_id: str,
        reason: str,
        context: Optional[RequestContext] = None
    ) -> None:
        """Record a refused mutation"""
        self.record(
            actor_id=actor.user_id,
            action=AuditAction.ACCESS_DENIED,
            resource_type=resource_type,
            resource_id=resource_id,
            details={"attempted": attempted, "role": actor.role.value, "reason": reason},
            context=context
        )

    def _persist(self, entry: AuditLogEntry) -> None:
        try:
            self.repo.create_entry(entry)
        except Exception as e:
            self._fallback(entry, str(e))

    def _fallback(self, entry: AuditLogEntry, reason: str) -> None:
        fallback_logger.error(
            f"Audit entry not persisted: {reason}",
            extra={
                "audit_id": entry.audit_id,
                "action": entry.action.value,
                "audit": entry.model_dump(mode="json")
            }
        )
