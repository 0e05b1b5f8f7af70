"""Audit writer: never blocks, falls back to the log, keeps order"""
import logging
import threading
import time

import pytest

from helpdesk.domain.enums import AuditAction, ResourceType

from helpdesk.domain.models import RequestContext
from helpdesk.engine.audit_writer import AuditWriter
from helpdesk.repositories.audit_repo import AuditRepository
from helpdesk.utils.logger import AUDIT_FALLBACK_LOGGER, set_correlation_id
from tests.conftest import FailingAuditRepository


class SlowAuditRepository:
    """Holds writes until released"""

    def __init__(self):
        self.entries = []
        self.release = threading.Event()

    def create_entry(self, entry):
        self.release.wait(5)
        self.entries.append(entry)
        return entry


class FirstWriteBlocksRepository:
    """Holds the write for TKT-first until released; everything else lands at once"""

    def __init__(self):
        self.entries = []
        self.picked_up = threading.Event()
        self.release = threading.Event()

    def create_entry(self, entry):
        if entry.resource_id == "TKT-first":
            self.picked_up.set()
            self.release.wait(5)
        self.entries.append(entry)
        return entry


def _wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline
        time.sleep(0.01)


def _record(writer, resource_id="TKT-1", action=AuditAction.TICKET_UPDATED, **kwargs):
    writer.record(
        actor_id="USR-agent",
        action=action,
        resource_type=ResourceType.TICKET,
        resource_id=resource_id,
        details={"note": resource_id},
        **kwargs
    )


def test_sync_write_persists_entry(db):
    writer = AuditWriter(AuditRepository(db), async_dispatch=False)
    context = RequestContext(ip_address="10.0.0.7", user_agent="pytest", correlation_id="COR-1")

    _record(writer, context=context)

    entries = AuditRepository(db).get_entries_for_resource(ResourceType.TICKET, "TKT-1")
    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == AuditAction.TICKET_UPDATED
    assert entry.ip_address == "10.0.0.7"
    assert entry.correlation_id == "COR-1"
    assert entry.details == {"note": "TKT-1"}


def test_correlation_id_falls_back_to_logging_context(db):
    writer = AuditWriter(AuditRepository(db), async_dispatch=False)
    set_correlation_id("COR-from-context")
    try:
        _record(writer)
    finally:
        set_correlation_id(None)

    entry = AuditRepository(db).get_entries_for_resource(ResourceType.TICKET, "TKT-1")[0]
    assert entry.correlation_id == "COR-from-context"


def test_failed_write_goes_to_fallback_log(caplog):
    repo = FailingAuditRepository()
    writer = AuditWriter(repo, async_dispatch=False)

    with caplog.at_level(logging.ERROR, logger=AUDIT_FALLBACK_LOGGER):
        _record(writer)

    assert repo.attempts == 1
    records = [r for r in caplog.records if r.name == AUDIT_FALLBACK_LOGGER]
    assert len(records) == 1
    assert records[0].audit["action"] == "TICKET_UPDATED"
    assert records[0].audit["resource_id"] == "TKT-1"


def test_unbuildable_entry_is_logged_not_raised(caplog):
    writer = AuditWriter(FailingAuditRepository(), async_dispatch=False)

    with caplog.at_level(logging.ERROR, logger=AUDIT_FALLBACK_LOGGER):
        writer.record("USR-agent", "NOT_AN_ACTION", ResourceType.TICKET, "TKT-1")

    assert any(r.name == AUDIT_FALLBACK_LOGGER for r in caplog.records)


def test_async_worker_keeps_recording_order(db):
    writer = AuditWriter(AuditRepository(db), async_dispatch=True, queue_size=100)
    writer.start()
    try:
        for i in range(25):
            writer.record(
                actor_id="USR-agent",
                action=AuditAction.TICKET_UPDATED,
                resource_type=ResourceType.TICKET,
                resource_id="TKT-order",
                details={"seq": i}
            )
        writer.flush()
    finally:
        writer.stop()

    entries = AuditRepository(db).get_entries_for_resource(ResourceType.TICKET, "TKT-order")
    assert [e.details["seq"] for e in entries] == list(range(25))


def test_full_queue_falls_back(caplog):
    repo = SlowAuditRepository()
    writer = AuditWriter(repo, async_dispatch=True, queue_size=1)
    writer.start()
    try:
        with caplog.at_level(logging.ERROR, logger=AUDIT_FALLBACK_LOGGER):
            # first is picked up by the worker and blocks, second fills the queue
            for i in range(5):
                _record(writer, resource_id=f"TKT-{i}")
        dropped = [r for r in caplog.records if r.name == AUDIT_FALLBACK_LOGGER]
        assert dropped
        assert all("queue full" in r.getMessage() for r in dropped)
    finally:
        repo.release.set()
        writer.flush()
        writer.stop()

    assert len(repo.entries) + len(dropped) == 5


def test_without_running_worker_async_writer_writes_inline(db):
    writer = AuditWriter(AuditRepository(db), async_dispatch=True)
    _record(writer)
    assert AuditRepository(db).count_entries() == 1


def test_stop_without_start_is_harmless(db):
    writer = AuditWriter(AuditRepository(db), async_dispatch=True)
    writer.stop()
    writer.flush()
    assert not writer.is_running


@pytest.mark.parametrize("async_dispatch", [False, True])
def test_record_access_denied(db, actors, async_dispatch):
    writer = AuditWriter(AuditRepository(db), async_dispatch=async_dispatch)
    writer.start()
    try:
        writer.record_access_denied(
            actors["employee"], "assign", ResourceType.TICKET, "TKT-9", reason="no"
        )
        writer.flush()
    finally:
        writer.stop()

    entry = AuditRepository(db).get_entries_for_resource(ResourceType.TICKET, "TKT-9")[0]
    assert entry.action == AuditAction.ACCESS_DENIED
    assert entry.details == {"attempted": "assign", "role": "employee", "reason": "no"}


def test_entry_recorded_while_stopping_is_not_lost(caplog):
    repo = FirstWriteBlocksRepository()
    writer = AuditWriter(repo, async_dispatch=True, queue_size=10)
    writer.start()
    _record(writer, resource_id="TKT-first")
    assert repo.picked_up.wait(5)

    stopper = threading.Thread(target=writer.stop)
    stopper.start()
    _wait_for(lambda: writer._closing)

    with caplog.at_level(logging.ERROR, logger=AUDIT_FALLBACK_LOGGER):
        _record(writer, resource_id="TKT-second")
    repo.release.set()
    stopper.join(5)

    assert sorted(e.resource_id for e in repo.entries) == ["TKT-first", "TKT-second"]
    assert not [r for r in caplog.records if r.name == AUDIT_FALLBACK_LOGGER]
    assert not writer.is_running


def test_stop_timeout_writes_pending_entries():
    repo = FirstWriteBlocksRepository()
    writer = AuditWriter(repo, async_dispatch=True, queue_size=10)
    writer.start()
    _record(writer, resource_id="TKT-first")
    assert repo.picked_up.wait(5)
    _record(writer, resource_id="TKT-pending")

    try:
        writer.stop(timeout=0.05)
        assert [e.resource_id for e in repo.entries] == ["TKT-pending"]
    finally:
        repo.release.set()

    _wait_for(lambda: len(repo.entries) == 2)
    assert writer._queue.empty()
