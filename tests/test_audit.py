"""Tests for the audit logger."""

from uuid import uuid4

import pytest

from thara.audit import AuditLogger, create_correlation_id
from thara.models.audit import AuditEventBuilder, AuditEventType
from thara.services.storage import InMemoryAuditStorage


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise RuntimeError("sheet is read-only")


class TestAuditLogger:
    """Tests for event persistence."""

    @pytest.mark.asyncio
    async def test_event_is_persisted(self):
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)
        goal_id = uuid4()

        ok = await audit_logger.log(AuditEventBuilder.entity_deleted(
            event_type=AuditEventType.GOAL_DELETED,
            user_id="u",
            entity_type="goal",
            entity_id=goal_id,
        ))

        assert ok is True
        events = await storage.get_events_by_entity("goal", goal_id)
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_without_storage_only_logs(self):
        audit_logger = AuditLogger()
        assert await audit_logger.log(AuditEventBuilder.storage_error("load", "boom")) is True

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        audit_logger = AuditLogger(FailingAuditStorage())
        assert await audit_logger.log(AuditEventBuilder.storage_error("load", "boom")) is False

    @pytest.mark.asyncio
    async def test_correlated_events(self):
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await audit_logger.log_storage_error("add_goal", "quota", user_id="u", correlation_id=correlation_id)
        await audit_logger.log_error("ValueError", "bad input", correlation_id=correlation_id)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.STORAGE_ERROR,
            AuditEventType.SYSTEM_ERROR,
        ]
