"""
Audit and Usage Recorder Tests
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from verisource.audit import (
    DEFAULT_IP_ADDRESS,
    DEFAULT_USER_AGENT,
    AuditRecorder,
    ClientMetadata,
    UsageRecord,
    UsageRecorder,
)
from verisource.database import AdminAuditLog, PlanTier, SubscriptionEvent, SubscriptionEventType
from verisource.errors import AuditWriteFailure


# =============================================================================
# CLIENT METADATA TESTS
# =============================================================================

class TestClientMetadata:

    def test_defaults(self):
        client = ClientMetadata.from_headers({})
        assert client.ip_address == DEFAULT_IP_ADDRESS == "127.0.0.1"
        assert client.user_agent == DEFAULT_USER_AGENT == "Unknown"

    def test_forwarded_for_first_hop(self):
        client = ClientMetadata.from_headers(
            {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"},
            peer_host="10.0.0.3",
        )
        assert client.ip_address == "203.0.113.7"

    def test_real_ip_then_peer(self):
        assert ClientMetadata.from_headers({"x-real-ip": "198.51.100.4"}).ip_address == "198.51.100.4"
        assert ClientMetadata.from_headers({}, peer_host="10.0.0.3").ip_address == "10.0.0.3"

    def test_user_agent(self):
        assert ClientMetadata.from_headers({"user-agent": "curl/8.0"}).user_agent == "curl/8.0"


# =============================================================================
# AUDIT RECORDER TESTS
# =============================================================================

class TestAuditRecorder:

    def test_record_with_sentinels(self, db, make_profile):
        admin = make_profile(email="admin@test.com")

        entry = AuditRecorder(db).record(
            actor_id=admin.id,
            action_type="change_plan",
            target_type="user",
            target_id="abc",
            old_values={"plan": "free"},
            new_values={"plan": "pro"},
        )

        stored = db.get(AdminAuditLog, entry.id)
        assert stored.ip_address == "127.0.0.1"
        assert stored.user_agent == "Unknown"
        assert stored.success is True
        assert stored.old_values == {"plan": "free"}
        assert stored.extra_metadata == {}

    def test_record_client_and_metadata(self, db):
        entry = AuditRecorder(db).record(
            actor_id=None,
            action_type="update_setting",
            target_type="app_setting",
            metadata={"reason": "incident"},
            client=ClientMetadata(ip_address="203.0.113.7", user_agent="admin-ui"),
            success=False,
            error_message="rolled back",
        )

        assert entry.ip_address == "203.0.113.7"
        assert entry.extra_metadata == {"reason": "incident"}
        assert entry.error_message == "rolled back"

    def test_write_failure_raises(self):
        session = MagicMock()
        session.commit.side_effect = SQLAlchemyError("connection lost")

        with pytest.raises(AuditWriteFailure) as exc_info:
            AuditRecorder(session).record(actor_id=None, action_type="x", target_type="y")

        assert exc_info.value.status_code == 500
        assert exc_info.value.error == "Failed to log action"
        session.rollback.assert_called_once()

    def test_list_entries_newest_first(self, db):
        recorder = AuditRecorder(db)
        first = recorder.record(actor_id=None, action_type="first", target_type="t")
        second = recorder.record(actor_id=None, action_type="second", target_type="t")
        first.created_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        db.commit()

        entries = recorder.list_entries()
        assert [e.id for e in entries] == [second.id, first.id]

        assert [e.action_type for e in recorder.list_entries(action_type="first")] == ["first"]

    def test_subscription_event(self, db, make_profile):
        profile = make_profile()

        AuditRecorder(db).record_subscription_event(
            user_id=profile.id,
            event_type=SubscriptionEventType.SUBSCRIPTION_UPDATED,
            previous_plan=PlanTier.FREE,
            new_plan=PlanTier.PRO,
        )
        db.commit()

        event = db.query(SubscriptionEvent).one()
        assert event.new_plan == PlanTier.PRO
        assert event.currency == "USD"


# =============================================================================
# USAGE RECORDER TESTS
# =============================================================================

class TestUsageRecorder:

    def test_record_and_summarize(self, session_factory, make_profile):
        profile = make_profile()
        usage = UsageRecorder(session_factory)

        for status_code, elapsed in ((200, 100), (200, 300), (429, 20)):
            assert usage.record(UsageRecord(
                endpoint="/api/analyze-content",
                method="POST",
                status_code=status_code,
                response_time_ms=elapsed,
                user_id=profile.id,
            )) is True

        summary = usage.summarize(profile.id)
        assert summary.total_requests == 3
        assert summary.successful_requests == 2
        assert summary.failed_requests == 1
        assert summary.avg_response_time_ms == pytest.approx(140)
        assert summary.to_dict()["success_rate"] == 66.7

    def test_summarize_empty(self, session_factory, make_profile):
        summary = UsageRecorder(session_factory).summarize(make_profile().id)
        assert summary.total_requests == 0
        assert summary.success_rate() == 0

    def test_write_failure_is_swallowed(self):
        session = MagicMock()
        session.commit.side_effect = SQLAlchemyError("read-only database")

        recorded = UsageRecorder(lambda: session).record(UsageRecord(
            endpoint="/api/analyze-content", method="POST", status_code=200, response_time_ms=5,
        ))

        assert recorded is False
        session.rollback.assert_called_once()
        session.close.assert_called_once()
