import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from private_tools.crud.audit_event import IsolatedAuditSink
from private_tools.domain.entities import AuditEvent
from private_tools.rbac.levels import PermissionLevel
from private_tools.services.audit.audit_service import AuditService

from tests.rbac_fakes import FakeAuditSink, FakeRole, signed_in_session


@pytest.fixture
def session():
    return signed_in_session(FakeRole(id=1, name="member", label="Member"))


@pytest.mark.anyio
async def test_record_success():
    sink = FakeAuditSink()

    result = await AuditService(sink).record(AuditEvent(action="security_event", actor_user_id="u"))

    assert result.written is True
    assert result.error is None
    assert len(sink.events) == 1


@pytest.mark.anyio
async def test_record_failure_is_swallowed_and_logged(caplog):
    sink = FakeAuditSink(fail=True)

    with caplog.at_level(logging.ERROR):
        result = await AuditService(sink).record(AuditEvent(action="role_change", actor_user_id="u"))

    assert result.written is False
    assert result.error == "audit storage unavailable"
    assert "audit_write_failed" in caplog.text


@pytest.mark.anyio
async def test_unknown_action_is_not_written():
    sink = FakeAuditSink()

    result = await AuditService(sink).record(AuditEvent(action="login", actor_user_id="u"))

    assert result.written is False
    assert sink.events == []


@pytest.mark.anyio
async def test_access_denied_detail(session):
    sink = FakeAuditSink()

    await AuditService(sink).log_access_denied(
        session, "activity", PermissionLevel.READ, PermissionLevel.NONE
    )

    event = sink.events[0]
    assert event.action == "access_denied"
    assert event.target == "activity"
    assert event.actor_email == "user_1@example.com"
    assert event.detail == {
        "reason": "insufficient_role",
        "required": "Read",
        "actual": "None",
        "roles": ["member"],
    }


@pytest.mark.anyio
async def test_role_change_detail(session):
    sink = FakeAuditSink()

    await AuditService(sink).log_role_change(
        session, "target", previous=["member", "admin"], current=["admin", "editor"]
    )

    assert sink.events[0].detail == {
        "added": ["editor"],
        "removed": ["member"],
        "from": ["admin", "member"],
        "to": ["admin", "editor"],
        "identity": "target",
    }


@pytest.mark.anyio
async def test_isolated_sink_uses_own_session_and_commits():
    audit_session = MagicMock()
    audit_session.add = MagicMock()
    audit_session.flush = AsyncMock()
    audit_session.commit = AsyncMock()

    session_context = MagicMock()
    session_context.__aenter__ = AsyncMock(return_value=audit_session)
    session_context.__aexit__ = AsyncMock(return_value=None)
    session_factory = MagicMock(return_value=session_context)

    sink = IsolatedAuditSink(session_factory)
    await sink.append(
        AuditEvent(action="access_denied", actor_user_id="u", target="activity", detail={"reason": "x"})
    )

    session_factory.assert_called_once_with()
    audit_session.add.assert_called_once()
    row = audit_session.add.call_args.args[0]
    assert row.action == "access_denied"
    assert row.target == "activity"
    audit_session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_isolated_sink_failure_does_not_escape_audit_service():
    session_context = MagicMock()
    session_context.__aenter__ = AsyncMock(side_effect=ConnectionError("db down"))
    session_context.__aexit__ = AsyncMock(return_value=None)

    service = AuditService(IsolatedAuditSink(MagicMock(return_value=session_context)))
    result = await service.record(AuditEvent(action="security_event", actor_user_id="u"))

    assert result.written is False
    assert result.error == "db down"
