from starlette.requests import Request

from posterai.services import audit_log as audit
from posterai.services.database import Database


def _request(headers):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


def test_log_and_list_with_filters(tmp_path) -> None:
    log = audit.AuditLog(Database(tmp_path / "audit.db"))
    log.log(audit.AuditEvent(actor_email="a@example.com", action=audit.USER_CREATED, details={"name": "Ann"}))
    log.log(audit.AuditEvent(actor_email="b@example.com", action=audit.SIGNIN_DENIED, success=False))
    log.log(audit.AuditEvent(actor_email="a@example.com", action=audit.SIGNIN_SUCCESS))

    everything = log.list()
    assert [r.action for r in everything] == [
        audit.SIGNIN_SUCCESS,
        audit.SIGNIN_DENIED,
        audit.USER_CREATED,
    ]

    mine = log.list(actor_email="a@example.com")
    assert len(mine) == 2

    denied = log.list(action=audit.SIGNIN_DENIED)
    assert len(denied) == 1
    assert denied[0].success is False

    created = log.list(action=audit.USER_CREATED)[0]
    assert created.details == {"name": "Ann"}

    assert [r.action for r in log.list(limit=1, offset=1)] == [audit.SIGNIN_DENIED]


def test_log_never_raises_when_storage_fails(tmp_path) -> None:
    # a directory cannot be opened as a database file
    broken = audit.AuditLog(Database(tmp_path))
    broken.log(audit.AuditEvent(actor_email="a@example.com", action=audit.USER_DELETED))


def test_extract_request_info_prefers_forwarded_for() -> None:
    info = audit.extract_request_info(
        _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "pytest"})
    )
    assert info == {"ip_address": "203.0.113.9", "user_agent": "pytest"}


def test_extract_request_info_falls_back_to_real_ip() -> None:
    info = audit.extract_request_info(_request({"X-Real-IP": "198.51.100.4"}))
    assert info["ip_address"] == "198.51.100.4"
    assert info["user_agent"] is None


def test_module_helpers_use_configured_database() -> None:
    audit.log_audit_event(audit.AuditEvent(actor_email="ops@example.com", action=audit.USER_ROLE_CHANGED))

    records = audit.get_audit_logs(actor_email="ops@example.com")
    assert len(records) == 1
    assert records[0].action == audit.USER_ROLE_CHANGED
    assert records[0].details == {}
