"""Unit tests for auth/login.py and auth/seed.py -- login orchestration and audit trail.

Covers:
- successful login issues a valid token and records exactly one LOGIN_SUCCESS
- wrong password records exactly one LOGIN_FAILED with the resolved user id
- unknown username records LOGIN_FAILED with no user id
- both failure modes are indistinguishable to the caller
- a failing audit insert never fails the login
- logout records LOGOUT only for a valid session
- concurrent attempts produce exactly one event each
- client_origin header precedence
- bootstrap admin provisioning generates a real hash and warns only while
  the stored password is still the default
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

from audit.models import AuditAction
from auth import login as session
from auth.models import LoginOutcome
from auth.seed import ensure_default_admin
from auth.tokens import create_access_token, decode_access_token, hash_password, verify_password
from core.config import DEFAULT_ADMIN_PASSWORD, get_settings
from core.database import data_logs


def _actions(stores):
    return [(e.action, e.user_id) for e in stores.audit.list_events(limit=500)]


class TestLogin:
    def test_success_issues_token_and_logs_once(self, stores, make_user) -> None:
        alice = make_user("alice", "alice-pass-1")

        outcome = session.login(stores.users, stores.audit, "alice", "alice-pass-1", "10.1.1.1", "pytest")

        assert outcome.succeeded
        claims = decode_access_token(outcome.token)
        assert claims is not None
        assert (claims["id"], claims["username"], claims["email"], claims["role"]) == (
            alice.id,
            "alice",
            "alice@example.com",
            "user",
        )
        events = stores.audit.list_events()
        assert [(e.action, e.user_id) for e in events] == [(AuditAction.LOGIN_SUCCESS.value, alice.id)]
        assert events[0].ip_address == "10.1.1.1"

    def test_success_never_returns_password_hash(self, stores, make_user) -> None:
        make_user("alice", "alice-pass-1")
        outcome = session.login(stores.users, stores.audit, "alice", "alice-pass-1")
        assert outcome.user.hashed_password is None
        assert "hashed_password" not in outcome.user.public_profile()

    def test_wrong_password_logs_failure_with_user_id(self, stores, make_user) -> None:
        alice = make_user("alice", "alice-pass-1")

        outcome = session.login(stores.users, stores.audit, "alice", "wrong-pass")

        assert not outcome.succeeded
        assert _actions(stores) == [(AuditAction.LOGIN_FAILED.value, alice.id)]
        assert stores.audit.list_events()[0].description == "Failed login attempt - incorrect password"

    def test_unknown_username_logs_failure_without_user_id(self, stores) -> None:
        outcome = session.login(stores.users, stores.audit, "ghost", "whatever")

        assert not outcome.succeeded
        [event] = stores.audit.list_events()
        assert (event.action, event.user_id) == (AuditAction.LOGIN_FAILED.value, None)
        assert event.description == "Failed login attempt for username: ghost"

    def test_failure_modes_are_indistinguishable(self, stores, make_user) -> None:
        make_user("alice", "alice-pass-1")

        unknown = session.login(stores.users, stores.audit, "ghost", "alice-pass-1")
        wrong = session.login(stores.users, stores.audit, "alice", "not-it")

        assert unknown == wrong == LoginOutcome()

    def test_username_match_is_exact(self, stores, make_user) -> None:
        make_user("alice", "alice-pass-1")
        assert not session.login(stores.users, stores.audit, "Alice", "alice-pass-1").succeeded

    def test_audit_failure_does_not_block_login(self, stores, make_user) -> None:
        make_user("alice", "alice-pass-1")
        data_logs.drop(stores.engine)

        outcome = session.login(stores.users, stores.audit, "alice", "alice-pass-1")

        assert outcome.succeeded
        assert stores.audit.failure_count == 1

    def test_concurrent_attempts_each_leave_one_event(self, stores, make_user) -> None:
        alice = make_user("alice", "alice-pass-1")
        attempts = ["alice-pass-1", "bad-pass"] * 10

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(
                pool.map(lambda pw: session.login(stores.users, stores.audit, "alice", pw), attempts)
            )

        assert sum(o.succeeded for o in outcomes) == 10
        events = stores.audit.list_events(limit=500)
        assert len(events) == 20
        assert sum(e.action == AuditAction.LOGIN_SUCCESS.value for e in events) == 10
        assert sum(e.action == AuditAction.LOGIN_FAILED.value for e in events) == 10
        assert {e.user_id for e in events} == {alice.id}
        assert stores.audit.failure_count == 0


class TestLogout:
    def test_valid_session_logs_logout(self, stores, make_user) -> None:
        alice = make_user("alice", "alice-pass-1")
        token = create_access_token(alice)

        claims = session.logout(stores.audit, token, "10.2.2.2", "pytest")

        assert claims is not None and claims["id"] == alice.id
        assert _actions(stores) == [(AuditAction.LOGOUT.value, alice.id)]

    def test_missing_or_invalid_session_logs_nothing(self, stores) -> None:
        assert session.logout(stores.audit, None) is None
        assert session.logout(stores.audit, "not.a.jwt") is None
        assert stores.audit.list_events() == []


class TestClientOrigin:
    def _request(self, headers: dict, host: str | None = "192.0.2.10"):
        return SimpleNamespace(headers=headers, client=SimpleNamespace(host=host) if host else None)

    def test_forwarded_for_first_hop_wins(self) -> None:
        req = self._request({"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "198.51.100.1"})
        assert session.client_origin(req) == ("203.0.113.7", "unknown")

    def test_real_ip_then_peer(self) -> None:
        assert session.client_origin(self._request({"x-real-ip": "198.51.100.1"}))[0] == "198.51.100.1"
        assert session.client_origin(self._request({}))[0] == "192.0.2.10"

    def test_unknown_when_nothing_available(self) -> None:
        req = self._request({"user-agent": "curl/8.0"}, host=None)
        assert session.client_origin(req) == ("unknown", "curl/8.0")


class TestBootstrapAdmin:
    def test_creates_admin_with_real_hash(self, stores) -> None:
        settings = get_settings()
        assert ensure_default_admin(stores.users, settings) is True

        admin = stores.users.get_by_username(settings.seed_admin_username)
        assert admin is not None
        assert admin.role == "admin"
        assert verify_password(DEFAULT_ADMIN_PASSWORD, admin.hashed_password)

    def test_is_idempotent(self, stores) -> None:
        settings = get_settings()
        ensure_default_admin(stores.users, settings)
        assert ensure_default_admin(stores.users, settings) is False
        assert len(stores.users.list_users()) == 1

    def test_default_password_warning_stops_after_rotation(self, stores, caplog) -> None:
        settings = get_settings()
        ensure_default_admin(stores.users, settings)

        caplog.clear()
        with caplog.at_level(logging.WARNING, logger="admindesk.auth"):
            ensure_default_admin(stores.users, settings)
        assert "default password" in caplog.text

        admin = stores.users.get_by_username(settings.seed_admin_username)
        stores.users.update_password(admin.id, hash_password("rotated-secret-1"))
        caplog.clear()
        with caplog.at_level(logging.WARNING, logger="admindesk.auth"):
            ensure_default_admin(stores.users, settings)
        assert "default password" not in caplog.text

    def test_uses_configured_password(self, stores) -> None:
        settings = get_settings().model_copy(update={"seed_admin_password": "rotated-secret-1"})
        ensure_default_admin(stores.users, settings)

        outcome = session.login(stores.users, stores.audit, settings.seed_admin_username, "rotated-secret-1")
        assert outcome.succeeded
