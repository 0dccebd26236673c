"""Unit tests for app.services.auth: register, login, logout, password change and revocation hooks."""

import asyncio
import unittest
import uuid
from unittest.mock import patch

from argon2 import PasswordHasher, Type

from app.core.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidInput,
    ServiceUnavailable,
)
from app.core.security import hash_password, verify_password
from app.services.auth import AuthService, _dummy_hash, prime_dummy_hash
from app.services.sessions import SessionManager

from fakes import InMemorySessionStore, InMemoryUserRepository

FAST = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1, type=Type.ID)
ACCOUNT_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")


def _service(auto_login: bool = False) -> tuple[AuthService, InMemoryUserRepository, InMemorySessionStore]:
    users = InMemoryUserRepository()
    store = InMemorySessionStore()
    service = AuthService(users, SessionManager(store), auto_login=auto_login, hasher=FAST)
    return service, users, store


class TestRegister(unittest.TestCase):
    """register stores a hashed credential and rejects duplicates and bad input."""

    def test_success(self) -> None:
        service, users, store = _service()
        reg = asyncio.run(service.register(" A@Example.com ", "pw123456", "customer", ACCOUNT_ID))

        user = users.get_by_id(reg.user_id)
        self.assertEqual(user.email, "a@example.com")
        self.assertEqual(user.role, "CUSTOMER")
        self.assertEqual(user.status, "ACTIVE")
        self.assertTrue(user.password_hash.startswith("$argon2id$"))
        self.assertIsNone(reg.session_id)
        self.assertEqual(store.records, {})

    def test_duplicate_email_case_insensitive(self) -> None:
        service, _, _ = _service()
        asyncio.run(service.register("a@example.com", "pw123456", "CUSTOMER", ACCOUNT_ID))
        with self.assertRaises(DuplicateEmail):
            asyncio.run(service.register("A@EXAMPLE.COM", "other-pass", "CUSTOMER", ACCOUNT_ID))

    def test_unknown_role(self) -> None:
        service, users, _ = _service()
        with self.assertRaises(InvalidInput):
            asyncio.run(service.register("a@example.com", "pw123456", "OWNER", ACCOUNT_ID))
        self.assertEqual(users.users, {})

    def test_short_password(self) -> None:
        service, _, _ = _service()
        with self.assertRaises(InvalidInput):
            asyncio.run(service.register("a@example.com", "short", "CUSTOMER", ACCOUNT_ID))

    def test_auto_login_starts_session(self) -> None:
        service, _, store = _service(auto_login=True)
        reg = asyncio.run(service.register("a@example.com", "pw123456", "WAITER", ACCOUNT_ID))
        self.assertIsNotNone(reg.session_id)
        self.assertIn(reg.session_id, store.records)

    def test_explicit_start_session_overrides_auto_login(self) -> None:
        service, _, store = _service(auto_login=True)
        reg = asyncio.run(
            service.register("a@example.com", "pw123456", "WAITER", ACCOUNT_ID, start_session=False)
        )
        self.assertIsNone(reg.session_id)
        self.assertEqual(store.records, {})


class TestLogin(unittest.TestCase):
    """login issues a session only for valid credentials of an active user."""

    def setUp(self) -> None:
        self.service, self.users, self.store = _service()
        self.reg = asyncio.run(
            self.service.register("a@example.com", "pw123456", "CUSTOMER", ACCOUNT_ID)
        )

    def test_success(self) -> None:
        result = asyncio.run(self.service.login("A@example.com", "pw123456"))
        self.assertEqual(result.user_id, self.reg.user_id)
        self.assertEqual(result.role, "CUSTOMER")

        identity = asyncio.run(self.service.sessions.resolve(result.session_id))
        self.assertEqual(identity.user_id, self.reg.user_id)

    def test_each_login_gets_a_new_session(self) -> None:
        first = asyncio.run(self.service.login("a@example.com", "pw123456"))
        second = asyncio.run(self.service.login("a@example.com", "pw123456"))
        self.assertNotEqual(first.session_id, second.session_id)

    def test_unknown_email_and_wrong_password_are_indistinguishable(self) -> None:
        with patch("app.services.auth.verify_password", wraps=verify_password) as verify:
            with self.assertRaises(InvalidCredentials) as unknown:
                asyncio.run(self.service.login("nobody@example.com", "pw123456"))
            with self.assertRaises(InvalidCredentials) as wrong:
                asyncio.run(self.service.login("a@example.com", "wrong-password"))

        self.assertEqual(unknown.exception.message, wrong.exception.message)
        self.assertEqual(unknown.exception.status_code, wrong.exception.status_code)
        # One hash verification on each path.
        self.assertEqual(verify.call_count, 2)
        self.assertEqual(self.store.records, {})

    def test_inactive_user_cannot_log_in(self) -> None:
        self.users.soft_delete(self.reg.user_id)
        with self.assertRaises(InvalidCredentials):
            asyncio.run(self.service.login("a@example.com", "pw123456"))

    def test_malformed_stored_hash_is_invalid_credentials(self) -> None:
        self.users.set_password_hash(self.reg.user_id, "not-a-hash")
        with self.assertLogs("app.services.auth", level="ERROR"):
            with self.assertRaises(InvalidCredentials):
                asyncio.run(self.service.login("a@example.com", "pw123456"))

    def test_store_down_is_service_unavailable(self) -> None:
        self.store.fail = True
        with self.assertRaises(ServiceUnavailable):
            asyncio.run(self.service.login("a@example.com", "pw123456"))

    def test_outdated_hash_is_upgraded(self) -> None:
        older = PasswordHasher(time_cost=2, memory_cost=8, parallelism=1, type=Type.ID)
        old_hash = hash_password("pw123456", older)
        self.users.set_password_hash(self.reg.user_id, old_hash)

        asyncio.run(self.service.login("a@example.com", "pw123456"))

        new_hash = self.users.get_by_id(self.reg.user_id).password_hash
        self.assertNotEqual(new_hash, old_hash)
        self.assertTrue(verify_password("pw123456", new_hash, FAST))


class TestLogout(unittest.TestCase):
    """logout always succeeds, whether or not the session exists."""

    def test_logout_revokes(self) -> None:
        service, _, store = _service(auto_login=True)
        reg = asyncio.run(service.register("a@example.com", "pw123456", "CUSTOMER", ACCOUNT_ID))
        asyncio.run(service.logout(reg.session_id))
        self.assertNotIn(reg.session_id, store.records)

    def test_logout_unknown_or_missing(self) -> None:
        service, _, store = _service()
        asyncio.run(service.logout("b" * 43))
        asyncio.run(service.logout(None))
        asyncio.run(service.logout(""))
        self.assertEqual(store.calls, ["delete"])


class TestPasswordChange(unittest.TestCase):
    """Changing a password ends every existing session of the user."""

    def setUp(self) -> None:
        self.service, self.users, self.store = _service()
        self.reg = asyncio.run(
            self.service.register("a@example.com", "pw123456", "MANAGER", ACCOUNT_ID)
        )
        self.sessions = [
            asyncio.run(self.service.login("a@example.com", "pw123456")).session_id
            for _ in range(2)
        ]

    def test_change_password_revokes_all_sessions(self) -> None:
        revoked = asyncio.run(
            self.service.change_password(self.reg.user_id, "pw123456", "new-password")
        )
        self.assertEqual(revoked, 2)
        for sid in self.sessions:
            self.assertIsNone(asyncio.run(self.service.sessions.resolve(sid)))

        with self.assertRaises(InvalidCredentials):
            asyncio.run(self.service.login("a@example.com", "pw123456"))
        asyncio.run(self.service.login("a@example.com", "new-password"))

    def test_wrong_current_password(self) -> None:
        with self.assertRaises(InvalidCredentials):
            asyncio.run(self.service.change_password(self.reg.user_id, "wrong-pass", "new-password"))
        self.assertEqual(len(self.store.records), 2)

    def test_role_change_and_deactivation_hooks(self) -> None:
        self.assertEqual(asyncio.run(self.service.on_role_changed(self.reg.user_id)), 2)
        self.assertEqual(asyncio.run(self.service.on_user_deactivated(self.reg.user_id)), 0)

    def test_store_down_during_reset_changes_nothing(self) -> None:
        old_hash = self.users.get_by_id(self.reg.user_id).password_hash
        self.store.fail = True
        with self.assertRaises(ServiceUnavailable):
            asyncio.run(self.service.set_password(self.reg.user_id, "new-password"))
        self.store.fail = False

        self.assertEqual(self.users.get_by_id(self.reg.user_id).password_hash, old_hash)
        asyncio.run(self.service.login("a@example.com", "pw123456"))
        with self.assertRaises(InvalidCredentials):
            asyncio.run(self.service.login("a@example.com", "new-password"))

    def test_reset_revokes_before_committing_hash(self) -> None:
        order = []
        set_hash = self.users.set_password_hash
        revoke_all = self.service.sessions.revoke_all_for_user

        def record_set(user_id, password_hash):
            order.append("set_hash")
            set_hash(user_id, password_hash)

        async def record_revoke(user_id):
            order.append("revoke")
            return await revoke_all(user_id)

        with patch.object(self.users, "set_password_hash", side_effect=record_set):
            with patch.object(self.service.sessions, "revoke_all_for_user", side_effect=record_revoke):
                revoked = asyncio.run(self.service.set_password(self.reg.user_id, "new-password"))

        self.assertEqual(revoked, 2)
        self.assertEqual(order, ["revoke", "set_hash", "revoke"])

    def test_failed_sweep_after_commit_is_logged(self) -> None:
        calls = {"n": 0}
        revoke_all = self.service.sessions.revoke_all_for_user

        async def fail_second(user_id):
            calls["n"] += 1
            if calls["n"] == 2:
                self.store.fail = True
            return await revoke_all(user_id)

        with patch.object(self.service.sessions, "revoke_all_for_user", side_effect=fail_second):
            with self.assertLogs("app.services.auth", level="WARNING"):
                revoked = asyncio.run(self.service.set_password(self.reg.user_id, "new-password"))
        self.store.fail = False

        self.assertEqual(revoked, 2)
        asyncio.run(self.service.login("a@example.com", "new-password"))


class TestDummyHash(unittest.TestCase):
    """The unknown-email path never computes the dummy hash once it has been primed."""

    def test_primed_dummy_hash_is_reused(self) -> None:
        _dummy_hash.cache_clear()
        prime_dummy_hash(FAST)
        self.assertEqual(_dummy_hash.cache_info().currsize, 1)

        service, _, _ = _service()
        with patch("app.services.auth.hash_password") as hash_mock:
            with self.assertRaises(InvalidCredentials):
                asyncio.run(service.login("nobody@example.com", "pw123456"))
        hash_mock.assert_not_called()


if __name__ == "__main__":
    unittest.main()
