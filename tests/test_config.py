"""Unit tests for app.core.config: session, cookie and store settings validation."""

import unittest

from pydantic import ValidationError

from app.core.config import Settings


class TestSessionSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        s = Settings(SESSION_COOKIE_MAX_AGE_SECONDS=None, SESSION_TTL_SECONDS=86400)
        self.assertEqual(s.SESSION_COOKIE_NAME, "session_id")
        self.assertEqual(s.session_cookie_max_age, 86400)

    def test_explicit_cookie_max_age(self) -> None:
        s = Settings(SESSION_COOKIE_MAX_AGE_SECONDS=600)
        self.assertEqual(s.session_cookie_max_age, 600)

    def test_ttl_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(SESSION_TTL_SECONDS=59)
        with self.assertRaises(ValidationError):
            Settings(SESSION_TTL_SECONDS=2592001)

    def test_same_site_is_normalized(self) -> None:
        self.assertEqual(Settings(SESSION_COOKIE_SAME_SITE="Strict").SESSION_COOKIE_SAME_SITE, "strict")

    def test_same_site_none_requires_secure(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(SESSION_COOKIE_SAME_SITE="none", SESSION_COOKIE_SECURE=False)
        s = Settings(SESSION_COOKIE_SAME_SITE="none", SESSION_COOKIE_SECURE=True)
        self.assertTrue(s.SESSION_COOKIE_SECURE)

    def test_cookie_name_must_be_token(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(SESSION_COOKIE_NAME="session id")

    def test_blank_cookie_domain_is_none(self) -> None:
        self.assertIsNone(Settings(SESSION_COOKIE_DOMAIN="  ").SESSION_COOKIE_DOMAIN)


class TestBackendSettings(unittest.TestCase):
    def test_redis_url_scheme(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(REDIS_URL="http://localhost:6379")
        self.assertEqual(Settings(REDIS_URL=" rediss://cache:6380/0 ").REDIS_URL, "rediss://cache:6380/0")

    def test_database_url_must_be_postgres(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(DATABASE_URL="sqlite:///accounts.db")

    def test_database_url_pins_psycopg2_driver(self) -> None:
        self.assertTrue(
            Settings.model_fields["DATABASE_URL"].default.startswith("postgresql+psycopg2://")
        )
        for url in (
            "postgresql://u:p@db:5432/accounts",
            "postgres://u:p@db:5432/accounts",
            "postgres+psycopg2://u:p@db:5432/accounts",
            " postgresql+psycopg2://u:p@db:5432/accounts ",
        ):
            self.assertEqual(
                Settings(DATABASE_URL=url).DATABASE_URL,
                "postgresql+psycopg2://u:p@db:5432/accounts",
            )

    def test_store_timeout_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(SESSION_STORE_TIMEOUT_SEC=0)

    def test_argon2_memory_floor(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(ARGON2_MEMORY_COST_KIB=1024)

    def test_log_level_upper_cased(self) -> None:
        self.assertEqual(Settings(LOG_LEVEL="debug").LOG_LEVEL, "DEBUG")


if __name__ == "__main__":
    unittest.main()
