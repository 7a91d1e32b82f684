import os
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from app.config.settings import Settings
from app.main import build_quote_fetcher


class TestQuoteSettings(unittest.TestCase):
    def test_defaults_without_env(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.QUOTE_PROVIDER_BASE_URL, "https://query1.finance.yahoo.com")
        self.assertEqual(
            settings.QUOTE_ROUTES,
            ["direct", "https://api.allorigins.win/raw?url=", "https://corsproxy.io/?"],
        )
        self.assertEqual(settings.QUOTE_TIMEOUT_SEC, 8.0)
        self.assertIsNone(settings.QUOTE_MAX_ATTEMPTS)
        self.assertEqual(settings.QUOTE_CACHE_TTL_SEC, 60.0)
        self.assertEqual(settings.QUOTE_BATCH_WORKERS, 6)

    def test_env_overrides_are_parsed(self):
        env = {
            "QUOTE_ROUTES": " https://corsproxy.io/? , direct ",
            "QUOTE_TIMEOUT_SEC": "2.5",
            "QUOTE_MAX_ATTEMPTS": "4",
            "QUOTE_CACHE_TTL_SEC": "30",
            "QUOTE_BATCH_WORKERS": "8",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.QUOTE_ROUTES, ["https://corsproxy.io/?", "direct"])
        self.assertEqual(settings.QUOTE_TIMEOUT_SEC, 2.5)
        self.assertEqual(settings.QUOTE_MAX_ATTEMPTS, 4)
        self.assertEqual(settings.QUOTE_CACHE_TTL_SEC, 30.0)
        self.assertEqual(settings.QUOTE_BATCH_WORKERS, 8)

    def test_invalid_values_fail_validation(self):
        for env in (
            {"QUOTE_ROUTES": " , "},
            {"QUOTE_BATCH_WORKERS": "0"},
            {"QUOTE_TIMEOUT_SEC": "-1"},
            {"QUOTE_CACHE_TTL_SEC": "abc"},
        ):
            with self.subTest(env=env):
                with patch.dict(os.environ, env, clear=True):
                    with self.assertRaises(ValidationError):
                        Settings.from_env()

    def test_fetcher_is_built_from_settings(self):
        settings = Settings(
            QUOTE_ROUTES=["direct", "https://corsproxy.io/?"],
            QUOTE_CACHE_TTL_SEC=45,
            QUOTE_BATCH_WORKERS=3,
        )
        fetcher = build_quote_fetcher(settings)

        self.assertEqual([r.name for r in fetcher.routes], ["direct", "corsproxy.io"])
        self.assertEqual(fetcher.max_attempts, 2)
        self.assertEqual(fetcher.batch_workers, 3)
        self.assertEqual(fetcher.cache.ttl_sec, 45)
        self.assertEqual(fetcher.client.timeout_sec, 8.0)


if __name__ == "__main__":
    unittest.main()
