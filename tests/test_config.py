import os
import unittest
from unittest.mock import patch

from chaincv.core.config import Settings, load_settings


class SettingsTests(unittest.TestCase):
    def test_defaults_match_worker_contract(self):
        settings = Settings()
        self.assertEqual(settings.worker_concurrency, 5)
        self.assertEqual(settings.worker_poll_interval_s, 0.1)
        self.assertEqual(settings.resume_text_max_chars, 15000)
        self.assertEqual(settings.max_upload_bytes, 10 * 1024 * 1024)

    @patch("chaincv.core.config.load_dotenv")
    def test_environment_overrides(self, _load_dotenv):
        env = {
            "WORKER_CONCURRENCY": "3",
            "WORKER_POLL_INTERVAL_MS": "250",
            "WORKER_ENABLED": "false",
            "AI_PROVIDER": " OpenAI ",
            "CORS_ALLOWED_ORIGINS": "https://a.example, ,https://b.example",
            "AI_TEMPERATURE": "not-a-number",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings()

        self.assertEqual(settings.worker_concurrency, 3)
        self.assertEqual(settings.worker_poll_interval_s, 0.25)
        self.assertFalse(settings.worker_enabled)
        self.assertEqual(settings.ai_provider, "openai")
        self.assertEqual(settings.cors_allowed_origins, ("https://a.example", "https://b.example"))
        self.assertEqual(settings.ai_temperature, 0.1)

    @patch("chaincv.core.config.load_dotenv")
    def test_concurrency_must_be_positive(self, _load_dotenv):
        with patch.dict(os.environ, {"WORKER_CONCURRENCY": "0"}, clear=True):
            with self.assertRaises(RuntimeError):
                load_settings()


if __name__ == "__main__":
    unittest.main()
