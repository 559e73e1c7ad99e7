import json
import shutil
import unittest
from pathlib import Path
from unittest.mock import patch
from uuid import uuid4

from loguru import logger

from sbos_assistant.app_config import load_json_config, parse_app_config, resolve_runtime_env
from sbos_assistant.logging_config import FileLogConsumer, build_consumer, setup_logging
from tests.storage.base import PROJECT_ROOT


class ParseAppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = parse_app_config({})

        self.assertEqual("openrouter", config.provider_name)
        self.assertEqual("openai/gpt-4o-mini", config.model)
        self.assertEqual(0.7, config.temperature)
        self.assertEqual(2048, config.max_tokens)
        self.assertEqual(5, config.max_tool_rounds)
        self.assertEqual(20, config.history_limit)
        self.assertEqual(60.0, config.round_timeout_seconds)
        self.assertEqual(20, config.rate_limit_max_requests)
        self.assertEqual([], config.disabled_tool_groups)
        self.assertEqual("default-user", config.user_id)
        self.assertIsNone(config.user_email)
        self.assertIsNone(config.log_consumers)

    def test_overrides(self) -> None:
        config = parse_app_config({
            "Provider": "Anthropic",
            "Model": "claude-x",
            "MaxToolRounds": 3,
            "RoundTimeoutSeconds": 0,
            "DisabledToolGroups": "trading, health",
            "UserId": "  ",
            "UserEmail": "me@example.com",
        })

        self.assertEqual("anthropic", config.provider_name)
        self.assertEqual("claude-x", config.model)
        self.assertEqual(3, config.max_tool_rounds)
        self.assertEqual(0.0, config.round_timeout_seconds)
        self.assertEqual(["trading", "health"], config.disabled_tool_groups)
        self.assertEqual("default-user", config.user_id)
        self.assertEqual("me@example.com", config.user_email)

    def test_provider_default_model(self) -> None:
        self.assertEqual("gpt-4o-mini", parse_app_config({"Provider": "openai"}).model)

    def test_unknown_provider(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown Provider"):
            parse_app_config({"Provider": "gemini"})


class ResolveRuntimeEnvTests(unittest.TestCase):
    def test_picks_provider_key(self) -> None:
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": " sk-ant "}, clear=True):
            env = resolve_runtime_env("anthropic")

        self.assertEqual("sk-ant", env.provider_api_key)
        self.assertEqual("ANTHROPIC_API_KEY", env.provider_env_var)
        self.assertIsNone(env.provider_base_url)

    def test_openai_base_url_override(self) -> None:
        with patch.dict("os.environ", {"OPENAI_BASE_URL": "http://localhost:8080/v1"}, clear=True):
            env = resolve_runtime_env("openai")

        self.assertEqual("", env.provider_api_key)
        self.assertEqual("http://localhost:8080/v1", env.provider_base_url)


class ConfigFileAndLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"config-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        logger.remove()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def test_load_json_config(self) -> None:
        path = self._tmp_dir / "config.json"
        path.write_text(json.dumps({"Provider": "openai"}), encoding="utf-8")

        self.assertEqual({"Provider": "openai"}, load_json_config(path))
        self.assertEqual({}, load_json_config(self._tmp_dir / "missing.json"))

    def test_build_consumer(self) -> None:
        consumer = build_consumer({"type": "file", "path": "x.log", "level": "DEBUG", "serialize": True})

        self.assertIsInstance(consumer, FileLogConsumer)
        self.assertEqual("file (x.log, json, DEBUG)", consumer.describe("DEBUG"))
        self.assertIsNone(build_consumer({"type": "syslog"}))

    def test_setup_logging_writes_file_sink(self) -> None:
        log_path = self._tmp_dir / "logs" / "app.log"

        descriptions = setup_logging("INFO", [
            {"type": "file", "path": str(log_path)},
            {"type": "carrier-pigeon"},
        ])
        logger.info("hello from the test")
        logger.debug("filtered out")
        logger.complete()
        logger.remove()

        self.assertEqual([f"file ({log_path}, text, INFO)"], descriptions)
        text = log_path.read_text(encoding="utf-8")
        self.assertIn("hello from the test", text)
        self.assertNotIn("filtered out", text)


if __name__ == "__main__":
    unittest.main()
