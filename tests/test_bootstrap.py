import asyncio
import shutil
import unittest
from uuid import uuid4

from loguru import logger

from sbos_assistant.app_config import RuntimeEnv, parse_app_config
from sbos_assistant.bootstrap import bootstrap_runtime
from sbos_assistant.errors import ConfigurationError
from sbos_assistant.models import CompletionRequest, CompletionResponse
from sbos_assistant.providers.openai_provider import OpenAIProvider
from tests.storage.base import PROJECT_ROOT


class _StubProvider:
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        return CompletionResponse(text="ready")


class BootstrapRuntimeTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"bootstrap-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        self._runtime = None

    def tearDown(self) -> None:
        if self._runtime is not None:
            self._runtime.close()
        logger.remove()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def _config(self, **overrides):
        return parse_app_config({
            "DbPath": str(self._tmp_dir / "data" / "assistant.db"),
            "UserId": "owner",
            "LogConsumers": [],
            **overrides,
        })

    def test_wires_service_with_injected_provider(self) -> None:
        env = RuntimeEnv(provider_api_key="", provider_env_var="OPENROUTER_API_KEY", provider_base_url=None)
        self._runtime = bootstrap_runtime(self._config(DisabledToolGroups=["trading"]), env, provider=_StubProvider())

        result = asyncio.run(self._runtime.service.send_message("owner", "ping"))

        self.assertEqual("ready", result.assistant_message.content)
        self.assertTrue(self._runtime.service.available)
        self.assertNotIn("log_trade", self._runtime.tool_names)
        self.assertIn("get_today_tasks", self._runtime.tool_names)
        self.assertEqual([], self._runtime.log_descriptions)

    def test_missing_api_key_leaves_service_unavailable(self) -> None:
        env = RuntimeEnv(provider_api_key="", provider_env_var="OPENROUTER_API_KEY", provider_base_url=None)
        self._runtime = bootstrap_runtime(self._config(), env)

        self.assertFalse(self._runtime.service.available)
        with self.assertRaises(ConfigurationError):
            asyncio.run(self._runtime.service.send_message("owner", "ping"))

    def test_api_key_builds_real_provider(self) -> None:
        env = RuntimeEnv(provider_api_key="sk-test", provider_env_var="OPENAI_API_KEY", provider_base_url=None)
        self._runtime = bootstrap_runtime(self._config(Provider="openai"), env)

        self.assertTrue(self._runtime.service.available)
        self.assertIsInstance(self._runtime.service._provider, OpenAIProvider)


if __name__ == "__main__":
    unittest.main()
