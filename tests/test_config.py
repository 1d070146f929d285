import os
import unittest
from pathlib import Path
from unittest.mock import patch

from plan_orchestrator.config import AppConfig, load_config


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        # 屏蔽开发机上可能存在的 PLAN_ORCHESTRATOR_* 变量
        cleaned = {k: v for k, v in os.environ.items() if not k.startswith("PLAN_ORCHESTRATOR_")}
        patcher = patch.dict(os.environ, cleaned, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _write(self, name: str, content: str) -> Path:
        temp_file = Path("tests") / name
        temp_file.write_text(content.strip(), encoding="utf-8")
        self.addCleanup(temp_file.unlink, missing_ok=True)
        return temp_file

    def test_loads_default_config(self) -> None:
        config = load_config()
        self.assertIsInstance(config, AppConfig)
        self.assertEqual(config.llm.provider, "dummy")
        self.assertEqual(config.execution.mode, "dry-run")
        self.assertEqual(config.policy.confidence_floor, 0.8)
        self.assertFalse(config.policy.auto_approve)
        self.assertIn("drop_*", config.policy.high_risk_actions)

    def test_loads_custom_config(self) -> None:
        temp_file = self._write("tmp_config.json", """
{
  "safety": {"toxicity_threshold": 0.5, "bias_threshold": null},
  "policy": {"confidence_floor": 0.6, "_comment": "ignored"},
  "execution": {"mode": "local", "step_timeout": 30}
}
""")
        config = load_config(str(temp_file))
        self.assertEqual(config.safety.toxicity_threshold, 0.5)
        self.assertIsNone(config.safety.bias_threshold)
        self.assertEqual(config.safety.factuality_threshold, 0.6)
        self.assertEqual(config.policy.confidence_floor, 0.6)
        self.assertEqual(config.execution.mode, "local")
        self.assertEqual(config.execution.step_timeout, 30)
        self.assertEqual(config.interaction.mode, "cli")

    def test_env_var_populates_api_key(self) -> None:
        temp_file = self._write("tmp_config_env.json", """
{
  "llm": {"provider": "dummy", "model": "analysis-v0", "api_key": null}
}
""")
        os.environ["PLAN_ORCHESTRATOR_LLM_API_KEY"] = "secret-key"
        config = load_config(str(temp_file))
        self.assertEqual(config.llm.api_key, "secret-key")

    def test_provider_specific_env_and_defaults(self) -> None:
        temp_file = self._write("tmp_config_deepseek.json", """
{
  "llm": {"provider": "deepseek"}
}
""")
        os.environ["PLAN_ORCHESTRATOR_DEEPSEEK_API_KEY"] = "ds-key"
        os.environ["PLAN_ORCHESTRATOR_LLM_API_KEY"] = "generic-key"
        config = load_config(str(temp_file))
        self.assertEqual(config.llm.api_key, "ds-key")
        self.assertEqual(config.llm.model, "deepseek-chat")
        self.assertEqual(config.llm.endpoint, "https://api.deepseek.com/v1")

    def test_ssh_and_auto_approve_env(self) -> None:
        temp_file = self._write("tmp_config_ssh.json", "{}")
        os.environ.update({
            "PLAN_ORCHESTRATOR_SSH_HOST": "10.0.0.8",
            "PLAN_ORCHESTRATOR_SSH_PORT": "2222",
            "PLAN_ORCHESTRATOR_SSH_USERNAME": "deploy",
            "PLAN_ORCHESTRATOR_SSH_KEY_PATH": "~/.ssh/id_ed25519",
            "PLAN_ORCHESTRATOR_AUTO_APPROVE": "true",
        })
        config = load_config(str(temp_file))
        self.assertEqual(config.execution.host, "10.0.0.8")
        self.assertEqual(config.execution.port, 2222)
        self.assertEqual(config.execution.username, "deploy")
        self.assertEqual(config.execution.auth_method, "key")
        self.assertTrue(config.policy.auto_approve)

    def test_missing_file_falls_back_to_default(self) -> None:
        config = load_config("does/not/exist.json")
        self.assertEqual(config.llm.provider, "dummy")

    def test_no_config_anywhere(self) -> None:
        with patch("plan_orchestrator.config._DEFAULT_CONFIG_PATH", Path("nowhere/default_config.json")):
            with self.assertRaises(FileNotFoundError):
                load_config("also/missing.json")


if __name__ == "__main__":
    unittest.main()
