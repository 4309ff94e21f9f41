"""Tests for provider configuration and the config cell."""

import os

from termrelay.util.provider_config import DEFAULT_MODEL, ConfigCell, ProviderConfig
from termrelay.util.providers import ProviderFamily


class TestFromEnv:
    """Tests for seeding configuration from the environment."""

    def test_defaults(self):
        config = ProviderConfig.from_env({})
        assert config.provider is ProviderFamily.OPENAI
        assert config.api_key == ""
        assert config.base_url == ""
        assert config.model == DEFAULT_MODEL

    def test_key_precedence(self):
        env = {
            "ANTHROPIC_AUTH_TOKEN": "token",
            "ANTHROPIC_API_KEY": "ant-key",
            "OPENAI_API_KEY": "oa-key",
        }
        assert ProviderConfig.from_env(env).api_key == "token"
        del env["ANTHROPIC_AUTH_TOKEN"]
        assert ProviderConfig.from_env(env).api_key == "ant-key"
        del env["ANTHROPIC_API_KEY"]
        assert ProviderConfig.from_env(env).api_key == "oa-key"

    def test_base_url_model_and_provider(self):
        env = {
            "OPENAI_BASE_URL": "https://x/v1",
            "OPENAI_MODEL": "gpt-4o",
            "TERMRELAY_PROVIDER": "claude",
        }
        config = ProviderConfig.from_env(env)
        assert config.base_url == "https://x/v1"
        assert config.model == "gpt-4o"
        assert config.provider is ProviderFamily.ANTHROPIC

    def test_empty_values_fall_through(self):
        env = {"ANTHROPIC_API_KEY": "", "OPENAI_API_KEY": "oa"}
        assert ProviderConfig.from_env(env).api_key == "oa"


class TestProviderConfig:
    """Tests for ProviderConfig helpers."""

    def test_with_updates_parses_provider_label(self):
        config = ProviderConfig().with_updates(provider="anthropic", api_key="k")
        assert config.provider is ProviderFamily.ANTHROPIC
        assert config.api_key == "k"

    def test_masked_key(self):
        assert ProviderConfig(api_key="sk-abcdef1234").masked_key() == "*********1234"
        assert ProviderConfig(api_key="abc").masked_key() == "***"
        assert ProviderConfig(api_key="").masked_key() == ""


class TestConfigCell:
    """Tests for last-writer-wins configuration storage."""

    def test_last_writer_wins(self):
        cell = ConfigCell(ProviderConfig(api_key="first"), mirror_env=False)
        cell.set(ProviderConfig(api_key="second"))
        cell.set(ProviderConfig(api_key="third"))
        assert cell.get().api_key == "third"

    def test_snapshot_is_unaffected_by_later_set(self):
        cell = ConfigCell(ProviderConfig(api_key="old"), mirror_env=False)
        snapshot = cell.get()
        cell.set(ProviderConfig(api_key="new"))
        assert snapshot.api_key == "old"

    def test_set_mirrors_to_environment(self):
        cell = ConfigCell(ProviderConfig())
        cell.set(
            ProviderConfig(
                provider=ProviderFamily.ANTHROPIC,
                api_key="k",
                base_url="https://b",
                model="m",
            )
        )
        assert os.environ["AI_PROVIDER"] == "anthropic"
        assert os.environ["AI_API_KEY"] == "k"
        assert os.environ["AI_BASE_URL"] == "https://b"
        assert os.environ["AI_MODEL"] == "m"

    def test_default_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert ConfigCell(mirror_env=False).get().api_key == "from-env"
