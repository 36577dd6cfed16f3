"""
Tests for KernelConfig loading and the context permission table.
"""
import pytest

from empire_core import (
    DEFAULT_CONTEXT_RULES,
    ContextPermissionTable,
    ContextRule,
    ExecutionContext,
    JsonFileStore,
    KernelConfig,
    KernelError,
    MemoryStore,
    load_config,
)


class TestContextRule:

    def test_everywhere(self):
        rule = ContextRule.everywhere()
        assert all(rule.allows(c) for c in ("background", "content", "popup", "unknown"))
        assert rule.to_names() == ["all"]

    def test_only(self):
        rule = ContextRule.only("content", ExecutionContext.POPUP)
        assert rule.allows("content")
        assert rule.allows("popup")
        assert not rule.allows("background")
        assert not rule.allows("garbage")
        assert rule.to_names() == ["content", "popup"]

    def test_from_names(self):
        assert ContextRule.from_names([]) == ContextRule.everywhere()
        assert ContextRule.from_names(["all"]) == ContextRule.everywhere()
        assert ContextRule.from_names(["Background"]) == ContextRule.only("background")

    def test_from_names_rejects_unknown_context(self):
        with pytest.raises(ValueError):
            ContextRule.from_names(["sidebar"])


class TestPermissionTable:

    def test_unlisted_module_runs_everywhere(self):
        table = ContextPermissionTable.from_mapping({"alpha": ["background"]})
        assert table.rule_for("beta") == ContextRule.everywhere()
        assert table.allows("beta", "content")
        assert not table.allows("alpha", "content")
        assert "alpha" in table
        assert "beta" not in table

    def test_default_rules(self):
        table = KernelConfig().permissions()
        assert table.to_dict() == {
            "keychain-monitor": ["background"],
            "item-targets": ["background"],
            "theme-system": ["content", "popup"],
            "notifications": ["background", "content"],
            "price-filters": ["background"],
        }
        assert len(table) == len(DEFAULT_CONTEXT_RULES)


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        assert config == KernelConfig()
        assert isinstance(config.build_store(), MemoryStore)

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "kernel.yaml"
        path.write_text(
            "features:\n"
            "  echo: tests.conftest:EchoModule\n"
            "context_rules:\n"
            "  echo: [background]\n"
            "handler_timeout: 2\n"
            f"settings_path: {tmp_path / 'settings.json'}\n"
            "log_level: debug\n",
            encoding="utf-8",
        )
        config = load_config(path)

        assert config.features == {"echo": "tests.conftest:EchoModule"}
        assert config.context_rules == {"echo": ["background"]}
        assert config.handler_timeout == 2.0
        assert config.init_timeout is None
        assert config.log_level == "DEBUG"
        assert isinstance(config.build_store(), JsonFileStore)
        assert config.build_catalog().names() == ["echo"]

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "kernel.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == KernelConfig()

    def test_shipped_config_matches_defaults(self):
        from pathlib import Path

        shipped = Path(__file__).parent.parent / "config" / "kernel.yaml"
        config = load_config(shipped)
        assert config.context_rules == DEFAULT_CONTEXT_RULES
        assert config.features == {}

    @pytest.mark.parametrize("content", [
        "- just\n- a list\n",
        "features: [a, b]\n",
        "context_rules: nope\n",
        "handler_timeout: soon\n",
        "init_timeout: -1\n",
        "context_rules: {echo: 5}\n",
        "context_rules: {echo: {background: true}}\n",
        "features: {a: [unclosed\n",
    ])
    def test_invalid_files_raise(self, tmp_path, content):
        path = tmp_path / "kernel.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(KernelError):
            load_config(path)

    def test_bare_context_name_is_one_element_rule(self, tmp_path):
        path = tmp_path / "kernel.yaml"
        path.write_text("context_rules:\n  echo: background\n  anywhere: \n", encoding="utf-8")
        config = load_config(path)

        assert config.context_rules == {"echo": ["background"], "anywhere": []}
        assert config.permissions().allows("echo", "background")
        assert not config.permissions().allows("echo", "content")

    def test_round_trip_dict(self):
        config = KernelConfig(features={"x": "a.b:C"}, handler_timeout=1.5)
        assert KernelConfig.from_dict(config.to_dict()) == config
