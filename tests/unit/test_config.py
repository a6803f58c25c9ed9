"""Tests for agentcore.core.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentcore.core.config import load_config, load_env_config, parse_hooks, parse_permissions
from agentcore.permissions.rules import PermissionDecision
from agentcore.types.hooks import HookEvent


def _write_project_config(root: Path, text: str) -> None:
    config_dir = root / ".agentcore"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.toml").write_text(text)


class TestLoadConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config(tmp_path)
        assert config.settings.mode == "code"
        assert config.settings.consecutive_mistake_limit == 3
        assert config.auto_approval.read
        assert not config.auto_approval.write
        assert config.hooks == []

    def test_project_file(self, tmp_path: Path):
        _write_project_config(tmp_path, """
[settings]
mode = "architect"
todo_list_enabled = false
unknown_key = 1

[settings.experiments]
fileEdit = true

[auto_approve]
write = true
allowed_commands = ["pytest", "git status"]

[permissions]
deny = ["delete_file", { tool = "write_to_file", args = { path = "*.env" } }]
allow = ["read_file"]

[[hooks.pre_tool_use]]
command = "./check.sh"
matcher = "write_to_file"
timeout = 5
""")
        config = load_config(tmp_path)
        assert config.settings.mode == "architect"
        assert not config.settings.todo_list_enabled
        assert config.settings.experiment("fileEdit")
        assert config.auto_approval.write
        assert config.auto_approval.allowed_commands == ("pytest", "git status")
        assert [r.tool for r in config.permissions.deny_rules] == ["delete_file", "write_to_file"]
        assert config.permissions.deny_rules[1].args_pattern == {"path": "*.env"}
        assert config.permissions.allow_rules[0].decision is PermissionDecision.ALLOW
        hook = config.hooks[0]
        assert hook.event is HookEvent.PRE_TOOL_USE
        assert hook.matcher == "write_to_file"
        assert hook.timeout == 5.0

    def test_project_overrides_global(self, tmp_path: Path, isolated_home: Path):
        (isolated_home / "config.toml").write_text(
            '[settings]\nmode = "ask"\nconsecutive_mistake_limit = 7\n'
        )
        _write_project_config(tmp_path, '[settings]\nmode = "debug"\n')
        config = load_config(tmp_path)
        assert config.settings.mode == "debug"
        assert config.settings.consecutive_mistake_limit == 7

    def test_env_overrides_files(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        _write_project_config(tmp_path, '[settings]\nmode = "debug"\n')
        monkeypatch.setenv("AGENTCORE_MODE", "ask")
        monkeypatch.setenv("AGENTCORE_YOLO", "yes")
        config = load_config(tmp_path)
        assert config.settings.mode == "ask"
        assert config.settings.yolo_mode

    def test_broken_toml_ignored(self, tmp_path: Path):
        _write_project_config(tmp_path, "[settings\nmode =")
        assert load_config(tmp_path).settings.mode == "code"


class TestEnvConfig:
    def test_empty(self):
        assert load_env_config() == {}

    def test_values(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AGENTCORE_PROTOCOL", "xml")
        monkeypatch.setenv("AGENTCORE_MISTAKE_LIMIT", "5")
        monkeypatch.setenv("AGENTCORE_YOLO", "0")
        assert load_env_config() == {
            "preferred_protocol": "xml",
            "consecutive_mistake_limit": 5,
            "yolo_mode": False,
        }

    def test_bad_limit_ignored(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AGENTCORE_MISTAKE_LIMIT", "many")
        assert "consecutive_mistake_limit" not in load_env_config()


class TestParsers:
    def test_hooks_skip_unknown_events_and_empty_commands(self):
        hooks = parse_hooks({
            "on_lunch": [{"command": "eat"}],
            "task_complete": [{"command": ""}, {"command": "notify-send done"}],
            "post_tool_use": {"command": "log.sh"},
        })
        assert [(h.event, h.command) for h in hooks] == [
            (HookEvent.TASK_COMPLETE, "notify-send done"),
            (HookEvent.POST_TOOL_USE, "log.sh"),
        ]

    def test_permissions_skip_malformed(self):
        config = parse_permissions({"deny": ["execute_command", 42, {"args": {}}]})
        assert [r.tool for r in config.deny_rules] == ["execute_command"]
