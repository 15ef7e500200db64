"""Tests for tool approval settings."""

import pytest

from agents.tool_control import ToolControlSettings
from common.types import ToolApprovalMode


@pytest.mark.unit
class TestToolControlSettings:
    """Test mode and whitelist management."""

    def test_defaults_to_ask(self) -> None:
        settings = ToolControlSettings()
        assert settings.get_mode() == ToolApprovalMode.ASK
        assert settings.get_whitelist() == set()

    def test_set_mode_accepts_strings(self) -> None:
        settings = ToolControlSettings()
        settings.set_mode("yolo")
        assert settings.get_mode() == ToolApprovalMode.YOLO

    def test_set_mode_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            ToolControlSettings().set_mode("sometimes")

    def test_add_entry_splits_qualified_name(self) -> None:
        settings = ToolControlSettings()
        entry = settings.add_whitelist_entry("GitHub__issue_write")

        assert entry.id == "GitHub__issue_write"
        assert entry.server_name == "GitHub"
        assert entry.tool_name == "issue_write"
        assert settings.get_whitelist() == {"GitHub__issue_write"}

    def test_add_entry_is_idempotent(self) -> None:
        settings = ToolControlSettings()
        first = settings.add_whitelist_entry("GitHub__issue_write")
        second = settings.add_whitelist_entry("GitHub__issue_write")

        assert first is second
        assert len(settings.list_whitelist()) == 1

    def test_remove_entry(self) -> None:
        settings = ToolControlSettings(whitelist=["GitHub__issue_write", "Jira__search"])

        assert settings.remove_whitelist_entry("GitHub__issue_write") is True
        assert settings.remove_whitelist_entry("GitHub__issue_write") is False
        assert settings.get_whitelist() == {"Jira__search"}

    def test_from_config(self) -> None:
        settings = ToolControlSettings.from_config(
            {"mode": "wait", "whitelist": ["Jira__search"]}
        )

        assert settings.get_mode() == ToolApprovalMode.WAIT
        assert [entry.id for entry in settings.list_whitelist()] == ["Jira__search"]

    def test_get_whitelist_returns_copy(self) -> None:
        settings = ToolControlSettings(whitelist=["Jira__search"])
        settings.get_whitelist().add("GitHub__issue_write")
        assert settings.get_whitelist() == {"Jira__search"}
