"""Mutable tool approval settings shared by every run in the process."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from common.types import ToolApprovalMode, split_qualified_name

logger = logging.getLogger(__name__)


@dataclass
class WhitelistEntry:
    """A tool the user chose to always run without approval."""

    id: str  # Qualified tool name
    server_name: str
    tool_name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "server_name": self.server_name,
            "tool_name": self.tool_name,
            "created_at": self.created_at.isoformat(),
        }


class ToolControlSettings:
    """Current approval mode plus the remembered whitelist.

    The orchestrator reads these on every iteration, so changes apply to
    in-flight runs from their next model turn.
    """

    def __init__(
        self,
        mode: ToolApprovalMode = ToolApprovalMode.ASK,
        whitelist: Optional[Iterable[str]] = None,
    ) -> None:
        self._mode = ToolApprovalMode(mode)
        self._whitelist: dict[str, WhitelistEntry] = {}
        for qualified_name in whitelist or []:
            self.add_whitelist_entry(qualified_name)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ToolControlSettings":
        """Build settings from a TOOL_APPROVAL_CONFIG-style dictionary."""
        return cls(mode=config.get("mode", "ask"), whitelist=config.get("whitelist", []))

    def get_mode(self) -> ToolApprovalMode:
        return self._mode

    def set_mode(self, mode: ToolApprovalMode) -> None:
        mode = ToolApprovalMode(mode)
        if mode != self._mode:
            logger.info(f"Tool approval mode changed: {self._mode.value} -> {mode.value}")
        self._mode = mode

    def get_whitelist(self) -> set[str]:
        """Qualified names of remembered tools."""
        return set(self._whitelist)

    def list_whitelist(self) -> list[WhitelistEntry]:
        """Remembered tools, oldest first."""
        return sorted(self._whitelist.values(), key=lambda entry: entry.created_at)

    def add_whitelist_entry(self, qualified_name: str) -> WhitelistEntry:
        """Remember a tool. Adding an existing tool returns the existing entry."""
        existing = self._whitelist.get(qualified_name)
        if existing is not None:
            return existing

        server_name, tool_name = split_qualified_name(qualified_name)
        entry = WhitelistEntry(id=qualified_name, server_name=server_name, tool_name=tool_name)
        self._whitelist[qualified_name] = entry
        logger.info(f"Tool added to approval whitelist: {qualified_name}")
        return entry

    def remove_whitelist_entry(self, entry_id: str) -> bool:
        """Forget a tool. Returns False if it was not remembered."""
        if self._whitelist.pop(entry_id, None) is None:
            return False
        logger.info(f"Tool removed from approval whitelist: {entry_id}")
        return True
