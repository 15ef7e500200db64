"""Project configuration and paths."""

import os
from pathlib import Path
from typing import Any

# Project root is where this config.py file is located
PROJECT_ROOT = Path(__file__).parent


def _env_list(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


# Tool approval configuration
TOOL_APPROVAL_CONFIG: dict[str, Any] = {
    # yolo runs everything, wait shows an auto-approve countdown, ask waits for a human
    "mode": os.getenv("TOOL_APPROVAL_MODE", "ask").lower(),
    # Qualified tool names (<server>__<tool>) that never need approval
    "whitelist": _env_list("TOOL_APPROVAL_WHITELIST"),
    # Countdown hint shown in wait mode
    "wait_auto_approve_seconds": float(os.getenv("TOOL_APPROVAL_WAIT_SECONDS", "15")),
    # Unanswered requests are denied after this long
    "hard_timeout_seconds": float(os.getenv("TOOL_APPROVAL_TIMEOUT_SECONDS", "60")),
    # Actually approve when the wait countdown ends instead of only hinting
    "enforce_wait_auto_approve": os.getenv("TOOL_APPROVAL_ENFORCE_WAIT", "false").lower()
    == "true",
}

# Orchestration loop configuration
ORCHESTRATOR_CONFIG: dict[str, Any] = {
    "max_tool_iterations": int(os.getenv("MAX_TOOL_ITERATIONS", "20")),
    # Empty means the orchestrator's built-in prompt
    "default_system_prompt": os.getenv("DEFAULT_SYSTEM_PROMPT", ""),
    # Finished runs kept for polling; the oldest are dropped first
    "max_finished_runs": int(os.getenv("MAX_FINISHED_RUNS", "100")),
}

# Language model configuration
LLM_CONFIG: dict[str, Any] = {
    "api_key": os.getenv("OPENAI_API_KEY"),
    "model": os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
    "temperature": float(os.getenv("OPENAI_TEMPERATURE", "0.7")),
}

# JSON list of stdio MCP server configs
MCP_SERVERS_FILE = Path(os.getenv("MCP_SERVERS_FILE", str(PROJECT_ROOT / "mcp_servers.json")))

# HTTP server configuration
SERVER_CONFIG: dict[str, Any] = {
    "host": os.getenv("HOST", "127.0.0.1"),
    "port": int(os.getenv("PORT", "8080")),
    "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
    # Per-subscriber buffer of the step event stream
    "step_queue_size": int(os.getenv("STEP_QUEUE_SIZE", "1000")),
}
