"""
Shared constants for Skald.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Provider/Model defaults
DEFAULT_MODEL = "claude-sonnet-4-20250514"
"""Default model when neither config nor CLI names one."""

DEFAULT_PROVIDER_ORDER = ("anthropic", "openai", "ollama")
"""Fallback provider preference when a model matches no catalog entry or prefix."""

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_API_VERSION = "2023-06-01"
OPENAI_BASE_URL = "https://api.openai.com/v1"
OLLAMA_BASE_URL = "http://localhost:11434"

# LLM interaction defaults
DEFAULT_MAX_TOKENS = 8192
"""Default maximum tokens for LLM responses."""

DEFAULT_TEMPERATURE = 0.0

DEFAULT_CONTEXT_WINDOW = 128_000
"""Context window assumed for models missing from the catalog."""

# Context management
CONTEXT_COMPRESSION_THRESHOLD = 0.8
"""Fraction of the context window at which the CLI compresses history."""

DEFAULT_KEEP_RECENT_MESSAGES = 4

COMPRESSION_MAX_TOKENS = 1024

# Tool execution defaults
DEFAULT_TOOL_TIMEOUT_SECONDS = 120.0
"""Wall-clock limit for one tool execution."""

DEFAULT_BASH_TIMEOUT_MS = 120_000
MAX_BASH_TIMEOUT_MS = 600_000

BASH_MAX_OUTPUT_CHARS = 30_000
WEB_FETCH_MAX_CHARS = 50_000
WEB_FETCH_TIMEOUT_SECONDS = 30.0

MCP_CONNECT_TIMEOUT_SECONDS = 60.0
"""Upper bound on one MCP server connect, above the client's own handshake timeout."""

FILE_READ_DEFAULT_LIMIT = 2000
GREP_MAX_MATCHES = 500

# Truncation limits for display
DEFAULT_OUTPUT_TRUNCATE_LENGTH = 2000
"""Default length to truncate tool output for display."""

DEFAULT_INPUT_TRUNCATE_LENGTH = 200
"""Default length to truncate tool input values for display."""

USER_AGENT = "skald/0.1"
