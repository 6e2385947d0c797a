"""
Configuration module for Skald.

Uses pydantic-settings for environment variable loading and layered YAML files.
"""

from skald.config.settings import Settings, find_git_root, find_project_root
from skald.config.sources import ConfigFileError
from skald.config.types import McpServerConfig, ModelEntry

__all__ = [
    "ConfigFileError",
    "McpServerConfig",
    "ModelEntry",
    "Settings",
    "find_git_root",
    "find_project_root",
]
