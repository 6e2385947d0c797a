"""
Skald - terminal AI agent

Converses with interchangeable LLM backends while the model calls local and
MCP tools under human-approved permission gating.
Named after the Norse poets who carried the sagas.
"""

import importlib.metadata as _metadata

_raw_version = _metadata.version("skald")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "Skald Contributors"

from skald.config import Settings  # noqa: E402
from skald.core.loop import AgentLoop  # noqa: E402

__all__ = ["__version__", "__version_info__", "Settings", "AgentLoop"]
