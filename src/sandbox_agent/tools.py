# tools.py
# Tool registry: the fixed set of capabilities exposed to the model.
# The harness looks tools up here by name and never constructs them itself.

import logging

from sandbox_agent.base import Tool
from sandbox_agent.file_tools import EditTool, ReadTool, WriteTool
from sandbox_agent.models import CatalogEntry
from sandbox_agent.process_tools import BashTool, GitTool, MavenTool, NpmTool
from sandbox_agent.sandbox import PathSandbox
from sandbox_agent.search_tools import GlobTool, GrepTool

logger = logging.getLogger(__name__)

TOOL_CLASSES: tuple[type[Tool], ...] = (
    ReadTool,
    WriteTool,
    EditTool,
    GlobTool,
    GrepTool,
    BashTool,
    GitTool,
    NpmTool,
    MavenTool,
)


def build_registry(sandbox: PathSandbox) -> dict[str, Tool]:
    """Instantiate every tool against one sandbox. Called once at startup."""
    registry: dict[str, Tool] = {}
    for tool_cls in TOOL_CLASSES:
        tool = tool_cls(sandbox)
        if tool.name in registry:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        registry[tool.name] = tool
        logger.debug("Registered tool %s", tool.name)
    return registry


def catalog(registry: dict[str, Tool]) -> list[CatalogEntry]:
    """Name and description of each tool, in registration order."""
    return [CatalogEntry(name=tool.name, description=tool.description) for tool in registry.values()]
