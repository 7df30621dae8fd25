"""Tools for the recruiting agent."""

from app.tools.base import CallerContext, ToolDefinition, ToolName
from app.tools.registry import ToolsRegistry

__all__ = ["CallerContext", "ToolDefinition", "ToolName", "ToolsRegistry"]
