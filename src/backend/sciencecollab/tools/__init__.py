"""
Read-only scientific data-source tools.

Each adapter converts one public API's response into a ToolResult and never
raises; the registry dispatches by tool name.
"""
from sciencecollab.tools.base import MAX_ITEMS, ToolAdapter
from sciencecollab.tools.registry import ToolRegistry, build_default_registry

__all__ = ["MAX_ITEMS", "ToolAdapter", "ToolRegistry", "build_default_registry"]
