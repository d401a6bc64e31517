"""
Built-in tool definitions.
"""

from ..registry import ToolRegistry
from . import golang, zig

PACKAGES = (golang, zig)


def default_registry() -> ToolRegistry:
    """Registry with every built-in tool registered."""
    registry = ToolRegistry()
    for package in PACKAGES:
        package.register(registry)
    return registry
