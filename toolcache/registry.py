#!/usr/bin/env python3
"""
Tool registry.

The registry is built once while the process initialises, every tool package
adds its entries, and it is read-only from the first ensure on.
"""

import logging
from typing import Dict, Iterator, List

# Local imports
from .errors import ConfigurationError, DuplicateToolError, UnknownToolError
from .tools import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Mapping from tool name to tool descriptor."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}
        self._frozen = False

    def add(self, *tools: Tool) -> None:
        """
        Register tools.

        Args:
            tools: Tool descriptors

        Raises:
            DuplicateToolError: If a name is already registered
            ConfigurationError: If the registry is already in use
        """
        if self._frozen:
            raise ConfigurationError("Tools must be registered before the registry is used")

        for tool in tools:
            if tool.name in self._tools:
                raise DuplicateToolError(tool.name)
            self._tools[tool.name] = tool
            logger.debug(f"Registered tool {tool.name} {tool.version}")

    def get(self, name: str) -> Tool:
        """Return the tool registered under the name or raise UnknownToolError."""
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def freeze(self) -> None:
        """Close the registration phase."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return list(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
