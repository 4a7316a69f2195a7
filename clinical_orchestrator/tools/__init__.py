"""Callable tool catalog and selection."""

from .catalog import create_default_registry, default_tools
from .registry import ClinicalDomain, ToolCategory, ToolDescriptor, ToolRegistry

__all__ = [
    "ClinicalDomain",
    "ToolCategory",
    "ToolDescriptor",
    "ToolRegistry",
    "create_default_registry",
    "default_tools",
]
