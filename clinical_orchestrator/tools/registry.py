"""Catalog of callable-tool descriptors with selection metadata."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class ToolCategory(str, Enum):
    """Functional grouping of clinical tools."""

    EMOTIONAL_EXPLORATION = "emotional_exploration"
    COGNITIVE_ANALYSIS = "cognitive_analysis"
    BEHAVIORAL_INTERVENTION = "behavioral_intervention"
    RESEARCH_ACADEMIC = "research_academic"
    VALIDATION_SUPPORT = "validation_support"
    PATTERN_DETECTION = "pattern_detection"


class ClinicalDomain(str, Enum):
    """Clinical areas a tool applies to."""

    ANXIETY = "anxiety"
    DEPRESSION = "depression"
    TRAUMA = "trauma"
    RELATIONSHIPS = "relationships"
    ADDICTION = "addiction"
    PERSONALITY = "personality"
    GENERAL = "general"


@dataclass(frozen=True)
class ToolDescriptor:
    """A callable tool plus the metadata used to select it.

    Attributes:
        id: Registry key.
        category: Functional category.
        priority: 1 (lowest) to 10 (highest).
        context_keywords: Words that make the tool relevant.
        applicable_domains: Clinical domains where the tool applies.
        callable_schema: Name, description and JSON-Schema input description
            handed to agents.
        conflicts_with: Ids of tools that must not be selected together.
    """

    id: str
    category: ToolCategory
    priority: int
    context_keywords: tuple[str, ...]
    applicable_domains: tuple[ClinicalDomain, ...]
    callable_schema: dict[str, Any] = field(compare=False, hash=False)
    conflicts_with: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= self.priority <= 10:
            raise ValueError(f"Tool {self.id} priority must be in 1..10, got {self.priority}")
        if "name" not in self.callable_schema:
            raise ValueError(f"Tool {self.id} callable_schema needs a 'name'")

    @property
    def name(self) -> str:
        """Name the tool is exposed under to agents."""
        return self.callable_schema["name"]


class ToolRegistry:
    """Read-mostly catalog keyed by tool id.

    Construct one instance at startup and pass it to every component that
    needs it. Iteration order is registration order.
    """

    MAX_CONTEXT_TOOLS = 5
    MAX_BASIC_TOOLS = 3

    def __init__(self, tools: Optional[Iterable[ToolDescriptor]] = None) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDescriptor) -> None:
        """Register a tool by its id.

        Args:
            tool: The descriptor to register. Replaces an existing entry
                with the same id.
        """
        if tool.id in self._tools:
            logger.warning(f"Replacing already registered tool: {tool.id}")
        self._tools[tool.id] = tool

    def get(self, tool_id: str) -> Optional[ToolDescriptor]:
        return self._tools.get(tool_id)

    def get_all(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def get_by_category(self, category: ToolCategory) -> list[ToolDescriptor]:
        return [tool for tool in self._tools.values() if tool.category == category]

    def get_by_domain(self, domain: ClinicalDomain) -> list[ToolDescriptor]:
        return [tool for tool in self._tools.values() if domain in tool.applicable_domains]

    def search_by_keywords(self, keywords: Iterable[str]) -> list[ToolDescriptor]:
        """Find tools whose context keywords contain any of the given keywords.

        Args:
            keywords: Search terms, matched case-insensitively as substrings
                of each tool keyword.

        Returns:
            Matching tools sorted by priority, highest first. Ties keep
            registration order.
        """
        normalized = [keyword.lower().strip() for keyword in keywords if keyword.strip()]
        matches = [
            tool
            for tool in self._tools.values()
            if any(
                term in tool_keyword.lower()
                for term in normalized
                for tool_keyword in tool.context_keywords
            )
        ]
        return sorted(matches, key=lambda tool: tool.priority, reverse=True)

    def get_for_context(
        self,
        domains: Optional[Iterable[ClinicalDomain]] = None,
        entity_types: Optional[Iterable[str]] = None,
        session_length: Optional[int] = None,
        previous_agent: Optional[str] = None,
    ) -> list[ToolDescriptor]:
        """Select tools relevant to a turn.

        A tool passes when it shares at least one domain with `domains` and,
        if entity types are given, one of its keywords and one entity type
        contain each other (case-insensitive, either direction). Results keep
        registration order and are capped at MAX_CONTEXT_TOOLS.

        `session_length` and `previous_agent` are accepted for callers that
        carry them but do not affect selection.
        """
        requested_domains = set(domains or [])
        requested_types = [entity_type.lower() for entity_type in entity_types or []]

        selected = []
        for tool in self._tools.values():
            if requested_domains and not requested_domains.intersection(
                tool.applicable_domains
            ):
                continue
            if requested_types and not any(
                keyword.lower() in entity_type or entity_type in keyword.lower()
                for keyword in tool.context_keywords
                for entity_type in requested_types
            ):
                continue
            selected.append(tool)
            if len(selected) >= self.MAX_CONTEXT_TOOLS:
                break
        return selected

    def get_basic_tools(self) -> list[ToolDescriptor]:
        """Fixed fallback subset: the first emotional-exploration tools."""
        return self.get_by_category(ToolCategory.EMOTIONAL_EXPLORATION)[
            : self.MAX_BASIC_TOOLS
        ]

    def get_compatible_tools(self, selected_ids: Iterable[str]) -> list[ToolDescriptor]:
        """Tools that can be added to an existing selection.

        Args:
            selected_ids: Ids already selected.

        Returns:
            Tools that are neither selected nor in conflict with a selected tool.
        """
        selected = set(selected_ids)
        conflicting: set[str] = set()
        for tool_id in selected:
            tool = self._tools.get(tool_id)
            if tool:
                conflicting.update(tool.conflicts_with)

        return [
            tool
            for tool in self._tools.values()
            if tool.id not in selected
            and tool.id not in conflicting
            and not selected.intersection(tool.conflicts_with)
        ]

    def get_function_declarations(self, tool_ids: Iterable[str]) -> list[dict[str, Any]]:
        """Callable schemas for the given ids, skipping unknown ids."""
        return [
            self._tools[tool_id].callable_schema
            for tool_id in tool_ids
            if tool_id in self._tools
        ]

    def get_registry_stats(self) -> dict[str, Any]:
        tools = self.get_all()
        by_category: dict[str, int] = {}
        for tool in tools:
            by_category[tool.category.value] = by_category.get(tool.category.value, 0) + 1
        average_priority = (
            round(sum(tool.priority for tool in tools) / len(tools), 2) if tools else 0.0
        )
        return {
            "total_tools": len(tools),
            "tools_by_category": by_category,
            "average_priority": average_priority,
        }

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools
