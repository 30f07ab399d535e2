"""Named knowledge tools for an agent or chat dispatcher.

Each tool takes a JSON-style argument mapping and returns indented JSON text,
so a dispatcher can forward results verbatim. Failures become error results
rather than exceptions.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from .errors import KnowledgeSearchError
from .lookups import get_case_law, get_playbook_guidance, search_legal_provisions
from .search import SemanticSearchEngine, semantic_search

logger = logging.getLogger(__name__)

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "search_posh_act",
        "description": "Search the PoSH Act 2013 for relevant sections.",
        "inputSchema": {
            "type": "object",
            "properties": {"query": {"type": "string"}, "section_number": {"type": "string"}},
            "required": ["query"],
        },
    },
    {
        "name": "search_posh_rules",
        "description": "Search the PoSH Rules 2013 for procedural requirements.",
        "inputSchema": {
            "type": "object",
            "properties": {"query": {"type": "string"}, "rule_number": {"type": "string"}},
            "required": ["query"],
        },
    },
    {
        "name": "get_case_law",
        "description": "Find relevant case law interpreting PoSH provisions.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "section": {"type": "string"},
                "max_results": {"type": "number"},
            },
            "required": ["query"],
        },
    },
    {
        "name": "get_playbook_guidance",
        "description": "Get practical guidance from KelpHR playbooks.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "scenario": {"type": "string"},
                "category": {"type": "string"},
                "max_results": {"type": "number"},
            },
            "required": ["scenario"],
        },
    },
    {
        "name": "semantic_search",
        "description": "Semantic search across the knowledge base.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "sources": {"type": "array", "items": {"type": "string"}},
                "max_results": {"type": "number"},
            },
            "required": ["query"],
        },
    },
]


@dataclass(slots=True)
class ToolResult:
    text: str
    is_error: bool = False


def _limit(arguments: dict, default: int):
    value = arguments.get("max_results") or default
    # JSON clients may send whole numbers as floats.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _search_act(engine: SemanticSearchEngine, arguments: dict) -> dict:
    return search_legal_provisions(engine, "act", arguments["query"], arguments.get("section_number")).to_dict()


def _search_rules(engine: SemanticSearchEngine, arguments: dict) -> dict:
    return search_legal_provisions(engine, "rules", arguments["query"], arguments.get("rule_number")).to_dict()


def _case_law(engine: SemanticSearchEngine, arguments: dict) -> dict:
    return get_case_law(engine, arguments["query"], arguments.get("section"), _limit(arguments, 3)).to_dict()


def _playbooks(engine: SemanticSearchEngine, arguments: dict) -> dict:
    return get_playbook_guidance(
        engine, arguments["scenario"], arguments.get("category"), _limit(arguments, 3)
    ).to_dict()


def _semantic_search(engine: SemanticSearchEngine, arguments: dict) -> dict:
    return semantic_search(engine, arguments["query"], arguments.get("sources"), _limit(arguments, 5)).to_dict()


TOOL_HANDLERS: dict[str, Callable[[SemanticSearchEngine, dict], dict]] = {
    "search_posh_act": _search_act,
    "search_posh_rules": _search_rules,
    "get_case_law": _case_law,
    "get_playbook_guidance": _playbooks,
    "semantic_search": _semantic_search,
}


def call_tool(engine: SemanticSearchEngine, name: str, arguments: dict | None = None) -> ToolResult:
    """Run one named tool and serialize its result.

    Args:
        engine: Engine shared by every tool.
        name: Tool name from `TOOL_DEFINITIONS`.
        arguments: Tool arguments as decoded from the caller's JSON.

    Returns:
        `ToolResult` with indented JSON on success, or an `Error: ...`
        message with `is_error=True` for unknown tools, missing required
        arguments and retrieval errors.
    """
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        return ToolResult(text=f"Error: Unknown tool: {name}", is_error=True)

    try:
        payload = handler(engine, arguments or {})
    except KeyError as exc:
        return ToolResult(text=f"Error: Missing required argument: {exc.args[0]}", is_error=True)
    except KnowledgeSearchError as exc:
        logger.info("Tool %s failed: %s", name, exc)
        return ToolResult(text=f"Error: {exc}", is_error=True)

    return ToolResult(text=json.dumps(payload, indent=2))
