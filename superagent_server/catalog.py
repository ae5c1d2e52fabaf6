"""Tool catalog assembly.

Each superagent request offers the model a fresh catalog merged from several
Composio sources plus the local tools. A source that fails (missing
connection, bad key, platform hiccup) is logged and skipped so the rest of the
catalog is still usable.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from superagent_server.gateway import GatewayError, GatewayProtocol, ToolDefinition
from superagent_server.tools import LocalTool

# Toolkits covered by the connection check
GOOGLE_TOOLKITS = ["GOOGLESHEETS", "GOOGLEDOCS", "GOOGLEDRIVE", "GOOGLESLIDES"]

# Number of tool names echoed per toolkit in the connection check
STATUS_SAMPLE_SIZE = 5


@dataclass(frozen=True)
class CatalogSource:
    """One Composio request contributing tools to the catalog.

    Attributes:
        label: Name used in logs and the per-source breakdown
        toolkits: Toolkit slugs to fetch
        tools: Explicit tool slugs to fetch
        limited: Whether the configured per-toolkit limit applies
    """

    label: str
    toolkits: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    limited: bool = False


# Merge order: later sources win on duplicate slugs
SUPERAGENT_SOURCES: tuple[CatalogSource, ...] = (
    CatalogSource("GOOGLESHEETS", toolkits=("GOOGLESHEETS",)),
    CatalogSource("GOOGLEDOCS", toolkits=("GOOGLEDOCS",), limited=True),
    CatalogSource("GOOGLEDRIVE", toolkits=("GOOGLEDRIVE",), limited=True),
    CatalogSource("GOOGLESLIDES", toolkits=("GOOGLESLIDES",), limited=True),
    CatalogSource(
        "GOOGLEDOCS_SPECIFIC",
        tools=(
            "GOOGLEDOCS_GET_DOCUMENT_BY_ID",
            "GOOGLEDOCS_UPDATE_DOCUMENT_MARKDOWN",
            "GOOGLEDOCS_DELETE_CONTENT_RANGE",
        ),
    ),
    CatalogSource("GOOGLESHEETS_SPECIFIC", tools=("GOOGLESHEETS_GET_SHEET_BY_ID",)),
    CatalogSource("COMPOSIO_SEARCH", toolkits=("COMPOSIO_SEARCH",)),
    CatalogSource("COMPOSIO", toolkits=("COMPOSIO",)),
)


@dataclass
class ToolCatalog:
    """Merged tools offered to the model for one request."""

    remote: dict[str, ToolDefinition] = field(default_factory=dict)
    local: dict[str, LocalTool] = field(default_factory=dict)
    breakdown: dict[str, int] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def definitions(self) -> list[ToolDefinition]:
        """All tool definitions, remote first, local tools last."""
        merged = dict(self.remote)
        for slug, tool in self.local.items():
            merged[slug] = tool.definition
        return list(merged.values())

    @property
    def names(self) -> list[str]:
        return [tool.slug for tool in self.definitions]

    def __len__(self) -> int:
        return len(self.definitions)


async def _fetch_source(
    gateway: GatewayProtocol, user_id: str, source: CatalogSource, limit: int
) -> dict[str, ToolDefinition]:
    return await gateway.get_tools(
        user_id,
        toolkits=list(source.toolkits) or None,
        tools=list(source.tools) or None,
        limit=limit if source.limited else None,
    )


async def build_catalog(
    gateway: GatewayProtocol,
    user_id: str,
    *,
    local_tools: dict[str, LocalTool],
    limit: int,
    sources: tuple[CatalogSource, ...] = SUPERAGENT_SOURCES,
) -> ToolCatalog:
    """Fetch every source concurrently and merge them in source order."""
    results = await asyncio.gather(
        *(_fetch_source(gateway, user_id, source, limit) for source in sources),
        return_exceptions=True,
    )

    catalog = ToolCatalog(local=dict(local_tools))
    for source, result in zip(sources, results, strict=True):
        if isinstance(result, Exception):
            logger.warning(
                f"Failed to get {source.label} tools",
                extra={
                    "source": source.label,
                    "status": getattr(result, "status", None),
                    "error_type": type(result).__name__,
                    "error": str(result),
                },
            )
            catalog.failures[source.label] = str(result) or type(result).__name__
            catalog.breakdown[source.label] = 0
            continue
        if isinstance(result, BaseException):
            raise result

        catalog.remote.update(result)
        catalog.breakdown[source.label] = len(result)

    logger.info(
        "Tool catalog assembled",
        extra={
            "user_id": user_id,
            "remote_tools": len(catalog.remote),
            "total_tools": len(catalog),
            "breakdown": catalog.breakdown,
        },
    )
    return catalog


async def toolkit_status(gateway: GatewayProtocol, user_id: str, toolkit: str) -> dict[str, Any]:
    """Check whether a toolkit's tools are reachable for a user."""
    try:
        tools = await gateway.get_tools(user_id, toolkits=[toolkit], limit=1)
    except GatewayError as e:
        return {"available": False, "error": str(e) or "Failed to get tools"}

    return {
        "available": len(tools) > 0,
        "toolCount": len(tools),
        "tools": list(tools)[:STATUS_SAMPLE_SIZE],
    }
