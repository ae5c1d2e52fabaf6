"""Tool routing and post-processing for the superagent loop."""

import re
from typing import Any

from loguru import logger

from superagent_server.catalog import ToolCatalog
from superagent_server.gateway import GatewayError, GatewayProtocol
from superagent_server.model import ToolResult
from superagent_server.prompts import SLIDES_MARKER
from superagent_server.tools import SLIDE_GENERATOR_TOOL

# Variants of the marker the model emits (the prompt shows it in bold)
_MARKER_VARIANTS = (f"**{SLIDES_MARKER}**", SLIDES_MARKER)

# Outline headings such as "Slide 3:", "**Slide 3 -" or "### Slide 3"
_SLIDE_HEADING = re.compile(r"^[ \t>*#-]*slide\s+\d+\b", re.IGNORECASE | re.MULTILINE)

DEFAULT_SLIDE_COUNT = 5
MIN_SLIDES = 1
MAX_SLIDES = 20


class ToolRouter:
    """Executes tool calls emitted by the model for one user.

    Local tools run in-process; everything else is executed by Composio.
    Remote failures are returned to the model as unsuccessful results so it
    can explain or try another tool.
    """

    def __init__(self, catalog: ToolCatalog, gateway: GatewayProtocol, user_id: str) -> None:
        self._catalog = catalog
        self._gateway = gateway
        self._user_id = user_id

    async def __call__(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        local_tool = self._catalog.local.get(name)
        if local_tool is not None:
            return _without_screenshot(await local_tool.run(arguments))

        if name not in self._catalog.remote:
            logger.warning("Model called an unknown tool", extra={"tool": name})
            return {"data": None, "error": f"Unknown tool '{name}'", "successful": False}

        try:
            result = await self._gateway.execute(name, self._user_id, arguments)
        except GatewayError as e:
            logger.warning(
                "Tool execution failed",
                extra={"tool": name, "status": e.status, "error": str(e)},
            )
            return {"data": None, "error": str(e), "successful": False}

        return _without_screenshot(result)


def _without_screenshot(result: dict[str, Any]) -> dict[str, Any]:
    """Drop base64 screenshots, which only bloat the model context."""
    data = result.get("data")
    if isinstance(data, dict) and isinstance(data.get("screenshot"), str):
        size = len(data["screenshot"])
        return {**result, "data": {**data, "screenshot": f"<{size} base64 characters omitted>"}}
    return result


def find_generated_slides(tool_results: list[ToolResult]) -> list[dict[str, Any]] | None:
    """Return the slides of the first successful slide generation, if any."""
    for tool_result in tool_results:
        if SLIDE_GENERATOR_TOOL not in tool_result.name:
            continue
        result = tool_result.result
        if not isinstance(result, dict) or not result.get("successful"):
            logger.warning("Slide generation tool reported failure")
            continue
        data = result.get("data") or {}
        slides = data.get("slides")
        if slides:
            return slides
    return None


def estimate_slide_count(outline: str, default: int = DEFAULT_SLIDE_COUNT) -> int:
    """Count "Slide N" headings in an outline, clamped to the tool's range."""
    count = len(_SLIDE_HEADING.findall(outline))
    if count == 0:
        return default
    return max(MIN_SLIDES, min(MAX_SLIDES, count))


def strip_slides_marker(text: str) -> tuple[str, bool]:
    """Remove a trailing slides marker.

    Returns:
        Tuple of (text without the marker, whether the marker was present)
    """
    stripped = text.rstrip()
    for marker in _MARKER_VARIANTS:
        if stripped.endswith(marker):
            return stripped[: -len(marker)].rstrip(), True
    return text, False
