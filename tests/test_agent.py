"""Tests for tool routing and agent output post-processing."""

import pytest

from superagent_server.agent import (
    ToolRouter,
    estimate_slide_count,
    find_generated_slides,
    strip_slides_marker,
)
from superagent_server.catalog import ToolCatalog
from superagent_server.gateway import GatewayError
from superagent_server.model import ToolResult
from superagent_server.tools import SLIDE_GENERATOR_TOOL, LocalTool
from tests.fakes import FakeGateway, make_tool


@pytest.fixture
def catalog(local_tools: dict[str, LocalTool]) -> ToolCatalog:
    return ToolCatalog(
        remote={"GOOGLESHEETS_BATCH_GET": make_tool("GOOGLESHEETS_BATCH_GET")},
        local=local_tools,
    )


class TestToolRouter:
    """Tests for ToolRouter."""

    @pytest.mark.asyncio
    async def test_remote_tool_runs_for_user(self, catalog: ToolCatalog) -> None:
        """Remote tools are executed through the gateway for the request user."""
        gateway = FakeGateway()
        gateway.execute_results["GOOGLESHEETS_BATCH_GET"] = {
            "data": {"values": [["a", "b"]]},
            "error": None,
            "successful": True,
        }
        router = ToolRouter(catalog, gateway, "u42")

        result = await router("GOOGLESHEETS_BATCH_GET", {"spreadsheet_id": "s1"})

        assert result["data"] == {"values": [["a", "b"]]}
        assert gateway.executed == [("GOOGLESHEETS_BATCH_GET", "u42", {"spreadsheet_id": "s1"})]

    @pytest.mark.asyncio
    async def test_remote_failure_becomes_result(self, catalog: ToolCatalog) -> None:
        """The model sees a failed result instead of the run aborting."""
        gateway = FakeGateway()
        gateway.execute_errors["GOOGLESHEETS_BATCH_GET"] = GatewayError("quota", status=429)

        result = await ToolRouter(catalog, gateway, "u1")("GOOGLESHEETS_BATCH_GET", {})

        assert result == {"data": None, "error": "quota", "successful": False}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, catalog: ToolCatalog) -> None:
        """An unknown tool name returns a failed result."""
        gateway = FakeGateway()

        result = await ToolRouter(catalog, gateway, "u1")("MADE_UP_TOOL", {})

        assert result["successful"] is False
        assert "MADE_UP_TOOL" in result["error"]
        assert gateway.executed == []

    @pytest.mark.asyncio
    async def test_local_tool_runs_in_process(self, catalog: ToolCatalog) -> None:
        """Local tools run in-process without touching the gateway."""
        gateway = FakeGateway()

        result = await ToolRouter(catalog, gateway, "u1")(
            SLIDE_GENERATOR_TOOL, {"content": "Q3 results", "slideCount": 3}
        )

        assert result["successful"] is True
        assert result["data"]["slideCount"] == 3
        assert gateway.executed == []

    @pytest.mark.asyncio
    async def test_screenshot_is_not_sent_to_model(self, catalog: ToolCatalog) -> None:
        """Screenshots are replaced by a size note before reaching the model."""
        gateway = FakeGateway()
        gateway.execute_results["GOOGLESHEETS_BATCH_GET"] = {
            "data": {"result": "ok", "screenshot": "A" * 500},
            "error": None,
            "successful": True,
        }

        result = await ToolRouter(catalog, gateway, "u1")("GOOGLESHEETS_BATCH_GET", {})

        assert result["data"]["screenshot"] == "<500 base64 characters omitted>"
        assert result["data"]["result"] == "ok"


class TestFindGeneratedSlides:
    """Tests for find_generated_slides."""

    def _result(self, name: str, result: object) -> ToolResult:
        return ToolResult(id="c", name=name, arguments={}, result=result)

    def test_successful_generation(self) -> None:
        """Slides come from a successful slide tool result."""
        slides = [{"title": "A", "html": "<div/>"}]
        results = [
            self._result("GOOGLESHEETS_BATCH_GET", {"successful": True, "data": {}}),
            self._result(SLIDE_GENERATOR_TOOL, {"successful": True, "data": {"slides": slides}}),
        ]

        assert find_generated_slides(results) == slides

    def test_failed_generation_ignored(self) -> None:
        """A failed slide tool result yields no slides."""
        results = [
            self._result(SLIDE_GENERATOR_TOOL, {"successful": False, "data": {"error": "x"}}),
        ]

        assert find_generated_slides(results) is None

    def test_first_success_after_failure(self) -> None:
        """The first successful generation is used after an earlier failure."""
        slides = [{"title": "B"}]
        results = [
            self._result(SLIDE_GENERATOR_TOOL, {"successful": False, "data": {"error": "x"}}),
            self._result(SLIDE_GENERATOR_TOOL, {"successful": True, "data": {"slides": slides}}),
        ]

        assert find_generated_slides(results) == slides

    def test_no_slide_tool(self) -> None:
        """Runs without a slide tool call yield no slides."""
        assert find_generated_slides([]) is None


class TestStripSlidesMarker:
    """Tests for strip_slides_marker."""

    def test_plain_marker(self) -> None:
        """A plain marker is stripped and detected."""
        assert strip_slides_marker("Slide 1: Intro\n\n[SLIDES]") == ("Slide 1: Intro", True)

    def test_bold_marker_with_whitespace(self) -> None:
        """A bold marker with surrounding whitespace is stripped."""
        assert strip_slides_marker("Outline\n**[SLIDES]**  \n") == ("Outline", True)

    def test_no_marker(self) -> None:
        """Text without a marker is returned unchanged."""
        assert strip_slides_marker("Just an answer.") == ("Just an answer.", False)

    def test_marker_mid_text_kept(self) -> None:
        """Only a trailing marker requests slides."""
        text = "Say [SLIDES] at the end to get slides."

        assert strip_slides_marker(text) == (text, False)


class TestEstimateSlideCount:
    """Tests for estimate_slide_count."""

    def test_counts_headings(self) -> None:
        """Slide headings in the outline are counted."""
        outline = "**Slide 1: Intro**\n- a\n\n### Slide 2 - Data\n- b\n\nSlide 3: End"

        assert estimate_slide_count(outline) == 3

    def test_default_without_headings(self) -> None:
        """An outline without headings gets the default count."""
        assert estimate_slide_count("Some prose about slides in general.") == 5

    def test_clamped_to_maximum(self) -> None:
        """The estimate never exceeds the maximum slide count."""
        outline = "\n".join(f"Slide {i}: Topic" for i in range(1, 30))

        assert estimate_slide_count(outline) == 20
