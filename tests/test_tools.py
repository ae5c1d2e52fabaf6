"""Tests for the in-process tools."""

import base64

import httpx
import pytest
from playwright.async_api import Error as PlaywrightError

from superagent_server.model import ModelError
from superagent_server.slides import SlideDeck
from superagent_server.tools import (
    BROWSER_TOOL,
    SLIDE_GENERATOR_TOOL,
    BrowserAutomation,
    BrowserInput,
    SlideGenerator,
    build_local_tools,
    perform_browser_action,
)
from tests.fakes import FakeModel, FakePage, FakePlaywright

SCREENSHOT_B64 = base64.b64encode(b"\x89PNG fake").decode("ascii")


class TestBuildLocalTools:
    """Tests for build_local_tools."""

    def test_definitions(self) -> None:
        """Both tools are declared with their argument schemas."""
        tools = build_local_tools(FakeModel(), slide_model="slide-model")

        assert list(tools) == [SLIDE_GENERATOR_TOOL, BROWSER_TOOL]
        schema = tools[SLIDE_GENERATOR_TOOL].definition.parameters
        assert schema["required"] == ["content"]
        assert schema["properties"]["slideCount"]["maximum"] == 20
        assert set(schema["properties"]["style"]["enum"]) == {
            "professional",
            "creative",
            "minimal",
            "academic",
        }
        browser_schema = tools[BROWSER_TOOL].definition.parameters
        assert browser_schema["required"] == ["url"]

    @pytest.mark.asyncio
    async def test_invalid_arguments_reported(self) -> None:
        """Bad arguments come back as a failed result, not an exception."""
        tools = build_local_tools(FakeModel(), slide_model="slide-model")

        result = await tools[SLIDE_GENERATOR_TOOL].run({"content": "x", "slideCount": 50})

        assert result["successful"] is False
        assert "Invalid arguments" in result["data"]["error"]


class TestSlideGenerator:
    """Tests for SlideGenerator."""

    @pytest.mark.asyncio
    async def test_generates_rendered_slides(self) -> None:
        """The deck is rendered to HTML and summarized."""
        model = FakeModel()
        generator = SlideGenerator(model, "slide-model")

        result = await generator.generate("Quarterly numbers", 3, "academic")

        assert result["successful"] is True
        data = result["data"]
        assert data["slideCount"] == 3
        assert data["topic"] == "Quarterly Review"
        assert data["style"] == "academic"
        assert data["message"] == "Successfully generated 3 slides."
        assert all("html" in slide for slide in data["slides"])

        call = model.object_calls[0]
        assert call["model"] == "slide-model"
        assert call["schema"] is SlideDeck
        assert "3 slides using a academic style" in call["prompt"]
        assert "Quarterly numbers" in call["prompt"]

    @pytest.mark.asyncio
    async def test_empty_deck_uses_default_topic(self) -> None:
        """An empty deck falls back to the default topic."""
        generator = SlideGenerator(FakeModel(deck=SlideDeck(slides=[])), "slide-model")

        result = await generator.generate("Nothing", 1)

        assert result["data"]["topic"] == "Generated Presentation"
        assert result["data"]["slideCount"] == 0

    @pytest.mark.asyncio
    async def test_model_failure_reported(self) -> None:
        """A model error becomes a failed tool result."""
        model = FakeModel(object_error=ModelError("Gemini API error (500): overloaded", status=500))

        result = await SlideGenerator(model, "slide-model").generate("x")

        assert result == {
            "data": {"error": "Failed to generate slides: Gemini API error (500): overloaded"},
            "error": None,
            "successful": False,
        }

    @pytest.mark.asyncio
    async def test_transport_error_reported(self) -> None:
        """Errors other than ModelError are reported the same way."""
        tools = build_local_tools(
            FakeModel(object_error=httpx.ConnectError("connection reset")),
            slide_model="slide-model",
        )

        result = await tools[SLIDE_GENERATOR_TOOL].run({"content": "x"})

        assert result == {
            "data": {"error": "Failed to generate slides: connection reset"},
            "error": None,
            "successful": False,
        }


class TestPerformBrowserAction:
    """Tests for perform_browser_action against a fake page."""

    @pytest.mark.asyncio
    async def test_scrape_whole_page(self) -> None:
        """Scrape without a selector returns the page HTML."""
        page = FakePage()

        result = await perform_browser_action(page, BrowserInput(url="https://example.com"))

        assert result == page.html

    @pytest.mark.asyncio
    async def test_scrape_selector(self) -> None:
        """Scrape with a selector returns that element's text."""
        page = FakePage()
        page.texts["h1"] = "Hello"

        result = await perform_browser_action(
            page, BrowserInput(url="https://example.com", selector="h1")
        )

        assert result == "Hello"

    @pytest.mark.asyncio
    async def test_screenshot_is_base64(self) -> None:
        """Screenshots are returned base64 encoded."""
        result = await perform_browser_action(
            FakePage(), BrowserInput(url="https://example.com", action="screenshot")
        )

        assert base64.b64decode(result) == b"\x89PNG fake"

    @pytest.mark.asyncio
    async def test_click(self) -> None:
        """Click reports the clicked selector."""
        page = FakePage()

        result = await perform_browser_action(
            page, BrowserInput(url="https://example.com", action="click", selector="#go")
        )

        assert result == "Clicked element: #go"
        assert page.actions == [("click", "#go")]

    @pytest.mark.asyncio
    async def test_type(self) -> None:
        """Type fills the field with the value."""
        page = FakePage()

        result = await perform_browser_action(
            page,
            BrowserInput(url="https://example.com", action="type", selector="#q", value="cats"),
        )

        assert result == 'Typed "cats" into #q'
        assert page.actions == [("fill", "#q", "cats")]

    @pytest.mark.asyncio
    async def test_select(self) -> None:
        """Select picks the option value."""
        page = FakePage()

        result = await perform_browser_action(
            page,
            BrowserInput(url="https://example.com", action="select", selector="#s", value="2"),
        )

        assert result == 'Selected value "2" in #s'

    @pytest.mark.asyncio
    async def test_interaction_without_selector_returns_html(self) -> None:
        """Interactions missing their selector return the page HTML."""
        page = FakePage()

        result = await perform_browser_action(
            page, BrowserInput(url="https://example.com", action="click")
        )

        assert result == page.html
        assert page.actions == []


class TestBrowserAutomation:
    """Tests for BrowserAutomation with a fake Playwright."""

    @pytest.fixture
    def playwright(self, monkeypatch: pytest.MonkeyPatch) -> FakePlaywright:
        fake = FakePlaywright()
        monkeypatch.setattr("superagent_server.tools.async_playwright", fake)
        return fake

    @pytest.mark.asyncio
    async def test_action_followed_by_screenshot(self, playwright: FakePlaywright) -> None:
        """Every non-screenshot action is followed by a page screenshot."""
        result = await BrowserAutomation()(
            BrowserInput(url="https://example.com", action="click", selector="#go")
        )

        assert result == {
            "data": {"result": "Clicked element: #go", "screenshot": SCREENSHOT_B64},
            "error": None,
            "successful": True,
        }
        assert playwright.page.actions == [
            ("goto", "https://example.com"),
            ("click", "#go"),
            ("screenshot",),
        ]
        assert playwright.chromium.launches == [{"headless": True}]
        assert playwright.browser.closed is True

    @pytest.mark.asyncio
    async def test_screenshot_action_not_repeated(self, playwright: FakePlaywright) -> None:
        """The screenshot action does not take a second screenshot."""
        result = await BrowserAutomation()(
            BrowserInput(url="https://example.com", action="screenshot")
        )

        assert result["data"] == {"result": SCREENSHOT_B64, "screenshot": None}
        assert playwright.page.actions.count(("screenshot",)) == 1

    @pytest.mark.asyncio
    async def test_playwright_error_reported(self, playwright: FakePlaywright) -> None:
        """Playwright errors become a failed result and the browser is closed."""
        playwright.page.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

        result = await BrowserAutomation()(BrowserInput(url="https://nowhere.invalid"))

        assert result["successful"] is False
        assert result["data"]["error"] == (
            "Browser automation failed: net::ERR_NAME_NOT_RESOLVED"
        )
        assert playwright.browser.closed is True
