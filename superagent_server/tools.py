"""Tools executed in-process and offered to the model next to Composio tools.

- GENERATE_PRESENTATION_SLIDES: structured slide deck from free text
- BROWSER_AUTOMATION: headless browser actions through Playwright

Every tool returns a Composio-shaped result dict
({"data": ..., "error": ..., "successful": ...}) so the model sees local and
remote tool results in the same form.
"""

import base64
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from superagent_server.gateway import ToolDefinition
from superagent_server.model import ModelError, ModelProtocol
from superagent_server.prompts import slide_generation_prompt
from superagent_server.slides import SlideDeck, SlideStyle, render_deck

SLIDE_GENERATOR_TOOL = "GENERATE_PRESENTATION_SLIDES"
BROWSER_TOOL = "BROWSER_AUTOMATION"

DEFAULT_TOPIC = "Generated Presentation"


def tool_success(data: dict[str, Any]) -> dict[str, Any]:
    return {"data": data, "error": None, "successful": True}


def tool_failure(message: str) -> dict[str, Any]:
    return {"data": {"error": message}, "error": None, "successful": False}


class SlideGenerationInput(BaseModel):
    """Arguments of the slide generation tool."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(
        description=(
            "The detailed content or data for the presentation. This should be a summary "
            "or the full text from which to generate slides."
        )
    )
    slide_count: int = Field(
        default=5,
        ge=1,
        le=20,
        alias="slideCount",
        description="Number of slides to generate (1-20)",
    )
    style: SlideStyle = Field(
        default="professional",
        description="The visual style for the presentation.",
    )


class BrowserInput(BaseModel):
    """Arguments of the browser automation tool."""

    url: str = Field(description="The URL to browse or scrape")
    action: Literal["scrape", "screenshot", "html", "click", "type", "select"] = "scrape"
    selector: str | None = Field(
        default=None, description="CSS selector for scraping or interaction"
    )
    value: str | None = Field(
        default=None, description="Value to type or select (for type/select actions)"
    )


@dataclass(frozen=True)
class LocalTool:
    """A tool implemented by this server."""

    definition: ToolDefinition
    arguments_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[dict[str, Any]]]

    @property
    def slug(self) -> str:
        return self.definition.slug

    async def run(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate arguments and run the handler."""
        try:
            params = self.arguments_model.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid tool arguments", extra={"tool": self.slug, "error": str(e)})
            return tool_failure(f"Invalid arguments for {self.slug}: {e}")
        return await self.handler(params)


def _definition(slug: str, description: str, arguments_model: type[BaseModel]) -> ToolDefinition:
    return ToolDefinition(
        slug=slug,
        description=description,
        parameters=arguments_model.model_json_schema(by_alias=True),
    )


class SlideGenerator:
    """Turns free text into a rendered slide deck using the slide model."""

    def __init__(self, model: ModelProtocol, model_name: str) -> None:
        self._model = model
        self._model_name = model_name

    async def generate(
        self, content: str, slide_count: int = 5, style: str = "professional"
    ) -> dict[str, Any]:
        """Generate slides; failures are reported in the result, not raised."""
        try:
            deck = await self._model.generate_object(
                model=self._model_name,
                prompt=slide_generation_prompt(content, slide_count, style),
                schema=SlideDeck,
            )
            slides = render_deck(deck, style)
        except ModelError as e:
            logger.error("Slide generation failed", extra={"error": str(e), "status": e.status})
            return tool_failure(f"Failed to generate slides: {e}")
        except Exception as e:
            logger.exception("Slide generation failed", extra={"error_type": type(e).__name__})
            return tool_failure(f"Failed to generate slides: {e}")

        topic = slides[0]["title"] if slides else DEFAULT_TOPIC
        logger.info("Slides generated", extra={"slide_count": len(slides), "style": style})

        return tool_success(
            {
                "slides": slides,
                "slideCount": len(slides),
                "topic": topic,
                "style": style,
                "message": f"Successfully generated {len(slides)} slides.",
            }
        )

    async def __call__(self, params: SlideGenerationInput) -> dict[str, Any]:
        return await self.generate(params.content, params.slide_count, params.style)


async def _screenshot_b64(page: Any) -> str:
    return base64.b64encode(await page.screenshot()).decode("ascii")


async def perform_browser_action(page: Any, params: BrowserInput) -> Any:
    """Run one action on an already loaded page.

    Interaction actions without their selector (or value) fall back to
    returning the page HTML.
    """
    action = params.action
    selector = params.selector
    value = params.value

    if action == "html":
        return await page.content()
    if action == "scrape":
        if selector:
            return await page.text_content(selector)
        return await page.content()
    if action == "screenshot":
        return await _screenshot_b64(page)
    if action == "click" and selector:
        await page.click(selector)
        return f"Clicked element: {selector}"
    if action == "type" and selector and value:
        await page.fill(selector, value)
        return f'Typed "{value}" into {selector}'
    if action == "select" and selector and value:
        await page.select_option(selector, value)
        return f'Selected value "{value}" in {selector}'
    return await page.content()


class BrowserAutomation:
    """Browses a page in headless Chromium and performs a single action."""

    def __init__(self, timeout_ms: int = 30000) -> None:
        self._timeout_ms = timeout_ms

    async def __call__(self, params: BrowserInput) -> dict[str, Any]:
        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(headless=True)
                try:
                    page = await browser.new_page()
                    await page.goto(params.url, timeout=self._timeout_ms)
                    result = await perform_browser_action(page, params)

                    # Always capture the page after the action
                    screenshot = None
                    if params.action != "screenshot":
                        screenshot = await _screenshot_b64(page)
                finally:
                    await browser.close()
        except PlaywrightError as e:
            logger.warning(
                "Browser automation failed",
                extra={"url": params.url, "action": params.action, "error": str(e)},
            )
            return tool_failure(f"Browser automation failed: {e}")

        return tool_success({"result": result, "screenshot": screenshot})


def build_local_tools(
    model: ModelProtocol,
    slide_model: str,
    browser_timeout_ms: int = 30000,
) -> dict[str, LocalTool]:
    """Create the local tools, keyed by slug."""
    slide_tool = LocalTool(
        definition=_definition(
            SLIDE_GENERATOR_TOOL,
            "Creates a professional presentation based on provided content, with customizable "
            "slide count and style.",
            SlideGenerationInput,
        ),
        arguments_model=SlideGenerationInput,
        handler=SlideGenerator(model, slide_model),
    )
    browser_tool = LocalTool(
        definition=_definition(
            BROWSER_TOOL,
            "Browse the web, scrape data, or interact with web pages using a headless browser.",
            BrowserInput,
        ),
        arguments_model=BrowserInput,
        handler=BrowserAutomation(browser_timeout_ms),
    )
    return {tool.slug: tool for tool in (slide_tool, browser_tool)}
