"""Google Slides export endpoint.

POST /api/create-google-slides turns a deck produced by the slide generator
into a real Google Slides presentation in the user's Drive, using whichever
presentation-creation tool the user's GOOGLESLIDES toolkit offers.
"""

import json
import secrets
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from superagent_server.config import Settings, get_settings
from superagent_server.dependencies import get_gateway
from superagent_server.gateway import (
    GatewayAuthenticationError,
    GatewayError,
    GatewayProtocol,
    ToolDefinition,
)
from superagent_server.identity import ResolvedUser, attach_user_cookie, resolve_user_id
from superagent_server.logging import request_id_ctx
from superagent_server.slides import DEFAULT_STYLE, slides_to_markdown

router = APIRouter(tags=["presentations"])

SLIDES_TOOLKIT = "GOOGLESLIDES"
MARKDOWN_CREATE_TOOL = "GOOGLESLIDES_CREATE_SLIDES_MARKDOWN"

# Preferred creation tools, most specific first
CREATE_TOOLS = (
    "GOOGLESLIDES_PRESENTATIONS_CREATE",
    MARKDOWN_CREATE_TOOL,
    "GOOGLESLIDES_CREATE_PRESENTATION",
)
SLIDE_EDIT_TOOLS = ("GOOGLESLIDES_INSERT_SLIDE", "GOOGLESLIDES_INSERT_TEXT")

DEFAULT_TITLE = "AI Generated Presentation"
NOT_CONNECTED_ERROR = (
    "Your Google account is not connected. Please sign in to create Google Slides."
)
CONNECT_SUGGESTION = "Visit /signin to connect your Google Slides account."

_AUTH_HINTS = ("not connected", "authentication", "unauthorized")


class PresentationError(Exception):
    """Raised when a presentation could not be created."""


class CreateSlidesRequest(BaseModel):
    """Body of POST /api/create-google-slides."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    slides: Any = None
    title: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    style: str = DEFAULT_STYLE

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


def slides_url(presentation_id: str) -> str:
    return f"https://docs.google.com/presentation/d/{presentation_id}/edit"


def pick_create_tool(tools: dict[str, ToolDefinition]) -> str | None:
    """Choose the presentation creation tool from a toolkit listing."""
    for slug in CREATE_TOOLS:
        if slug in tools:
            return slug
    for slug in tools:
        lowered = slug.lower()
        if "create" in lowered or "markdown" in lowered:
            return slug
    return None


def presentation_id_from(result: dict[str, Any]) -> str | None:
    """Extract the presentation id from a creation tool result."""
    data = result.get("data")
    if isinstance(data, dict) and data.get("presentationId"):
        return str(data["presentationId"])
    for key in ("presentationId", "id"):
        if result.get(key):
            return str(result[key])
    return None


def _is_not_connected(message: str) -> bool:
    return "No connected accounts" in message


def _not_connected_response(details: str, user: ResolvedUser, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={
            "error": NOT_CONNECTED_ERROR,
            "details": details,
            "suggestion": CONNECT_SUGGESTION,
            "userId": user.user_id,
            **extra,
        },
    )


@router.post("/create-google-slides")
async def create_google_slides(
    request: Request,
    settings: Settings = Depends(get_settings),
    gateway: GatewayProtocol = Depends(get_gateway),
) -> JSONResponse:
    """Create a Google Slides presentation from generated slides."""
    request_id = request_id_ctx.get() or secrets.token_hex(4)
    logger.info("Create Google Slides request started")

    try:
        payload = CreateSlidesRequest.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
        logger.warning("Failed to parse request body", extra={"error": str(e)})
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body. Please check your input."},
        )

    if not isinstance(payload.slides, list) or not payload.slides:
        return JSONResponse(
            status_code=400,
            content={"error": "Slides are required to create Google Slides presentation."},
        )

    user = resolve_user_id(request, payload.user_id)
    logger.info(
        "Creating Google Slides",
        extra={
            "user_id": user.user_id,
            "new_user": user.is_new,
            "slide_count": len(payload.slides),
            "title": payload.title,
        },
    )

    try:
        response = await _create_presentation(gateway, user, payload, request_id)
    except Exception as e:
        logger.exception("Create Google Slides failed", extra={"error_type": type(e).__name__})
        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to create Google Slides presentation.",
                "details": str(e) or "Unknown error",
                "requestId": request_id,
            },
        )

    attach_user_cookie(response, user, settings)
    return response


async def _has_slides_account(gateway: GatewayProtocol, user_id: str) -> bool:
    try:
        accounts = await gateway.list_connected_accounts(user_id, [SLIDES_TOOLKIT])
    except GatewayError as e:
        logger.warning("Could not check connected accounts", extra={"error": str(e)})
        return False
    logger.info("Connected Google Slides accounts", extra={"count": len(accounts)})
    return len(accounts) > 0


async def _fetch_create_tool(gateway: GatewayProtocol, user_id: str) -> str | None:
    """Ask for each known creation tool by name."""
    for slug in CREATE_TOOLS:
        try:
            tools = await gateway.get_tools(user_id, tools=[slug])
        except GatewayError as e:
            logger.warning("Creation tool not available", extra={"tool": slug, "error": str(e)})
            continue
        if tools:
            return next(iter(tools))
    return None


async def _create_presentation(
    gateway: GatewayProtocol,
    user: ResolvedUser,
    payload: CreateSlidesRequest,
    request_id: str,
) -> JSONResponse:
    has_account = await _has_slides_account(gateway, user.user_id)

    try:
        toolkit = await gateway.get_tools(user.user_id, toolkits=[SLIDES_TOOLKIT])
    except GatewayError as e:
        logger.error(
            "Failed to get GOOGLESLIDES tools",
            extra={"status": e.status, "code": e.code, "error": str(e)},
        )
        lowered = str(e).lower()
        is_auth_error = isinstance(e, GatewayAuthenticationError) or any(
            hint in lowered for hint in _AUTH_HINTS
        )
        if is_auth_error or not has_account:
            return _not_connected_response(str(e), user, hasConnectedAccount=has_account)
        return JSONResponse(
            status_code=500,
            content={
                "error": (
                    "Failed to access Google Slides tools. "
                    "Please check your Google account connection."
                ),
                "details": str(e),
                "suggestion": (
                    "Visit /signin to connect your Google Slides account, or try again later."
                ),
                "requestId": request_id,
                "hasConnectedAccount": has_account,
            },
        )

    logger.info("GOOGLESLIDES toolkit fetched", extra={"tools": list(toolkit)})

    create_tool = pick_create_tool(toolkit) or await _fetch_create_tool(gateway, user.user_id)
    if create_tool is None:
        return JSONResponse(
            status_code=500,
            content={
                "error": (
                    "Google Slides creation tool not available. "
                    "Please check your Google account connection."
                ),
                "availableTools": list(toolkit),
                "suggestion": CONNECT_SUGGESTION,
                "requestId": request_id,
            },
        )

    title = payload.title or DEFAULT_TITLE
    arguments: dict[str, Any] = {"title": title}
    if create_tool == MARKDOWN_CREATE_TOOL:
        arguments["content"] = slides_to_markdown(payload.slides)

    logger.info("Executing creation tool", extra={"tool": create_tool})
    try:
        result = await gateway.execute(create_tool, user.user_id, arguments)
    except GatewayError as e:
        if _is_not_connected(str(e)):
            return _not_connected_response(str(e), user)
        raise

    if not result.get("successful") and _is_not_connected(str(result.get("error") or "")):
        return _not_connected_response(str(result["error"]), user)

    presentation_id = presentation_id_from(result)
    if not presentation_id:
        logger.error("No presentation id in creation result", extra={"result": result})
        raise PresentationError("Failed to get presentation ID from creation result")

    if create_tool != MARKDOWN_CREATE_TOOL:
        await _insert_slides(gateway, user.user_id, presentation_id, payload.slides)

    logger.info("Presentation created", extra={"presentation_id": presentation_id})
    return JSONResponse(
        content={
            "success": True,
            "presentationId": presentation_id,
            "slidesUrl": slides_url(presentation_id),
            "message": (
                f"Successfully created Google Slides presentation with "
                f"{len(payload.slides)} slides."
            ),
            "requestId": request_id,
        }
    )


async def _insert_slides(
    gateway: GatewayProtocol, user_id: str, presentation_id: str, slides: list[Any]
) -> None:
    """Add each slide and its title to a freshly created presentation.

    A slide that fails to insert is logged and skipped.
    """
    try:
        edit_tools = await gateway.get_tools(user_id, tools=list(SLIDE_EDIT_TOOLS))
    except GatewayError as e:
        logger.warning("Slide editing tools not available", extra={"error": str(e)})
        return

    insert_slide = next((slug for slug in edit_tools if "INSERT_SLIDE" in slug), None)
    insert_text = next((slug for slug in edit_tools if "INSERT_TEXT" in slug), None)
    if insert_slide is None:
        logger.warning("No slide insertion tool available", extra={"tools": list(edit_tools)})
        return

    for index, slide in enumerate(slides):
        slide = slide if isinstance(slide, dict) else {}
        layout = "TITLE" if slide.get("type") == "title" else "BLANK"
        try:
            await gateway.execute(
                insert_slide,
                user_id,
                {
                    "presentationId": presentation_id,
                    "insertionIndex": index,
                    "slideLayoutReference": {"predefinedLayout": layout},
                },
            )
            if insert_text and slide.get("title"):
                await gateway.execute(
                    insert_text,
                    user_id,
                    {
                        "presentationId": presentation_id,
                        "pageObjectId": "current",
                        "text": slide["title"],
                        "insertionIndex": 0,
                    },
                )
        except GatewayError as e:
            logger.warning(f"Failed to add slide {index + 1}", extra={"error": str(e)})
