"""Superagent endpoint.

POST /api/superagent runs one conversational turn: it assembles the tool
catalog for the user, lets Gemini call tools until it answers, and returns
the answer together with any slides generated along the way.

Response shape:
    {"response": str, "hasSlides": bool, "slides": [...]}   (slides only when hasSlides)
Error shape:
    {"error": str, "details": str, "requestId": str}
"""

import json
import secrets
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from superagent_server.agent import (
    ToolRouter,
    estimate_slide_count,
    find_generated_slides,
    strip_slides_marker,
)
from superagent_server.catalog import build_catalog
from superagent_server.config import Settings, get_settings
from superagent_server.dependencies import get_gateway, get_local_tools, get_model
from superagent_server.gateway import GatewayProtocol, error_status
from superagent_server.identity import ResolvedUser, attach_user_cookie, resolve_user_id
from superagent_server.logging import request_id_ctx
from superagent_server.model import ModelAuthenticationError, ModelError, ModelProtocol
from superagent_server.prompts import (
    AUTHENTICATION_ERROR_REPLY,
    DOCUMENT_CONNECTED_MESSAGE,
    DOCUMENT_CONNECTED_TAG,
    SPREADSHEET_CONNECTED_MESSAGE,
    SPREADSHEET_CONNECTED_TAG,
    SUPERAGENT_SYSTEM_PROMPT,
    slides_context,
)
from superagent_server.rate_limit import limiter, superagent_limit
from superagent_server.tools import SLIDE_GENERATOR_TOOL, LocalTool

router = APIRouter(tags=["superagent"])


class InvalidRequestBody(Exception):
    """Raised when the request body is not a usable JSON object."""


class HistoryMessage(BaseModel):
    """A previous turn of the conversation."""

    model_config = ConfigDict(extra="ignore")

    role: str = "user"
    content: Any = ""

    def mentions(self, tag: str) -> bool:
        return tag in (self.content if isinstance(self.content, str) else str(self.content))


class SuperAgentRequest(BaseModel):
    """Body of POST /api/superagent."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str | None = None
    selected_tool: str | None = Field(default=None, alias="selectedTool")
    conversation_history: list[HistoryMessage] = Field(
        default_factory=list, alias="conversationHistory"
    )
    user_id: str | None = Field(default=None, alias="userId")
    sheet_url: str | None = Field(default=None, alias="sheetUrl")
    doc_url: str | None = Field(default=None, alias="docUrl")
    slides_url: str | None = Field(default=None, alias="slidesUrl")
    slides_id: str | None = Field(default=None, alias="slidesId")

    @field_validator("conversation_history", mode="before")
    @classmethod
    def _history_list(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    @field_validator("user_id", "slides_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    def history_mentions(self, tag: str) -> bool:
        return any(message.mentions(tag) for message in self.conversation_history)


async def _parse_body(request: Request) -> SuperAgentRequest:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestBody(str(e)) from e

    if not isinstance(body, dict):
        raise InvalidRequestBody("Request body must be a JSON object")
    try:
        return SuperAgentRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequestBody(str(e)) from e


def _reply(
    content: dict[str, Any], user: ResolvedUser, settings: Settings, status_code: int = 200
) -> JSONResponse:
    response = JSONResponse(content=content, status_code=status_code)
    attach_user_cookie(response, user, settings)
    return response


def _user_message(payload: SuperAgentRequest) -> str:
    prompt = payload.prompt or ""
    if payload.slides_url and payload.slides_id:
        return prompt + slides_context(payload.slides_url, payload.slides_id)
    return prompt


def error_response(exc: Exception, request_id: str, settings: Settings) -> JSONResponse:
    """Map an unexpected failure to an HTTP error response."""
    status = error_status(exc)
    message = str(exc)

    if status == 401 or "401" in message:
        return JSONResponse(
            status_code=401,
            content={
                "error": (
                    "Authentication failed. Please check your Composio API key and ensure "
                    "your accounts are properly connected."
                ),
                "details": (
                    "Visit /signin to connect your Google accounts, or check your "
                    "environment variables."
                ),
                "requestId": request_id,
            },
        )

    if any(token in message for token in ("API key", "authentication", "COMPOSIO")):
        return JSONResponse(
            status_code=500,
            content={
                "error": (
                    "Composio API key error. Please verify your COMPOSIO_API_KEY "
                    "environment variable is set correctly."
                ),
                "details": message,
                "requestId": request_id,
            },
        )

    if "GOOGLE" in message or "API_KEY" in message:
        return JSONResponse(
            status_code=500,
            content={
                "error": (
                    "Missing required environment variables. Please check your "
                    "environment settings."
                ),
                "details": message,
                "requestId": request_id,
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Failed to process your request. Please try again.",
            "details": message if settings.is_development else "Check server logs for details",
            "requestId": request_id,
        },
    )


def _missing_key_response(env_var: str, request_id: str) -> JSONResponse:
    logger.error(f"{env_var} is missing")
    return JSONResponse(
        status_code=500,
        content={
            "error": (
                f"Missing {env_var} environment variable. "
                "Please set it in your deployment settings."
            ),
            "requestId": request_id,
        },
    )


@router.post("/superagent")
@limiter.limit(superagent_limit)
async def superagent(
    request: Request,
    settings: Settings = Depends(get_settings),
    gateway: GatewayProtocol = Depends(get_gateway),
    model: ModelProtocol = Depends(get_model),
    local_tools: dict[str, LocalTool] = Depends(get_local_tools),
) -> JSONResponse:
    """Run one agent turn for the caller."""
    request_id = request_id_ctx.get() or secrets.token_hex(4)
    logger.info("SuperAgent request started")

    try:
        payload = await _parse_body(request)
    except InvalidRequestBody as e:
        logger.warning("Failed to parse request body", extra={"error": str(e)})
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body. Please check your input."},
        )

    logger.info(
        "Request parameters",
        extra={
            "prompt_length": len(payload.prompt or ""),
            "selected_tool": payload.selected_tool,
            "history_length": len(payload.conversation_history),
            "has_sheet": bool(payload.sheet_url),
            "has_doc": bool(payload.doc_url),
            "has_slides": bool(payload.slides_url),
        },
    )

    if not payload.prompt:
        logger.warning("Prompt is missing")
        return JSONResponse(status_code=400, content={"error": "Prompt is required."})

    if not settings.google_generative_ai_api_key:
        return _missing_key_response("GOOGLE_GENERATIVE_AI_API_KEY", request_id)
    if not settings.composio_api_key:
        return _missing_key_response("COMPOSIO_API_KEY", request_id)

    try:
        return await _run_turn(request, payload, settings, gateway, model, local_tools)
    except Exception as e:
        logger.exception(
            "SuperAgent request failed",
            extra={"error_type": type(e).__name__, "status": error_status(e)},
        )
        return error_response(e, request_id, settings)


async def _run_turn(
    request: Request,
    payload: SuperAgentRequest,
    settings: Settings,
    gateway: GatewayProtocol,
    model: ModelProtocol,
    local_tools: dict[str, LocalTool],
) -> JSONResponse:
    user = resolve_user_id(request, payload.user_id)
    logger.info("User resolved", extra={"user_id": user.user_id, "new_user": user.is_new})

    # A freshly connected file gets a welcome message instead of an agent run
    if payload.sheet_url and not payload.history_mentions(SPREADSHEET_CONNECTED_TAG):
        return _reply(
            {"response": SPREADSHEET_CONNECTED_MESSAGE, "hasSlides": False}, user, settings
        )
    if payload.doc_url and not payload.history_mentions(DOCUMENT_CONNECTED_TAG):
        return _reply({"response": DOCUMENT_CONNECTED_MESSAGE, "hasSlides": False}, user, settings)

    if payload.slides_url and payload.slides_id:
        logger.info("Google Slides presentation referenced", extra={"slides_id": payload.slides_id})

    catalog = await build_catalog(
        gateway, user.user_id, local_tools=local_tools, limit=settings.toolkit_limit
    )

    messages: list[dict[str, Any]] = [
        {"role": message.role, "content": message.content}
        for message in payload.conversation_history
    ]
    messages.append({"role": "user", "content": _user_message(payload)})

    logger.info(
        "Calling model",
        extra={
            "model": settings.agent_model,
            "message_count": len(messages),
            "tool_count": len(catalog),
            "tool_names": catalog.names[:10],
        },
    )

    try:
        result = await model.run_agent(
            model=settings.agent_model,
            system_prompt=SUPERAGENT_SYSTEM_PROMPT,
            messages=messages,
            tools=catalog.definitions,
            execute_tool=ToolRouter(catalog, gateway, user.user_id),
            max_steps=settings.agent_max_steps,
        )
    except ModelError as e:
        if isinstance(e, ModelAuthenticationError) or e.status == 401 or "401" in str(e):
            logger.error("Model authentication error", extra={"error": str(e)})
            return _reply(
                {"response": AUTHENTICATION_ERROR_REPLY, "hasSlides": False}, user, settings
            )
        raise

    logger.info(
        "Model response generated",
        extra={
            "steps": result.steps,
            "response_length": len(result.text),
            "tool_calls": len(result.tool_calls),
            "tool_results": len(result.tool_results),
        },
    )

    slides = find_generated_slides(result.tool_results)
    if slides:
        logger.info("Slide generation detected", extra={"slide_count": len(slides)})
        return _reply(
            {"response": result.text, "slides": slides, "hasSlides": True}, user, settings
        )

    text, has_marker = strip_slides_marker(result.text)
    if has_marker:
        slides = await _render_outline(text, local_tools)
        if slides:
            return _reply({"response": text, "slides": slides, "hasSlides": True}, user, settings)

    logger.info("No slides generated, returning text response")
    return _reply({"response": text, "hasSlides": False}, user, settings)


async def _render_outline(outline: str, local_tools: dict[str, LocalTool]) -> list[dict] | None:
    """Render a slide outline written by the agent through the slide generator."""
    slide_tool = local_tools.get(SLIDE_GENERATOR_TOOL)
    if slide_tool is None or not outline:
        return None

    slide_count = estimate_slide_count(outline)
    logger.info("Rendering agent slide outline", extra={"slide_count": slide_count})
    outcome = await slide_tool.run({"content": outline, "slideCount": slide_count})
    if not outcome.get("successful"):
        return None
    return outcome["data"].get("slides") or None
