"""Hosted language model client (Google Gemini via google-genai).

The agent loop lives here: the model is called with the conversation and
the tool declarations, every function call it emits is handed to an
executor, and the results are sent back until the model answers in plain
text or the step budget runs out.
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from loguru import logger
from pydantic import BaseModel, ValidationError

from superagent_server.gateway import ToolDefinition

T = TypeVar("T", bound=BaseModel)

ToolExecutor = Callable[[str, dict[str, Any]], Awaitable[Any]]

# Conversation roles accepted from clients, mapped to Gemini roles
_ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


class ModelError(Exception):
    """Raised when the model API call fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ModelAuthenticationError(ModelError):
    """Raised when the model API rejects the credentials."""


@dataclass(frozen=True)
class ToolCall:
    """A function call emitted by the model."""

    id: str | None
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ToolResult:
    """The outcome of executing one tool call."""

    id: str | None
    name: str
    arguments: dict[str, Any]
    result: Any


@dataclass
class AgentResult:
    """Final answer of an agent run plus everything the model did on the way."""

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    steps: int = 0


class ModelProtocol(Protocol):
    """Operations the routes need from the model client."""

    async def run_agent(
        self,
        *,
        model: str,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
        execute_tool: ToolExecutor,
        max_steps: int,
    ) -> AgentResult: ...

    async def generate_object(self, *, model: str, prompt: str, schema: type[T]) -> T: ...


def _wrap_error(exc: genai_errors.APIError) -> ModelError:
    """Convert a google-genai API error to a ModelError."""
    status = exc.code if isinstance(exc.code, int) else None
    message = f"Gemini API error ({status}): {exc.message or exc}"
    if status in (401, 403) or "API key not valid" in str(exc):
        return ModelAuthenticationError(message, status=401)
    return ModelError(message, status=status)


def to_contents(messages: list[dict[str, Any]]) -> tuple[list[types.Content], list[str]]:
    """Convert chat messages to Gemini contents.

    Returns:
        Tuple of (contents, extra system instructions). System messages
        cannot appear inside Gemini contents, so they are returned separately.
    """
    contents: list[types.Content] = []
    system_parts: list[str] = []

    for message in messages:
        role = str(message.get("role", "user"))
        content = message.get("content")
        if content is None or content == "":
            continue
        text = content if isinstance(content, str) else json.dumps(content, default=str)

        if role == "system":
            system_parts.append(text)
            continue

        contents.append(
            types.Content(role=_ROLE_MAP.get(role, "user"), parts=[types.Part(text=text)])
        )

    return contents, system_parts


def function_declarations(tools: list[ToolDefinition]) -> list[types.Tool]:
    """Declare tools to Gemini from their JSON schemas."""
    declarations = [
        types.FunctionDeclaration(
            name=tool.slug,
            description=tool.description,
            parameters_json_schema=tool.parameters,
        )
        for tool in tools
    ]
    return [types.Tool(function_declarations=declarations)] if declarations else []


class GeminiModel:
    """Async Gemini client.

    The underlying genai.Client is created on first use so the server can
    start without GOOGLE_GENERATIVE_AI_API_KEY.
    """

    def __init__(self, api_key: str, client: Any | None = None) -> None:
        """Initialize the model client.

        Args:
            api_key: Gemini API key
            client: Optional genai.Client (injectable for testing)
        """
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ModelAuthenticationError("GOOGLE_GENERATIVE_AI_API_KEY is not configured")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _generate(
        self, model: str, contents: Any, config: types.GenerateContentConfig
    ) -> types.GenerateContentResponse:
        client = self._get_client()
        try:
            return await client.aio.models.generate_content(
                model=model, contents=contents, config=config
            )
        except genai_errors.APIError as e:
            raise _wrap_error(e) from e
        except httpx.HTTPError as e:
            raise ModelError(f"Gemini request failed: {e}") from e

    async def run_agent(
        self,
        *,
        model: str,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
        execute_tool: ToolExecutor,
        max_steps: int,
    ) -> AgentResult:
        """Run the tool-calling loop until the model produces a final answer.

        Args:
            model: Gemini model name
            system_prompt: System instruction
            messages: Conversation as {role, content} dicts, oldest first
            tools: Tool definitions offered to the model (may be empty)
            execute_tool: Async callable executing a tool call by name
            max_steps: Maximum number of model turns

        Returns:
            AgentResult with the final text and every tool call/result
        """
        contents, extra_system = to_contents(messages)
        system_instruction = "\n\n".join([system_prompt, *extra_system])

        declared = function_declarations(tools)
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            tools=declared or None,
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )

        result = AgentResult(text="")

        for step in range(1, max_steps + 1):
            response = await self._generate(model, contents, config)
            result.steps = step

            content = response.candidates[0].content if response.candidates else None
            if content is None or not content.parts:
                logger.warning("Model returned no content", extra={"step": step})
                break

            calls: list[types.FunctionCall] = []
            text_parts: list[str] = []
            for part in content.parts:
                if part.thought:
                    continue
                if part.function_call:
                    calls.append(part.function_call)
                elif part.text:
                    text_parts.append(part.text)

            result.text = "".join(text_parts)

            if not calls:
                break

            contents.append(content)
            response_parts: list[types.Part] = []
            for call in calls:
                name = call.name or ""
                arguments = dict(call.args) if call.args else {}
                result.tool_calls.append(ToolCall(id=call.id, name=name, arguments=arguments))

                logger.info("Tool call", extra={"step": step, "tool": name})
                output = await execute_tool(name, arguments)
                result.tool_results.append(
                    ToolResult(id=call.id, name=name, arguments=arguments, result=output)
                )

                response_parts.append(
                    types.Part(
                        function_response=types.FunctionResponse(
                            id=call.id,
                            name=name,
                            response={"result": output},
                        )
                    )
                )

            contents.append(types.Content(role="user", parts=response_parts))
        else:
            logger.warning("Agent step limit reached", extra={"max_steps": max_steps})

        return result

    async def generate_object(self, *, model: str, prompt: str, schema: type[T]) -> T:
        """Generate a structured object matching a pydantic schema."""
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        response = await self._generate(model, prompt, config)

        if isinstance(response.parsed, schema):
            return response.parsed
        try:
            return schema.model_validate_json(response.text or "")
        except ValidationError as e:
            raise ModelError(f"Model returned invalid structured output: {e}") from e
