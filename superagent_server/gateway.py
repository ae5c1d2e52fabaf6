"""Client for the Composio tool-aggregation platform.

Composio hosts the Google Workspace and search tool catalogs, stores the
OAuth-linked accounts per user id, and executes tools on their behalf.
This module is the only place that talks to the Composio SDK:

- ComposioGateway: async facade over the (blocking) SDK
- ToolDefinition / ConnectedAccount: plain values handed to the rest of the app
- GatewayError / GatewayAuthenticationError: SDK failures, with HTTP status when known
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

from composio import Composio
from loguru import logger


class GatewayError(Exception):
    """Raised when a Composio call fails."""

    def __init__(self, message: str, status: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class GatewayAuthenticationError(GatewayError):
    """Raised when Composio rejects the API key or the user's connection (401/403)."""


@dataclass(frozen=True)
class ToolDefinition:
    """A callable operation the model may choose to invoke.

    Attributes:
        slug: Unique tool name (e.g. GOOGLESHEETS_GET_SHEET_BY_ID)
        description: Natural language description shown to the model
        parameters: JSON schema of the tool arguments
    """

    slug: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass(frozen=True)
class ConnectedAccount:
    """An OAuth-linked external account registered under a user id."""

    id: str
    user_id: str | None = None
    status: str | None = None
    auth_config_id: str | None = None
    toolkit_slug: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountId": self.id,
            "userId": self.user_id,
            "status": self.status,
            "authConfigId": self.auth_config_id,
            "toolkitSlug": self.toolkit_slug,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class GatewayProtocol(Protocol):
    """Operations the routes need from the tool platform."""

    async def get_tools(
        self,
        user_id: str,
        *,
        toolkits: list[str] | None = None,
        tools: list[str] | None = None,
        limit: int | None = None,
    ) -> dict[str, ToolDefinition]: ...

    async def execute(self, slug: str, user_id: str, arguments: dict[str, Any]) -> dict[str, Any]: ...

    async def list_connected_accounts(
        self, user_id: str, toolkits: list[str] | None = None
    ) -> list[ConnectedAccount]: ...


def error_status(exc: BaseException) -> int | None:
    """Best-effort HTTP status of an SDK or HTTP client exception."""
    for attr in ("status", "status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _wrap_error(operation: str, exc: Exception) -> GatewayError:
    """Convert an SDK exception to a GatewayError."""
    status = error_status(exc)
    code = getattr(exc, "code", None)
    message = f"Composio {operation} failed: {exc}"
    if status in (401, 403):
        return GatewayAuthenticationError(message, status=status, code=str(code) if code else None)
    return GatewayError(message, status=status, code=str(code) if code else None)


def _tool_from_sdk(raw: Any) -> ToolDefinition | None:
    """Build a ToolDefinition from an SDK tool.

    The default provider returns OpenAI-style function tools
    ({"type": "function", "function": {...}}); raw Composio tool objects
    expose slug/description/input_parameters attributes instead.
    """
    if isinstance(raw, dict):
        function = raw.get("function", raw)
        slug = function.get("name") or function.get("slug")
        description = function.get("description") or ""
        parameters = function.get("parameters") or function.get("input_parameters")
    else:
        slug = getattr(raw, "slug", None) or getattr(raw, "name", None)
        description = getattr(raw, "description", None) or ""
        parameters = getattr(raw, "input_parameters", None)

    if not slug:
        return None
    if not parameters:
        return ToolDefinition(slug=slug, description=description)
    return ToolDefinition(slug=slug, description=description, parameters=dict(parameters))


def _account_from_sdk(raw: Any) -> ConnectedAccount:
    """Build a ConnectedAccount from an SDK connected account item."""

    def _get(obj: Any, name: str) -> Any:
        if isinstance(obj, dict):
            return obj.get(name)
        return getattr(obj, name, None)

    toolkit = _get(raw, "toolkit")
    auth_config = _get(raw, "auth_config")
    created_at = _get(raw, "created_at")
    updated_at = _get(raw, "updated_at")

    return ConnectedAccount(
        id=str(_get(raw, "id")),
        user_id=_get(raw, "user_id"),
        status=_get(raw, "status"),
        auth_config_id=_get(auth_config, "id") if auth_config else _get(raw, "auth_config_id"),
        toolkit_slug=_get(toolkit, "slug") if toolkit else _get(raw, "toolkit_slug"),
        created_at=str(created_at) if created_at else None,
        updated_at=str(updated_at) if updated_at else None,
    )


class ComposioGateway:
    """Async facade over the Composio SDK.

    SDK calls block on network I/O, so each one runs in a worker thread.
    The SDK client is created on first use, which keeps application start-up
    independent of the API key being configured.
    """

    def __init__(self, api_key: str, client: Any | None = None) -> None:
        """Initialize the gateway.

        Args:
            api_key: Composio API key
            client: Optional SDK client (injectable for testing)
        """
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> Any:
        """Get the Composio SDK client (lazy initialization)."""
        if self._client is None:
            if not self._api_key:
                raise GatewayAuthenticationError("COMPOSIO_API_KEY is not configured", status=401)
            self._client = Composio(api_key=self._api_key)
        return self._client

    async def get_tools(
        self,
        user_id: str,
        *,
        toolkits: list[str] | None = None,
        tools: list[str] | None = None,
        limit: int | None = None,
    ) -> dict[str, ToolDefinition]:
        """Fetch tool definitions for a user, keyed by slug."""
        client = self._get_client()
        kwargs: dict[str, Any] = {}
        if toolkits:
            kwargs["toolkits"] = toolkits
        if tools:
            kwargs["tools"] = tools
        if limit is not None:
            kwargs["limit"] = limit

        result: dict[str, ToolDefinition] = {}
        try:
            raw_tools = await asyncio.to_thread(client.tools.get, user_id=user_id, **kwargs)
            for raw in raw_tools or []:
                tool = _tool_from_sdk(raw)
                if tool is not None:
                    result[tool.slug] = tool
        except Exception as e:
            raise _wrap_error("tools.get", e) from e
        return result

    async def execute(self, slug: str, user_id: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a remote tool for a user.

        Returns:
            Dict with `data`, `error` and `successful` keys
        """
        client = self._get_client()
        try:
            response = await asyncio.to_thread(
                client.tools.execute,
                slug,
                arguments=arguments,
                user_id=user_id,
            )
        except Exception as e:
            raise _wrap_error(f"execute {slug}", e) from e

        if isinstance(response, dict):
            return {
                "data": response.get("data"),
                "error": response.get("error"),
                "successful": bool(response.get("successful")),
            }
        return {
            "data": getattr(response, "data", None),
            "error": getattr(response, "error", None),
            "successful": bool(getattr(response, "successful", False)),
        }

    async def list_connected_accounts(
        self, user_id: str, toolkits: list[str] | None = None
    ) -> list[ConnectedAccount]:
        """List the accounts a user has linked, optionally filtered by toolkit."""
        client = self._get_client()
        kwargs: dict[str, Any] = {"user_ids": [user_id]}
        if toolkits:
            kwargs["toolkit_slugs"] = toolkits

        try:
            response = await asyncio.to_thread(client.connected_accounts.list, **kwargs)
        except Exception as e:
            raise _wrap_error("connected_accounts.list", e) from e

        items = response if isinstance(response, list) else getattr(response, "items", None)
        accounts = [_account_from_sdk(item) for item in items or []]
        logger.debug(
            "Connected accounts listed",
            extra={"user_id": user_id, "count": len(accounts), "toolkits": toolkits},
        )
        return accounts
