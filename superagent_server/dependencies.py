"""FastAPI dependencies for the shared clients.

The clients are created during application lifespan and stored in app.state.

Usage:
    @router.get("/example")
    async def example(gateway: GatewayProtocol = Depends(get_gateway)):
        ...
"""

from fastapi import Request

from superagent_server.gateway import GatewayProtocol
from superagent_server.model import ModelProtocol
from superagent_server.tools import LocalTool


def get_gateway(request: Request) -> GatewayProtocol:
    """Composio gateway for the application."""
    return request.app.state.gateway


def get_model(request: Request) -> ModelProtocol:
    """Gemini client for the application."""
    return request.app.state.model


def get_local_tools(request: Request) -> dict[str, LocalTool]:
    """Local tools offered to the model, keyed by slug."""
    return request.app.state.local_tools
