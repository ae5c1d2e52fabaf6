"""Connection check endpoint.

Reports which Google toolkits a user can reach through Composio, which
accounts they have linked, and what they should connect next.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger

from superagent_server.catalog import GOOGLE_TOOLKITS, toolkit_status
from superagent_server.dependencies import get_gateway
from superagent_server.gateway import ConnectedAccount, GatewayError, GatewayProtocol
from superagent_server.identity import lookup_user_id

router = APIRouter(tags=["connections"])

_SUMMARY_KEYS = {
    "GOOGLESHEETS": "googleSheets",
    "GOOGLEDOCS": "googleDocs",
    "GOOGLEDRIVE": "googleDrive",
    "GOOGLESLIDES": "googleSlides",
}

_MISSING_TOOLKIT_HINTS = {
    "GOOGLESHEETS": "Google Sheets toolkit is not available. Connect Google Sheets account.",
    "GOOGLEDOCS": "Google Docs toolkit is not available. Connect Google Docs account.",
    "GOOGLEDRIVE": (
        "Google Drive toolkit is not available. "
        "You may need to connect Google Drive separately."
    ),
    "GOOGLESLIDES": (
        "Google Slides toolkit is not available. "
        "You may need to connect Google Slides separately."
    ),
}


def generate_recommendations(
    accounts: list[ConnectedAccount], status: dict[str, dict[str, Any]]
) -> list[str]:
    """Suggest next steps based on the connection state."""

    def available(toolkit: str) -> bool:
        return bool(status.get(toolkit, {}).get("available"))

    recommendations = [
        hint for toolkit, hint in _MISSING_TOOLKIT_HINTS.items() if not available(toolkit)
    ]

    if not accounts:
        recommendations.append(
            "No connected accounts found. Visit /signin to connect your Google accounts."
        )

    if available("GOOGLEDRIVE") and not available("GOOGLESHEETS") and not available("GOOGLEDOCS"):
        recommendations.append(
            "Google Drive is connected but Sheets/Docs toolkits are not available. "
            "The app may need to use GOOGLEDRIVE toolkit instead."
        )

    return recommendations


@router.get("/check-connections", response_model=None)
async def check_connections(
    request: Request,
    query_user_id: str | None = Query(default=None, alias="userId"),
    gateway: GatewayProtocol = Depends(get_gateway),
) -> dict[str, Any] | JSONResponse:
    """Report connected accounts and toolkit availability for a user."""
    user_id = lookup_user_id(request, query_user_id)
    if not user_id:
        return JSONResponse(
            status_code=400,
            content={
                "error": (
                    "No userId provided. Please provide userId as query parameter "
                    "or ensure you have a cookie set."
                ),
                "suggestion": "Visit /signin to connect your accounts first.",
            },
        )

    try:
        return await _connection_report(gateway, user_id)
    except Exception as e:
        logger.exception("Connection check failed", extra={"user_id": user_id})
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to check connections",
                "details": str(e) or "Unknown error",
            },
        )


async def _connection_report(gateway: GatewayProtocol, user_id: str) -> dict[str, Any]:
    accounts: list[ConnectedAccount] = []
    try:
        accounts = await gateway.list_connected_accounts(user_id)
    except GatewayError as e:
        logger.warning(
            "Failed to list connected accounts", extra={"user_id": user_id, "error": str(e)}
        )

    status: dict[str, dict[str, Any]] = {}
    for toolkit in GOOGLE_TOOLKITS:
        status[toolkit] = await toolkit_status(gateway, user_id, toolkit)

    logger.info(
        "Connections checked",
        extra={
            "user_id": user_id,
            "accounts": len(accounts),
            "available": [t for t, s in status.items() if s.get("available")],
        },
    )

    return {
        "success": True,
        "userId": user_id,
        "connectedAccounts": {
            "total": len(accounts),
            "accounts": [account.to_dict() for account in accounts],
        },
        "toolkitStatus": status,
        "summary": {
            key: bool(status.get(toolkit, {}).get("available"))
            for toolkit, key in _SUMMARY_KEYS.items()
        },
        "recommendations": generate_recommendations(accounts, status),
    }
