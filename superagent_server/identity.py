"""Anonymous user identity carried in cookies.

Composio scopes connected accounts and tool catalogs by an opaque user id.
The browser keeps that id in a long-lived cookie; callers may also pass it
explicitly in the request body or query string.
"""

import secrets
from dataclasses import dataclass

from fastapi import Request, Response

from superagent_server.config import Settings

# Cookie names, in lookup order
USER_ID_COOKIE = "googlesheet_user_id"
LEGACY_USER_ID_COOKIE = "googledoc_user_id"

# Generated ids are 10-digit numbers
_MIN_GENERATED_ID = 1_000_000_000
_GENERATED_ID_SPAN = 9_000_000_000


@dataclass(frozen=True)
class ResolvedUser:
    """A user id together with whether it was minted for this request."""

    user_id: str
    is_new: bool = False


def generate_user_id() -> str:
    """Mint a random 10-digit user id."""
    return str(_MIN_GENERATED_ID + secrets.randbelow(_GENERATED_ID_SPAN))


def user_id_from_cookies(request: Request) -> str | None:
    """Return the user id stored in cookies, if any."""
    return request.cookies.get(USER_ID_COOKIE) or request.cookies.get(LEGACY_USER_ID_COOKIE)


def resolve_user_id(request: Request, body_user_id: str | None = None) -> ResolvedUser:
    """Resolve the user for a request, minting a new id when none is known.

    Cookies take precedence over an id supplied in the request body.
    """
    user_id = user_id_from_cookies(request) or body_user_id
    if user_id:
        return ResolvedUser(user_id=str(user_id))
    return ResolvedUser(user_id=generate_user_id(), is_new=True)


def lookup_user_id(request: Request, query_user_id: str | None = None) -> str | None:
    """Find an existing user id without minting one.

    An explicit query parameter wins over cookies.
    """
    return query_user_id or user_id_from_cookies(request)


def attach_user_cookie(response: Response, user: ResolvedUser, settings: Settings) -> Response:
    """Set the user id cookie on a response when the id was newly minted."""
    if user.is_new:
        response.set_cookie(
            USER_ID_COOKIE,
            user.user_id,
            path="/",
            max_age=settings.user_cookie_max_age,
            samesite="lax",
            secure=settings.is_production,
        )
    return response
