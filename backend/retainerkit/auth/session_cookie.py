"""
Session cookie codec.

Two cookie names carry the same session token: the ``__Secure-`` prefixed
name is issued over HTTPS, the plain name during local development.
"""
from datetime import datetime, timezone
from typing import Mapping, Optional

from fastapi import Response

SESSION_COOKIE_NAME = "retainerkit.session-token"
SECURE_SESSION_COOKIE_NAME = "__Secure-retainerkit.session-token"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# PUBLIC_INTERFACE
def get_session_token_from_cookies(cookies: Mapping[str, str]) -> Optional[str]:
    """
    Extract the session token from a cookie jar.

    Args:
        cookies: Request cookies

    Returns:
        Optional[str]: Token from the secure cookie, else the plain one, else None
    """
    for name in (SECURE_SESSION_COOKIE_NAME, SESSION_COOKIE_NAME):
        value = cookies.get(name)
        if value:
            return value
    return None


# PUBLIC_INTERFACE
def set_session_cookie(response: Response, token: str, expires: datetime, secure: bool = False):
    """Attach a session cookie under the name matching the transport."""
    response.set_cookie(
        SECURE_SESSION_COOKIE_NAME if secure else SESSION_COOKIE_NAME,
        token,
        expires=expires,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )


# PUBLIC_INTERFACE
def clear_session_cookies(response: Response):
    """Expire both cookie name variants."""
    for name in (SESSION_COOKIE_NAME, SECURE_SESSION_COOKIE_NAME):
        response.set_cookie(
            name,
            "",
            expires=_EPOCH,
            path="/",
            # browsers drop __Secure- cookies that lack the Secure attribute
            secure=name == SECURE_SESSION_COOKIE_NAME,
            httponly=True,
            samesite="lax",
        )
