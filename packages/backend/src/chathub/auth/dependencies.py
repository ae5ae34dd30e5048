"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request:
1. Bearer JWT in the Authorization header
2. Subject resolved through the user store (deleted accounts → 401)
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from chathub.auth.jwt import TokenError, verify_token
from chathub.auth.users import UserStore, get_user_store


class CurrentIdentity:
    """The authenticated user making the request.

    Learn: All message queries and mutations are scoped by user_id,
    and every broadcast goes to this user's connections.
    """

    def __init__(self, user_id: int, email: Optional[str] = None):
        self.user_id = user_id
        self.email = email


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    users: UserStore = Depends(get_user_store),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no valid auth)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Authentication required")

    try:
        payload = verify_token(authorization[7:])
        user_id = int(payload["sub"])
    except TokenError as e:
        raise _unauthorized(str(e))
    except (KeyError, ValueError):
        raise _unauthorized("Invalid token subject")

    user = await users.get_user(user_id)
    if user is None:
        raise _unauthorized("Unknown user")

    return CurrentIdentity(user_id=user_id, email=getattr(user, "email", None))
