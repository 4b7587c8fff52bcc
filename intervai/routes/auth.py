"""
Authentication dependencies.

Sign-up and login live in the account service; this API only verifies the
HTTP-only session cookie it issues (an HS256 JWT carrying `userId`).
"""

from typing import Any, Dict, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header, Request

from intervai.context import AppContext
from intervai.errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError


# =============================================================================
# Dependencies
# =============================================================================

def get_app_context(request: Request) -> AppContext:
    """The process-wide context built at startup."""
    return request.app.state.context


async def get_current_user_id(
    request: Request,
    ctx: AppContext = Depends(get_app_context)
) -> str:
    """
    Extract and verify the user ID from the session cookie.
    """
    token = request.cookies.get(ctx.config.AUTH_COOKIE_NAME)
    if not token:
        raise AuthenticationError("Authentication required")

    try:
        claims = jwt.decode(
            token,
            ctx.config.JWT_SECRET,
            algorithms=[ctx.config.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired, please log in again")
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid token")

    user_id = claims.get("userId")
    if not user_id:
        raise AuthenticationError("Invalid token")
    return str(user_id)


async def require_admin(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
    ctx: AppContext = Depends(get_app_context)
) -> None:
    """Admin endpoints need X-Admin-Key; they are disabled when no key is configured."""
    expected = ctx.config.ADMIN_API_KEY
    if not expected:
        raise AuthorizationError("Admin access is not configured")
    if x_admin_key != expected:
        raise AuthorizationError("Invalid admin key")


# =============================================================================
# Ownership
# =============================================================================

def ensure_uuid(value: str, label: str = "session ID") -> str:
    """Reject ids that cannot be row keys before they reach the database."""
    try:
        return str(UUID(value))
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid {label} format")


async def load_owned_session(
    ctx: AppContext,
    session_id: str,
    user_id: str,
    denied_message: str = "Unauthorized access"
) -> Dict[str, Any]:
    """
    Load a session and verify the caller owns it.

    Raises:
        NotFoundError: No such session
        AuthorizationError: Session belongs to another user
    """
    session = await ctx.sessions.get_by_id(ensure_uuid(session_id))
    if not session:
        raise NotFoundError("Session not found")

    # Verify ownership
    if str(session.get("user_id")) != user_id:
        raise AuthorizationError(denied_message)
    return session


def issue_token(user_id: str, secret: str, algorithm: str = "HS256", **claims) -> str:
    """Sign a session token. Used by tooling and tests; login issues the real ones."""
    return jwt.encode({"userId": user_id, **claims}, secret, algorithm=algorithm)
