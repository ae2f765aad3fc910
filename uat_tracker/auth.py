"""
UAT Tracker
Authentication.

Provides:
    - get_current_user(): resolve the signed-in user for the current request
    - require_auth(): same, but raise AuthenticationRequired when nobody is
      signed in
    - issue_token(): sign an HS256 bearer token for a user
    - init_auth(app): before_request hook that fills g.current_user for the
      API and answers 401 when no user can be resolved

Resolution order:
    1. ``Authorization: Bearer <jwt>``: claims sub, name, email, provider,
       is_internal (HS256, JWT_SECRET_KEY or SECRET_KEY)
    2. AUTH_MODE config
         sso         internal employee placeholder
         magic-link  external tester placeholder
         none        no session

An invalid or expired bearer token never falls back to AUTH_MODE.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, g, request

from uat_tracker.core.exceptions import AuthenticationRequired
from uat_tracker.models.records import AuthUser
from uat_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TOKEN_EXPIRES = 8 * 3600  # one working day

AUTH_MODE_SSO = "sso"
AUTH_MODE_MAGIC_LINK = "magic-link"
AUTH_MODE_NONE = "none"

SSO_PLACEHOLDER = AuthUser(
    id="employee-001",
    name="Internal Employee",
    email="employee@example.com",
    provider="sso",
    is_internal=True,
)
MAGIC_LINK_PLACEHOLDER = AuthUser(
    id="tester-001",
    name="External Tester",
    email="tester@example.com",
    provider="magic-link",
    is_internal=False,
)

# Paths under /api/v1/ that never need a user
_PUBLIC_PREFIXES = ("/api/v1/health",)


def _get_secret():
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def issue_token(user: AuthUser, expires_in: int = DEFAULT_TOKEN_EXPIRES) -> str:
    """Sign a bearer token carrying ``user``'s identity."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "name": user.name,
        "email": user.email,
        "provider": user.provider,
        "is_internal": user.is_internal,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def _user_from_token(token: str) -> AuthUser | None:
    try:
        payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Bearer token expired")
        return None
    except jwt.InvalidTokenError as exc:
        logger.warning("Invalid bearer token: %s", exc)
        return None

    sub = payload.get("sub")
    if not sub:
        return None
    provider = payload.get("provider") or AUTH_MODE_SSO
    is_internal = payload.get("is_internal")
    if not isinstance(is_internal, bool):
        is_internal = provider == AUTH_MODE_SSO
    return AuthUser(
        id=str(sub),
        name=payload.get("name") or "",
        email=payload.get("email") or "",
        provider=provider,
        is_internal=is_internal,
    )


def _placeholder_user() -> AuthUser | None:
    mode = (current_app.config.get("AUTH_MODE") or AUTH_MODE_SSO).strip().lower()
    if mode == AUTH_MODE_NONE:
        return None
    if mode == AUTH_MODE_MAGIC_LINK:
        return MAGIC_LINK_PLACEHOLDER
    return SSO_PLACEHOLDER


def get_current_user() -> AuthUser | None:
    """Resolve the user for the current request, or None."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return _user_from_token(auth_header[7:].strip())
    return _placeholder_user()


def require_auth() -> AuthUser:
    """Like ``get_current_user`` but raise when nobody is signed in."""
    user = get_current_user()
    if user is None:
        raise AuthenticationRequired()
    return user


def init_auth(app):
    """Install the authentication hook for API routes."""

    @app.before_request
    def _before_request_auth():
        g.current_user = None
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith(_PUBLIC_PREFIXES):
            return None
        # OPTIONS pre-flight requests don't need auth
        if request.method == "OPTIONS":
            return None

        user = get_current_user()
        if user is None:
            logger.info("Unauthenticated request: %s %s", request.method, request.path)
            return api_error(E.AUTH_REQUIRED, "Authentication required")
        g.current_user = user
        return None

    logger.info("Auth middleware installed (mode=%s)", app.config.get("AUTH_MODE"))
