"""JWT Bearer authentication middleware.

Tokens are issued by a separate auth service. This middleware only verifies
them and records the caller on ``request.state.user``; routes that need a
caller depend on ``CurrentUser``, which turns an anonymous or rejected caller
into a 401.
"""

import logging

from jose import ExpiredSignatureError, JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mvstudio.config import settings

logger = logging.getLogger(__name__)

_PUBLIC_PATHS = {
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/openapi.json",
}
_PUBLIC_PREFIXES = ("/docs", "/redoc")


def _anonymous(auth_error: str | None = None) -> dict:
    user = {"sub": "anonymous"}
    if auth_error:
        user["_auth_error"] = auth_error
    return user


def verify_access_token(token: str) -> dict:
    """Return the caller for a valid access token.

    Raises:
        ValueError: with a short reason code when the token is unusable.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError as exc:
        raise ValueError("token_expired") from exc
    except JWTError as exc:
        logger.debug("JWT rejected: %s", exc)
        raise ValueError("invalid_token") from exc

    if claims.get("type") == "refresh":
        raise ValueError("not_access_token")
    if not claims.get("sub"):
        raise ValueError("missing_subject")
    return {"sub": claims["sub"], "email": claims.get("email", "")}


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        auth_header = request.headers.get("authorization", "")

        if path in _PUBLIC_PATHS or path.startswith(_PUBLIC_PREFIXES) or not auth_header.startswith("Bearer "):
            request.state.user = _anonymous()
        else:
            try:
                request.state.user = verify_access_token(auth_header[7:])
            except ValueError as exc:
                request.state.user = _anonymous(str(exc))
        return await call_next(request)
