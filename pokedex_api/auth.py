import logging

import jwt
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized"


class AuthError(Exception):
    """
    Token verification failed.

    The variant (`reason`) is for logs only; every AuthError produces the
    same 401 response.
    """

    reason = "unauthorized"


class MissingToken(AuthError):
    reason = "missing_token"

    def __init__(self):
        super().__init__("no authorization header")


class InvalidToken(AuthError):
    reason = "invalid_token"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")


def verify_token(token: str | None, secret: str, algorithm: str = "HS256") -> dict:
    """Decode and verify a JWT, returning its claims."""
    if not token:
        raise MissingToken()
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.InvalidTokenError as e:
        raise InvalidToken(e) from e


async def authenticate(request: Request) -> dict:
    """
    FastAPI dependency guarding a route.

    The raw token is read from the `authorization` header as-is (no
    "Bearer " prefix handling). Decoded claims end up on `request.state.user`.
    """
    settings = request.app.state.settings
    claims = verify_token(
        request.headers.get("authorization"),
        settings.secret_key,
        settings.jwt_algorithm,
    )
    request.state.user = claims
    return claims


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    logger.warning(
        "Rejected %s %s (%s): %s",
        request.method, request.url.path, exc.reason, exc,
    )
    return JSONResponse(status_code=401, content={"message": UNAUTHORIZED_MESSAGE})
