"""Bearer-token authentication for mock requests.

The decision itself (:func:`authorize`) is a plain function of the request
path, the ``Authorization`` header and an optional token store, so it can
be tested without a Flask app. :func:`install_auth` wires it into an app
as a ``before_request`` hook.
"""

import logging
from dataclasses import dataclass

from flask import Flask, Response, jsonify, request

from .stores import TokenStore

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/authentication/v2/token"

AUTH_ERROR_CODE = "AUTH-001"

MISSING_HEADER_MESSAGE = "Missing or malformed Authorization header. Expected: Bearer <token>"
INVALID_TOKEN_MESSAGE = "The access token provided is invalid or has expired."

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthDecision:
    """Outcome of an authentication check."""

    allowed: bool
    message: str | None = None


ALLOW = AuthDecision(allowed=True)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer <token>`` header, or None."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


def authorize(path: str, authorization: str | None, tokens: TokenStore | None) -> AuthDecision:
    """Decide whether a request may proceed.

    Args:
        path: Request path
        authorization: Raw ``Authorization`` header value, if any
        tokens: Token store in stateful mode, None in stateless mode

    Returns:
        The decision. Denials carry the message for the 401 body.
    """
    if path == TOKEN_ENDPOINT:
        return ALLOW

    token = extract_bearer_token(authorization)
    if token is None:
        return AuthDecision(allowed=False, message=MISSING_HEADER_MESSAGE)

    # Stateless mode accepts any well-formed bearer token
    if tokens is None:
        return ALLOW

    if tokens.validate_token(token):
        return ALLOW
    return AuthDecision(allowed=False, message=INVALID_TOKEN_MESSAGE)


def unauthorized_response(message: str) -> Response:
    """Build the 401 response returned on authentication failure."""
    response = jsonify({"developerMessage": message, "errorCode": AUTH_ERROR_CODE})
    response.status_code = 401
    return response


def install_auth(app: Flask, tokens: TokenStore | None) -> None:
    """Register the authentication check on every request of an app."""

    @app.before_request
    def check_authorization() -> Response | None:
        # CORS preflight carries no credentials
        if request.method == "OPTIONS":
            return None

        decision = authorize(request.path, request.headers.get("Authorization"), tokens)
        if decision.allowed:
            return None

        logger.debug(f"Rejected {request.method} {request.path}: {decision.message}")
        return unauthorized_response(decision.message or INVALID_TOKEN_MESSAGE)
