"""pnut.io app authentication via the OAuth2 client-credentials grant."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

from stpnut.api.http import PnutError
from stpnut.logging import log_authenticated

if TYPE_CHECKING:
    from stpnut.api.http import RequestExecutor

TOKEN_PATH = "/oauth/access_token"


class InvalidConfiguration(PnutError):
    """Raised when client credentials are missing."""


class MissingToken(PnutError):
    """Raised when the token endpoint answers without an access token."""


async def request_access_token(
    executor: RequestExecutor,
    client_id: str | None,
    client_secret: str | None,
) -> str:
    """Exchange client credentials for an app access token.

    Args:
        executor: Request executor used for the token call.
        client_id: The app's client id.
        client_secret: The app's client secret.

    Returns:
        The bearer token.

    Raises:
        InvalidConfiguration: If either credential is missing or empty.
        MissingToken: If the response has no access_token string.
        ApiError: If the API returns an error envelope.
        httpx.RequestError: On transport failure.
    """
    if not client_id or not client_secret:
        raise InvalidConfiguration(
            "Invalid configuration: must supply both a client_id and client_secret"
        )

    body = urlencode(
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "client_credentials",
        }
    )

    response = await executor.execute(
        TOKEN_PATH,
        method="POST",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        body=body,
    )

    token = response.get("access_token")
    if not isinstance(token, str) or not token:
        raise MissingToken("Response did not include access token")

    log_authenticated(client_id, mask_token(token))
    return token


def mask_token(token: str) -> str:
    """Mask a token for safe logging.

    Args:
        token: Token to mask.

    Returns:
        Masked token showing first 4 and last 4 characters.
    """
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"
