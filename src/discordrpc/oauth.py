"""OAuth2 authorization-code exchange over HTTP."""

from __future__ import annotations

import logging

import aiohttp
from pydantic import ValidationError

from discordrpc.ipc.exceptions import (
    ErrorCode,
    RPCCommandError,
    RPCConnectionError,
    RPCTimeoutError,
)
from discordrpc.models import TokenExchangeResponse

logger = logging.getLogger(__name__)

TOKEN_URL = "https://discord.com/api/oauth2/token"

# Token request timeout (seconds)
DEFAULT_HTTP_TIMEOUT = 15.0


async def exchange_code(
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
    *,
    session: aiohttp.ClientSession | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> TokenExchangeResponse:
    """
    Exchange an authorization code for an access token.

    Args:
        client_id: Application client ID
        client_secret: Application client secret
        code: Code returned by the AUTHORIZE command
        redirect_uri: Redirect URI registered for the application
        session: Existing aiohttp session to reuse (a temporary one is
            created when omitted)
        timeout: Total request timeout in seconds

    Raises:
        RPCCommandError: If the endpoint answers with a non-2xx status
        RPCTimeoutError: If the request times out
        RPCConnectionError: If the HTTP request fails
    """
    form = {
        "client_id": client_id,
        "client_secret": client_secret,
        "grant_type": "authorization_code",
        "redirect_uri": redirect_uri,
        "code": code,
    }

    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await _post_token(own_session, form, timeout)
    return await _post_token(session, form, timeout)


async def _post_token(
    session: aiohttp.ClientSession, form: dict[str, str], timeout: float
) -> TokenExchangeResponse:
    logger.debug(f"Exchanging authorization code for client {form['client_id']}")
    try:
        async with session.post(
            TOKEN_URL,
            data=form,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            if not 200 <= resp.status < 300:
                body = await resp.text()
                raise RPCCommandError(
                    f"OAuth2 token exchange failed ({resp.status}): {body}",
                    rpc_code=resp.status,
                    code=ErrorCode.TOKEN_EXCHANGE_FAILED,
                )
            try:
                payload = await resp.json()
            except ValueError as err:
                raise RPCCommandError(
                    f"Token response is not valid JSON: {err}",
                    code=ErrorCode.TOKEN_EXCHANGE_FAILED,
                ) from err
    except TimeoutError as err:
        raise RPCTimeoutError("Token exchange request timed out") from err
    except aiohttp.ClientError as err:
        raise RPCConnectionError(f"Token exchange request failed: {err}") from err

    try:
        return TokenExchangeResponse.model_validate(payload)
    except ValidationError as err:
        raise RPCCommandError(
            f"Unexpected token response: {err}",
            code=ErrorCode.TOKEN_EXCHANGE_FAILED,
        ) from err
