from __future__ import annotations

import json
from typing import Optional

import httpx

from shared.log import get_logger
from shared.protocol import LOGIN_SERVER_URL
from showdown.errors import LoginError

logger = get_logger(__name__)


def parse_challenge(payload: str) -> tuple:
    """Split a challstr payload into (challengekeyid, challenge)."""
    key_id, sep, challenge = payload.partition('|')
    if not sep or not key_id or not challenge:
        raise LoginError(f"Malformed login challenge: {payload!r}")
    return key_id, challenge


def parse_assertion(body: str) -> str:
    """
    Extract the assertion from a login server response.

    The body is one guard character followed by JSON, e.g.
    ']{"actionsuccess":true,"assertion":"..."}'. An assertion starting with
    ';;' carries the rejection reason instead of a token.
    """
    try:
        data = json.loads(body[1:])
    except json.JSONDecodeError as e:
        raise LoginError(f"Invalid login server response: {e}") from e
    if not isinstance(data, dict):
        raise LoginError("Invalid login server response")

    assertion = data.get("assertion")
    if not isinstance(assertion, str) or not assertion:
        raise LoginError("Login server returned no assertion")
    if assertion.startswith(";;"):
        raise LoginError(assertion[2:] or "Login rejected")
    if data.get("actionsuccess") is False:
        raise LoginError("Login rejected")
    return assertion


async def fetch_assertion(
    server_id: str,
    challenge_key_id: str,
    challenge: str,
    name: str,
    password: str,
    http: Optional[httpx.AsyncClient] = None,
    *,
    login_server_url: str = LOGIN_SERVER_URL,
    timeout: float = 10.0,
) -> str:
    """
    Exchange a login challenge and credentials for an assertion token.

    Raises:
        LoginError: The login server rejected the credentials or could not be reached
    """
    url = login_server_url.format(server_id=server_id)
    form = {
        "act": "login",
        "challengekeyid": challenge_key_id,
        "challenge": challenge,
        "name": name,
        "pass": password,
    }
    owns_client = http is None
    client = http or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.post(url, data=form)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise LoginError(f"Login request failed: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    assertion = parse_assertion(response.text)
    logger.debug("Received assertion for %s", name, extra={"user": name})
    return assertion
