import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiohttp

from config import Config
from errors import UpstreamRequestFailed


def api_url(path: str, config: Optional[Config] = None) -> str:
    # Read at call time so a changed API_BASE_URL is picked up without a restart.
    base = (config or Config.from_env()).api_base_url.rstrip("/")
    return f"{base}/{path.lstrip('/')}"


def server_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    for key in ("message", "error", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


@asynccontextmanager
async def session_scope(session: Optional[aiohttp.ClientSession] = None) -> AsyncIterator[aiohttp.ClientSession]:
    if session is not None:
        yield session
        return
    async with aiohttp.ClientSession() as owned:
        yield owned


async def fetch_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    failure: str = "Request failed",
    **kwargs
) -> Any:
    """Perform one request and return the decoded JSON body.

    Non-2xx responses, non-JSON bodies and transport errors all surface as
    UpstreamRequestFailed, with the server's own message when it sent one.
    """
    try:
        async with session.request(method, url, **kwargs) as resp:
            text = await resp.text()
            content_type = resp.headers.get("Content-Type", "")
            is_json = "json" in content_type.lower()
            payload = _parse_json(text) if is_json else None

            if not 200 <= resp.status < 300:
                reason = server_message(payload) or f"{resp.status} {resp.reason or ''}".strip()
                raise UpstreamRequestFailed(
                    f"{failure}: {reason}",
                    status=resp.status,
                    body=payload if payload is not None else text,
                )

            if not is_json:
                raise UpstreamRequestFailed(
                    f"{failure}: expected JSON but received {content_type or 'no content type'}",
                    status=resp.status,
                    body=text,
                )
            if payload is None:
                raise UpstreamRequestFailed(f"{failure}: malformed JSON in response body", status=resp.status, body=text)
            return payload
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise UpstreamRequestFailed(f"{failure}: {str(e) or type(e).__name__}") from e
