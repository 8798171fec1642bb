"""aiohttp session helpers."""

import json
from typing import Any

import aiohttp


async def create_session(timeout: int = 30) -> aiohttp.ClientSession:
    """Create a client session with a total request timeout.

    Args:
        timeout: Total timeout per request in seconds

    Returns:
        New aiohttp.ClientSession, to be closed by the caller
    """
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))


async def parse_json_response(resp: aiohttp.ClientResponse) -> Any:
    """Decode a response body as JSON regardless of its Content-Type.

    Registries answer with vendor media types such as
    ``application/vnd.docker.distribution.manifest.v2+json``, which
    ``ClientResponse.json()`` refuses by default.

    Raises:
        ValueError: If the body is not valid JSON
    """
    body = await resp.read()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid JSON response: {e}") from e
