"""
HTTP helpers shared by provider adapters.

Non-success statuses and transport failures are converted to
UpstreamError here so adapters only deal with successful responses.
No call is ever retried.
"""
import logging

import httpx

from image.errors import UpstreamError

logger = logging.getLogger(__name__)


def bearer_headers(credential: str, content_type: str = "application/json") -> dict:
    return {
        "Authorization": f"Bearer {credential}",
        "Content-Type": content_type,
    }


async def send(
    provider: str,
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs,
) -> httpx.Response:
    """
    Issue one request and return the response if its status is 2xx.

    Args:
        provider: Provider tag used in error messages
        client: HTTP client to send with
        method: HTTP method
        url: Absolute request URL
        **kwargs: Passed through to httpx (headers, json, ...)

    Returns:
        httpx.Response: The successful response

    Raises:
        UpstreamError: On non-2xx status (carrying status and body text)
            or on any transport failure
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error(f"{provider} {method} {url} failed: {e}")
        raise UpstreamError(provider, None, str(e)) from e

    if not response.is_success:
        body = response.text
        logger.error(f"{provider} {method} {url} returned {response.status_code}: {body[:500]}")
        raise UpstreamError(provider, response.status_code, body)

    return response


def read_json(provider: str, response: httpx.Response):
    """Decode a JSON body, treating malformed JSON as an upstream failure."""
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(provider, response.status_code, f"malformed JSON: {response.text[:200]}") from e
