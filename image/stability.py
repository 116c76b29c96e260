"""
Stability AI provider implementation.

Before generating, the adapter asks the API which engines the key can
use and picks the first one, unless the request names an engine.
"""
import logging
from typing import Optional

import httpx

from image.base import AbortCheck, GenerationRequest, ImageProvider, Provider
from image.dimensions import resolve_dimensions
from image.errors import InvalidResponseError
from image.transport import bearer_headers, read_json, send

logger = logging.getLogger(__name__)

CFG_SCALE = 7


class StabilityImageProvider(ImageProvider):
    provider = Provider.STABILITY

    def __init__(self, api_url: str):
        self.api_url = api_url.rstrip("/")

    async def pick_engine(self, request: GenerationRequest, client: httpx.AsyncClient) -> str:
        """
        Return the first engine id available to the credential.

        Raises:
            InvalidResponseError: If the engine list is empty or malformed
        """
        response = await send(
            self.provider.value,
            client,
            "GET",
            f"{self.api_url}/v1/engines/list",
            headers=bearer_headers(request.credential),
        )
        engines = read_json(self.provider.value, response)
        if not isinstance(engines, list) or not engines:
            raise InvalidResponseError("Stability returned no available engines")

        engine_id = engines[0].get("id") if isinstance(engines[0], dict) else None
        if not engine_id:
            raise InvalidResponseError("Stability engine list entry has no 'id'")
        return engine_id

    async def generate(
        self,
        request: GenerationRequest,
        client: httpx.AsyncClient,
        should_abort: Optional[AbortCheck] = None,
    ) -> bytes:
        engine_id = request.model or await self.pick_engine(request, client)
        dims = resolve_dimensions(self.provider, request.ratio)

        headers = bearer_headers(request.credential)
        headers["Accept"] = "image/png"

        payload = {
            "text_prompts": [{"text": request.prompt}],
            "cfg_scale": CFG_SCALE,
            "width": dims.width,
            "height": dims.height,
            "samples": 1,
        }

        logger.info(f"[STABILITY] Engine {engine_id}, {dims.width}x{dims.height}")
        response = await send(
            self.provider.value,
            client,
            "POST",
            f"{self.api_url}/v1/generation/{engine_id}/text-to-image",
            headers=headers,
            json=payload,
        )
        return response.content
