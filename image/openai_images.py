"""
OpenAI image generation provider.

Uses the official SDK over the dispatcher's httpx client. The image comes
back base64-encoded inside the JSON envelope, so it is decoded here and
re-encoded at the boundary like every other provider's bytes.
"""
import base64
import binascii
import logging
from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

from image.base import AbortCheck, GenerationRequest, ImageProvider, Provider
from image.dimensions import resolve_dimensions
from image.errors import InvalidResponseError, UpstreamError

logger = logging.getLogger(__name__)


class OpenAIImageProvider(ImageProvider):
    provider = Provider.OPENAI

    def __init__(self, base_url: str, default_model: str):
        self.base_url = base_url
        self.default_model = default_model

    def _client(self, credential: str, http_client: httpx.AsyncClient) -> AsyncOpenAI:
        # No SDK-level retries; failures propagate on first occurrence
        return AsyncOpenAI(
            api_key=credential,
            base_url=self.base_url,
            http_client=http_client,
            max_retries=0,
        )

    async def generate(
        self,
        request: GenerationRequest,
        client: httpx.AsyncClient,
        should_abort: Optional[AbortCheck] = None,
    ) -> bytes:
        dims = resolve_dimensions(self.provider, request.ratio)
        model = request.model or self.default_model
        sdk = self._client(request.credential, client)

        logger.info(f"[OPENAI] Generating with {model} at {dims.width}x{dims.height}")
        try:
            response = await sdk.images.generate(
                model=model,
                prompt=request.prompt,
                n=1,
                size=f"{dims.width}x{dims.height}",
                response_format="b64_json",
            )
        except openai.APIStatusError as e:
            raise UpstreamError(self.provider.value, e.status_code, e.response.text) from e
        except openai.APIError as e:
            raise UpstreamError(self.provider.value, None, str(e)) from e

        if not response.data or not response.data[0].b64_json:
            raise InvalidResponseError("OpenAI response missing 'b64_json' in data[0]")

        try:
            return base64.b64decode(response.data[0].b64_json, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidResponseError("OpenAI returned an undecodable 'b64_json' field") from e
