"""
Hugging Face Inference API provider.

The free-tier hosted inference endpoint answers with the raw image bytes.
"""
import logging
from typing import Optional

import httpx

from image.base import AbortCheck, GenerationRequest, ImageProvider, Provider
from image.dimensions import resolve_dimensions
from image.transport import bearer_headers, send

logger = logging.getLogger(__name__)


class HuggingFaceImageProvider(ImageProvider):
    """
    Calls {api_url}/models/{model} with the prompt as "inputs".

    Sizing parameters are only sent when the caller asked for a ratio;
    otherwise the model's own default resolution is used.
    """
    provider = Provider.HUGGINGFACE

    def __init__(self, api_url: str, default_model: str):
        self.api_url = api_url.rstrip("/")
        self.default_model = default_model

    def build_payload(self, request: GenerationRequest) -> dict:
        payload = {
            "inputs": request.prompt,
            "options": {"wait_for_model": True},
        }
        if request.ratio:
            dims = resolve_dimensions(self.provider, request.ratio)
            payload["parameters"] = {"width": dims.width, "height": dims.height}
        return payload

    async def generate(
        self,
        request: GenerationRequest,
        client: httpx.AsyncClient,
        should_abort: Optional[AbortCheck] = None,
    ) -> bytes:
        model = request.model or self.default_model
        url = f"{self.api_url}/models/{model}"

        logger.info(f"[HF] Generating with {model} for prompt: {request.prompt[:50]}...")
        response = await send(
            self.provider.value,
            client,
            "POST",
            url,
            headers=bearer_headers(request.credential),
            json=self.build_payload(request),
        )
        return response.content
