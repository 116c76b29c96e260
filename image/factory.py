"""
Image provider factory and dispatcher.

Builds one adapter per Provider from explicit Settings and routes
generation requests to them. Adding a provider means adding an enum
member and an entry in build_providers; construction fails otherwise.
"""
import base64
import logging
from dataclasses import replace
from typing import Dict, List, Optional

import httpx

from core.config import Settings
from image.base import AbortCheck, GenerationRequest, ImageProvider, Provider
from image.errors import MissingCredentialError, UnknownProviderError, ValidationError
from image.huggingface import HuggingFaceImageProvider
from image.openai_images import OpenAIImageProvider
from image.replicate import ReplicateImageProvider
from image.stability import StabilityImageProvider

logger = logging.getLogger(__name__)


def build_providers(settings: Settings) -> Dict[Provider, ImageProvider]:
    """Create every provider adapter from settings."""
    return {
        Provider.HUGGINGFACE: HuggingFaceImageProvider(
            settings.huggingface_api_url, settings.huggingface_model
        ),
        Provider.STABILITY: StabilityImageProvider(settings.stability_api_url),
        Provider.OPENAI: OpenAIImageProvider(settings.openai_base_url, settings.openai_image_model),
        Provider.REPLICATE: ReplicateImageProvider(
            settings.replicate_api_url,
            model_version=settings.replicate_model_version,
            poll_interval=settings.polling.interval,
            max_attempts=settings.polling.max_attempts,
        ),
    }


def parse_provider(token: Optional[str]) -> Provider:
    """
    Map a provider name from a request onto a Provider.

    Raises:
        ValidationError: If no provider was given
        UnknownProviderError: If the name matches no provider
    """
    if not token or not token.strip():
        raise ValidationError("Field 'service' is required")
    try:
        return Provider(token.strip().lower())
    except ValueError:
        raise UnknownProviderError(token)


class ProviderDispatcher:
    """
    Routes generation requests to provider adapters.

    Holds only immutable settings and stateless adapters, so one instance
    is safely shared by all concurrent requests.
    """

    def __init__(self, settings: Settings, providers: Optional[Dict[Provider, ImageProvider]] = None):
        self.settings = settings
        self.providers = providers if providers is not None else build_providers(settings)

        missing = [p.value for p in Provider if p not in self.providers]
        if missing:
            raise ValueError(f"No adapter registered for providers: {', '.join(missing)}")

    def resolve_credential(self, provider: Provider, supplied: Optional[str] = None) -> str:
        """
        Pick the request-supplied credential, else the configured one.

        Raises:
            MissingCredentialError: If neither is available
        """
        credential = (supplied or "").strip() or self.settings.credential_for(provider.value)
        if not credential:
            raise MissingCredentialError(provider.value)
        return credential

    def new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout, follow_redirects=True)

    async def generate(
        self,
        request: GenerationRequest,
        client: Optional[httpx.AsyncClient] = None,
        should_abort: Optional[AbortCheck] = None,
    ) -> bytes:
        """
        Generate one image and return its raw bytes.

        An empty request credential falls back to the configured one;
        MissingCredentialError is raised before any network call.
        """
        credential = self.resolve_credential(request.provider, request.credential)
        request = replace(request, credential=credential)
        adapter = self.providers[request.provider]
        if client is not None:
            return await adapter.generate(request, client, should_abort)

        async with self.new_client() as owned:
            return await adapter.generate(request, owned, should_abort)

    async def generate_base64(
        self,
        request: GenerationRequest,
        client: Optional[httpx.AsyncClient] = None,
        should_abort: Optional[AbortCheck] = None,
    ) -> str:
        image_bytes = await self.generate(request, client, should_abort)
        return base64.b64encode(image_bytes).decode("ascii")

    async def generate_batch(
        self,
        service: Optional[str],
        prompts: List[str],
        ratio: Optional[str] = None,
        credential: Optional[str] = None,
        model: Optional[str] = None,
        should_abort: Optional[AbortCheck] = None,
    ) -> List[str]:
        """
        Generate one base64 image per prompt, in input order.

        All validation (provider, prompts, credential) happens before any
        network call. Prompts are processed one after another; the first
        failure aborts the batch and no partial results are returned.

        Args:
            service: Provider name from the request
            prompts: Prompts to render
            ratio: Optional aspect ratio token ("1:1", "16:9", "9:16")
            credential: Optional request-supplied API key
            model: Optional model override for the provider
            should_abort: Optional caller liveness check

        Returns:
            List of base64 strings, one per prompt

        Raises:
            GenerationError: On validation failure or the first provider failure
        """
        provider = parse_provider(service)
        if not prompts:
            raise ValidationError("At least one prompt is required")
        if any(not isinstance(p, str) or not p.strip() for p in prompts):
            raise ValidationError("Prompts cannot be empty")
        key = self.resolve_credential(provider, credential)

        logger.info(f"Generating {len(prompts)} image(s) with {provider.value}")
        results = []
        async with self.new_client() as client:
            for index, prompt in enumerate(prompts):
                request = GenerationRequest(
                    prompt=prompt,
                    provider=provider,
                    credential=key,
                    ratio=ratio,
                    model=model,
                )
                try:
                    results.append(await self.generate_base64(request, client, should_abort))
                except Exception:
                    logger.warning(f"Batch aborted at prompt {index + 1}/{len(prompts)} ({provider.value})")
                    raise
        return results
