"""Shared fixtures for gateway tests."""

import pytest

from core.config import PollingSettings, Settings
from image.base import GenerationRequest, Provider
from image.factory import ProviderDispatcher

HF_URL = "https://hf.test"
STABILITY_URL = "https://stability.test"
OPENAI_URL = "https://openai.test/v1"
REPLICATE_URL = "https://replicate.test"

# Minimal valid 1x1 PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-\xb4"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def settings():
    """Settings pointing every provider at a fake host, with instant polling."""
    return Settings(
        credentials={
            "huggingface": "hf-key",
            "stability": "sk-stability",
            "openai": "sk-openai",
            "replicate": "r8-token",
        },
        huggingface_api_url=HF_URL,
        huggingface_model="test/model",
        stability_api_url=STABILITY_URL,
        openai_base_url=OPENAI_URL,
        openai_image_model="dall-e-3",
        replicate_api_url=REPLICATE_URL,
        replicate_model_version="version-abc",
        polling=PollingSettings(interval=0, max_attempts=20),
        http_timeout=5.0,
    )


@pytest.fixture
def dispatcher(settings):
    return ProviderDispatcher(settings)


@pytest.fixture
def make_request():
    def _make(provider: Provider, prompt: str = "a red cube", ratio=None, model=None, credential="key"):
        return GenerationRequest(
            prompt=prompt,
            provider=provider,
            credential=credential,
            ratio=ratio,
            model=model,
        )

    return _make
