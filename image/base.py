from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx

# Async callable reporting whether the caller has gone away
AbortCheck = Callable[[], Awaitable[bool]]


class Provider(str, Enum):
    """Closed set of supported image generation providers."""
    HUGGINGFACE = "huggingface"
    STABILITY = "stability"
    OPENAI = "openai"
    REPLICATE = "replicate"


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationRequest:
    """
    Standardized generation request.
    Built once per prompt by the dispatcher and never mutated.
    """
    prompt: str
    provider: Provider
    credential: str
    ratio: Optional[str] = None  # "1:1" | "16:9" | "9:16"; None means the 1:1 default
    model: Optional[str] = None  # per-request override of the configured model


@dataclass
class Job:
    """
    Snapshot of a remote asynchronous job.
    Only the provider changes job state; we just read it.
    """
    job_id: str
    status: JobStatus
    output: Any = None
    raw: Optional[dict] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class ImageProvider(ABC):
    """
    Abstract interface for image generation providers.
    All providers must implement generate.
    """
    provider: Provider

    @abstractmethod
    async def generate(
        self,
        request: GenerationRequest,
        client: httpx.AsyncClient,
        should_abort: Optional[AbortCheck] = None,
    ) -> bytes:
        """
        Generate one image for the request.

        Args:
            request: The generation request (prompt, ratio, credential)
            client: Shared HTTP client for the current batch
            should_abort: Optional liveness check for long-running providers

        Returns:
            The raw image bytes, unmodified

        Raises:
            GenerationError: If the provider call fails
        """
        pass
