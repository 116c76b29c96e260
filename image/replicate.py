"""
Replicate prediction provider implementation.

Replicate runs generations as asynchronous predictions: submit, poll the
prediction until it settles, then download the produced asset.
"""
import logging
from typing import Any, Optional

import httpx

from image.base import AbortCheck, GenerationRequest, ImageProvider, Job, JobStatus, Provider
from image.dimensions import resolve_dimensions
from image.errors import InvalidResponseError, ValidationError
from image.polling import DEFAULT_MAX_ATTEMPTS, DEFAULT_POLL_INTERVAL, poll_until_complete
from image.transport import bearer_headers, read_json, send

logger = logging.getLogger(__name__)

# Replicate statuses: starting, processing, succeeded, failed, canceled
FAILED_STATUSES = {"failed", "canceled"}


def to_job(data: Any) -> Job:
    """Normalize a Replicate prediction payload into a Job."""
    if not isinstance(data, dict) or not data.get("id"):
        raise InvalidResponseError("Replicate prediction response missing 'id'")

    status = data.get("status")
    if status == "succeeded":
        job_status = JobStatus.SUCCEEDED
    elif status in FAILED_STATUSES:
        job_status = JobStatus.FAILED
    else:
        job_status = JobStatus.PENDING

    return Job(
        job_id=data["id"],
        status=job_status,
        output=data.get("output") if job_status == JobStatus.SUCCEEDED else None,
        raw=data,
    )


def first_output_url(job: Job) -> str:
    output = job.output
    if isinstance(output, list):
        output = output[0] if output else None
    if not isinstance(output, str) or not output:
        raise InvalidResponseError(f"Replicate job {job.job_id} succeeded without an output URL")
    return output


class ReplicateImageProvider(ImageProvider):
    provider = Provider.REPLICATE

    def __init__(
        self,
        api_url: str,
        model_version: Optional[str] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.api_url = api_url.rstrip("/")
        self.model_version = model_version
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    async def submit(self, request: GenerationRequest, client: httpx.AsyncClient) -> Job:
        version = request.model or self.model_version
        if not version:
            raise ValidationError("No Replicate model version configured; set REPLICATE_MODEL_VERSION or pass 'model'")

        dims = resolve_dimensions(self.provider, request.ratio)
        payload = {
            "version": version,
            "input": {
                "prompt": request.prompt,
                "width": dims.width,
                "height": dims.height,
            },
        }

        response = await send(
            self.provider.value,
            client,
            "POST",
            f"{self.api_url}/v1/predictions",
            headers=bearer_headers(request.credential),
            json=payload,
        )
        job = to_job(read_json(self.provider.value, response))
        logger.info(f"[REPLICATE] Submitted prediction {job.job_id} ({job.status.value})")
        return job

    async def fetch_status(self, job_id: str, credential: str, client: httpx.AsyncClient) -> Job:
        response = await send(
            self.provider.value,
            client,
            "GET",
            f"{self.api_url}/v1/predictions/{job_id}",
            headers=bearer_headers(credential),
        )
        return to_job(read_json(self.provider.value, response))

    async def download(self, url: str, client: httpx.AsyncClient) -> bytes:
        response = await send(self.provider.value, client, "GET", url)
        return response.content

    async def generate(
        self,
        request: GenerationRequest,
        client: httpx.AsyncClient,
        should_abort: Optional[AbortCheck] = None,
    ) -> bytes:
        job = await self.submit(request, client)

        async def fetch(job_id: str) -> Job:
            return await self.fetch_status(job_id, request.credential, client)

        job = await poll_until_complete(
            job,
            fetch,
            interval=self.poll_interval,
            max_attempts=self.max_attempts,
            should_abort=should_abort,
        )

        url = first_output_url(job)
        logger.info(f"[REPLICATE] Downloading output of {job.job_id}")
        return await self.download(url, client)
