"""Tests for the polling normalizer and the Replicate prediction adapter."""

import json

import httpx
import pytest
import respx

from image.base import Job, JobStatus, Provider
from image.errors import (
    InvalidResponseError,
    JobCancelledError,
    JobFailedError,
    JobTimeoutError,
    UpstreamError,
    ValidationError,
)
from image.polling import poll_until_complete
from image.replicate import ReplicateImageProvider, to_job
from tests.conftest import PNG_BYTES, REPLICATE_URL

PREDICTIONS_URL = f"{REPLICATE_URL}/v1/predictions"
STATUS_URL = f"{PREDICTIONS_URL}/job-1"
ASSET_URL = "http://x/img.png"


def prediction(status, output=None, **extra):
    return {"id": "job-1", "status": status, "output": output, **extra}


class FakeStatusSource:
    """Returns queued Job states and counts status checks."""

    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.calls = 0

    async def __call__(self, job_id):
        self.calls += 1
        status, output = self.statuses.pop(0)
        return Job(job_id=job_id, status=status, output=output, raw={"status": status.value})


# ================================
# NORMALIZER
# ================================


@pytest.mark.asyncio
async def test_pending_twice_then_succeeded():
    source = FakeStatusSource(
        (JobStatus.PENDING, None),
        (JobStatus.PENDING, None),
        (JobStatus.SUCCEEDED, [ASSET_URL]),
    )
    job = Job(job_id="job-1", status=JobStatus.PENDING)

    result = await poll_until_complete(job, source, interval=0, max_attempts=20)

    assert source.calls == 3
    assert result.status == JobStatus.SUCCEEDED
    assert result.output == [ASSET_URL]


@pytest.mark.asyncio
async def test_failed_stops_after_one_check():
    source = FakeStatusSource((JobStatus.FAILED, None), (JobStatus.PENDING, None))

    with pytest.raises(JobFailedError) as exc:
        await poll_until_complete(Job("job-1", JobStatus.PENDING), source, interval=0)

    assert source.calls == 1
    assert exc.value.payload == {"status": "failed"}


@pytest.mark.asyncio
async def test_never_leaves_pending_times_out_at_bound():
    source = FakeStatusSource(*[(JobStatus.PENDING, None)] * 50)

    with pytest.raises(JobTimeoutError) as exc:
        await poll_until_complete(Job("job-1", JobStatus.PENDING), source, interval=0, max_attempts=20)

    assert source.calls == 20
    assert exc.value.attempts == 20
    assert isinstance(exc.value, TimeoutError)


@pytest.mark.asyncio
async def test_terminal_job_is_returned_without_polling():
    source = FakeStatusSource()
    job = Job("job-1", JobStatus.SUCCEEDED, output=[ASSET_URL])

    assert await poll_until_complete(job, source, interval=0) is job
    assert source.calls == 0


@pytest.mark.asyncio
async def test_abort_stops_polling():
    source = FakeStatusSource(*[(JobStatus.PENDING, None)] * 5)
    checks = []

    async def should_abort():
        checks.append(True)
        return len(checks) > 2

    with pytest.raises(JobCancelledError):
        await poll_until_complete(Job("job-1", JobStatus.PENDING), source, interval=0, should_abort=should_abort)

    assert source.calls == 2


@pytest.mark.asyncio
async def test_status_fetch_error_propagates_immediately():
    calls = []

    async def failing(job_id):
        calls.append(job_id)
        raise UpstreamError("replicate", 502, "bad gateway")

    with pytest.raises(UpstreamError):
        await poll_until_complete(Job("job-1", JobStatus.PENDING), failing, interval=0)

    assert calls == ["job-1"]


@pytest.mark.asyncio
async def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        await poll_until_complete(Job("job-1", JobStatus.PENDING), FakeStatusSource(), max_attempts=0)


# ================================
# STATUS MAPPING
# ================================


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ("starting", JobStatus.PENDING),
        ("processing", JobStatus.PENDING),
        ("something-new", JobStatus.PENDING),
        ("succeeded", JobStatus.SUCCEEDED),
        ("failed", JobStatus.FAILED),
        ("canceled", JobStatus.FAILED),
    ],
)
def test_to_job_status_mapping(status, expected):
    assert to_job(prediction(status)).status == expected


def test_to_job_requires_id():
    with pytest.raises(InvalidResponseError):
        to_job({"status": "starting"})


# ================================
# REPLICATE ADAPTER
# ================================


@pytest.fixture
def replicate():
    return ReplicateImageProvider(REPLICATE_URL, model_version="version-abc", poll_interval=0, max_attempts=20)


@pytest.mark.asyncio
@respx.mock
async def test_replicate_polls_then_downloads(replicate, make_request):
    submit = respx.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
    status = respx.get(STATUS_URL).mock(
        side_effect=[
            httpx.Response(200, json=prediction("processing")),
            httpx.Response(200, json=prediction("processing")),
            httpx.Response(200, json=prediction("succeeded", [ASSET_URL])),
        ]
    )
    download = respx.get(ASSET_URL).mock(return_value=httpx.Response(200, content=PNG_BYTES))

    async with httpx.AsyncClient() as client:
        result = await replicate.generate(
            make_request(Provider.REPLICATE, ratio="16:9", credential="r8-token"), client
        )

    assert result == PNG_BYTES
    assert status.call_count == 3
    assert download.call_count == 1

    sent = submit.calls.last.request
    assert sent.headers["Authorization"] == "Bearer r8-token"
    assert json.loads(sent.content) == {
        "version": "version-abc",
        "input": {"prompt": "a red cube", "width": 1024, "height": 576},
    }
    assert status.calls.last.request.headers["Authorization"] == "Bearer r8-token"


@pytest.mark.asyncio
@respx.mock
async def test_replicate_string_output(replicate, make_request):
    respx.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
    respx.get(STATUS_URL).mock(return_value=httpx.Response(200, json=prediction("succeeded", ASSET_URL)))
    respx.get(ASSET_URL).mock(return_value=httpx.Response(200, content=PNG_BYTES))

    async with httpx.AsyncClient() as client:
        assert await replicate.generate(make_request(Provider.REPLICATE), client) == PNG_BYTES


@pytest.mark.asyncio
async def test_replicate_failed_job(replicate, make_request):
    with respx.mock(assert_all_called=False) as respx_mock:
        respx_mock.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
        status = respx_mock.get(STATUS_URL).mock(
            return_value=httpx.Response(200, json=prediction("failed", error="NSFW content detected"))
        )
        download = respx_mock.get(ASSET_URL).mock(return_value=httpx.Response(200, content=PNG_BYTES))

        async with httpx.AsyncClient() as client:
            with pytest.raises(JobFailedError) as exc:
                await replicate.generate(make_request(Provider.REPLICATE), client)

    assert status.call_count == 1
    assert not download.called
    assert "NSFW content detected" in str(exc.value)


@pytest.mark.asyncio
@respx.mock
async def test_replicate_timeout_bounds_status_requests(make_request):
    provider = ReplicateImageProvider(REPLICATE_URL, model_version="version-abc", poll_interval=0, max_attempts=5)
    respx.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
    status = respx.get(STATUS_URL).mock(return_value=httpx.Response(200, json=prediction("processing")))

    async with httpx.AsyncClient() as client:
        with pytest.raises(JobTimeoutError):
            await provider.generate(make_request(Provider.REPLICATE), client)

    assert status.call_count == 5


@pytest.mark.asyncio
async def test_replicate_submit_error(replicate, make_request):
    with respx.mock(assert_all_called=False) as respx_mock:
        respx_mock.post(PREDICTIONS_URL).mock(return_value=httpx.Response(422, text="invalid version"))
        status = respx_mock.get(STATUS_URL).mock(return_value=httpx.Response(200, json=prediction("succeeded")))

        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamError) as exc:
                await replicate.generate(make_request(Provider.REPLICATE), client)

    assert exc.value.status == 422
    assert not status.called


@pytest.mark.asyncio
async def test_replicate_abort_stops_polling(replicate, make_request):
    checks = []

    async def should_abort():
        checks.append(True)
        return len(checks) > 1

    with respx.mock(assert_all_called=False) as respx_mock:
        respx_mock.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
        status = respx_mock.get(STATUS_URL).mock(return_value=httpx.Response(200, json=prediction("processing")))
        download = respx_mock.get(ASSET_URL).mock(return_value=httpx.Response(200, content=PNG_BYTES))

        async with httpx.AsyncClient() as client:
            with pytest.raises(JobCancelledError) as exc:
                await replicate.generate(make_request(Provider.REPLICATE), client, should_abort=should_abort)

    assert exc.value.job_id == "job-1"
    assert status.call_count == 1
    assert not download.called


@pytest.mark.asyncio
@respx.mock
async def test_replicate_malformed_status_json(replicate, make_request):
    respx.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
    status = respx.get(STATUS_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))

    async with httpx.AsyncClient() as client:
        with pytest.raises(UpstreamError):
            await replicate.generate(make_request(Provider.REPLICATE), client)

    assert status.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_replicate_succeeded_without_output(replicate, make_request):
    respx.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))
    respx.get(STATUS_URL).mock(return_value=httpx.Response(200, json=prediction("succeeded", [])))

    async with httpx.AsyncClient() as client:
        with pytest.raises(InvalidResponseError):
            await replicate.generate(make_request(Provider.REPLICATE), client)


@pytest.mark.asyncio
async def test_replicate_requires_model_version(make_request):
    provider = ReplicateImageProvider(REPLICATE_URL, model_version=None, poll_interval=0)

    with respx.mock(assert_all_called=False) as respx_mock:
        submit = respx_mock.post(PREDICTIONS_URL).mock(return_value=httpx.Response(201, json=prediction("starting")))

        async with httpx.AsyncClient() as client:
            with pytest.raises(ValidationError):
                await provider.generate(make_request(Provider.REPLICATE), client)

    assert not submit.called
