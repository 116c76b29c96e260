from fastapi import APIRouter, Depends, Header, Request
from typing import Optional, Union
from image.factory import ProviderDispatcher
from image.schemas import (
    BatchGenerateRequest,
    BatchGenerateResponse,
    ErrorResponse,
    GenerateImagesResponse,
    GenerateRequest,
    GenerateResponse,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["image"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_dispatcher(request: Request) -> ProviderDispatcher:
    return request.app.state.dispatcher


@router.post(
    "/generate",
    response_model=Union[GenerateResponse, GenerateImagesResponse],
    responses=ERROR_RESPONSES,
)
async def generate(
    req: GenerateRequest,
    request: Request,
    x_api_key: Optional[str] = Header(None),
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),
):
    """
    Generate images for one prompt.

    Returns {"base64": ...} when num_images is omitted, otherwise
    {"images": [...]} with num_images entries.
    """
    count = req.num_images or 1
    images = await dispatcher.generate_batch(
        req.service,
        [req.prompt] * count,
        ratio=req.ratio,
        credential=x_api_key,
        should_abort=request.is_disconnected,
    )

    if req.num_images is None:
        return GenerateResponse(base64=images[0])
    return GenerateImagesResponse(images=images)


async def _generate_batch(
    req: BatchGenerateRequest,
    request: Request,
    x_api_key: Optional[str],
    dispatcher: ProviderDispatcher,
) -> BatchGenerateResponse:
    data = await dispatcher.generate_batch(
        req.service,
        req.prompts,
        ratio=req.ratio,
        credential=x_api_key or req.apiKey,
        model=req.model,
        should_abort=request.is_disconnected,
    )
    return BatchGenerateResponse(data=data)


@router.post("/generate-image", response_model=BatchGenerateResponse, responses=ERROR_RESPONSES)
async def generate_image(
    req: BatchGenerateRequest,
    request: Request,
    x_api_key: Optional[str] = Header(None),
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),
):
    """Generate one image per prompt. Response data keeps prompt order."""
    return await _generate_batch(req, request, x_api_key, dispatcher)


@router.post("/generate-video", response_model=BatchGenerateResponse, responses=ERROR_RESPONSES)
async def generate_video(
    req: BatchGenerateRequest,
    request: Request,
    x_api_key: Optional[str] = Header(None),
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),
):
    """
    Generate media per prompt through a text-to-video capable model.

    Same pipeline as /generate-image; the model decides what the bytes are.
    """
    return await _generate_batch(req, request, x_api_key, dispatcher)
