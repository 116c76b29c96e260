from pydantic import BaseModel, Field
from typing import List, Optional


class GenerateRequest(BaseModel):
    """Single-prompt generation, optionally repeated up to four times."""
    service: str
    prompt: str
    ratio: Optional[str] = None  # "1:1" | "16:9" | "9:16"
    num_images: Optional[int] = Field(None, ge=1, le=4)


class GenerateResponse(BaseModel):
    base64: str


class GenerateImagesResponse(BaseModel):
    images: List[str]


class BatchGenerateRequest(BaseModel):
    """
    Multi-prompt generation used by the image and video routes.

    The API key may also arrive in the X-API-Key header, which wins.
    """
    prompts: List[str] = Field(..., min_length=1)
    model: Optional[str] = None
    ratio: Optional[str] = None
    apiKey: Optional[str] = None
    service: str = "huggingface"


class BatchGenerateResponse(BaseModel):
    data: List[str]  # base64 per prompt, in input order


class ErrorResponse(BaseModel):
    error: str
