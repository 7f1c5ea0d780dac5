"""Pydantic models shared by the view, the client and the FastAPI endpoints."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    LANDSCAPE_16_9 = "16:9"
    PORTRAIT_9_16 = "9:16"
    LANDSCAPE_4_3 = "4:3"
    PORTRAIT_3_4 = "3:4"


# Declaration order is the display order; the first entry is the default.
ASPECT_RATIOS: tuple[AspectRatio, ...] = tuple(AspectRatio)
DEFAULT_ASPECT_RATIO = ASPECT_RATIOS[0]


class GenerationRequest(BaseModel):
    prompt: str = Field(..., description="Text prompt for image generation")
    aspect_ratio: AspectRatio = Field(
        default=DEFAULT_ASPECT_RATIO,
        description="Aspect ratio of the generated image",
    )


class ImageResponse(BaseModel):
    image: str = Field(..., description="Base64-encoded JPEG image")
    data_uri: str = Field(..., description="The image as a data:image/jpeg URI")


class ViewStateResponse(BaseModel):
    prompt: str
    aspect_ratio: AspectRatio
    image_data: Optional[str] = None
    is_loading: bool
    error: Optional[str] = None
