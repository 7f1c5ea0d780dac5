from __future__ import annotations

from abc import ABC, abstractmethod

from ..schemas import AspectRatio


class GenerationError(RuntimeError):
    """Raised for any failure on the remote image generation path."""


class ImageGenerationClient(ABC):
    """Abstract interface for an image generation client.

    Implementations issue a single remote call per invocation and either
    return the image as base64 text or raise :class:`GenerationError`.
    """

    @abstractmethod
    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> str:
        """Generate a JPEG image from a prompt and return it base64-encoded."""
