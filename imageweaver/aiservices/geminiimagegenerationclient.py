from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from ..config import Settings, get_settings
from ..schemas import AspectRatio
from .imagegenerationclient import GenerationError, ImageGenerationClient

logger = logging.getLogger(__name__)

NO_IMAGE_DATA_MESSAGE = "Image generation failed: No image data received from the API."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred during image generation."
OUTPUT_MIME_TYPE = "image/jpeg"


class GeminiImageGenerationClient(ImageGenerationClient):
    """
    Thin wrapper around the Imagen endpoint of the google-genai SDK.

    One call per ``generate``: a single JPEG image at the requested aspect
    ratio. No retries and no timeout beyond the SDK transport defaults.
    """

    def __init__(self, settings: Optional[Settings] = None, genai_client: Any | None = None) -> None:
        self.settings = settings or get_settings()
        self._model = self.settings.image_model_id
        self._client = genai_client

    # --- SDK plumbing ---------------------------------------------------------

    @property
    def client(self) -> Any:
        """Instantiate and cache :class:`google.genai.Client`."""
        if self._client is None:
            from google import genai  # Imported lazily for testability

            self._client = genai.Client(api_key=self.settings.api_key.get_secret_value())
        return self._client

    def _build_config(self, aspect_ratio: AspectRatio) -> Any:
        from google.genai import types

        return types.GenerateImagesConfig(
            number_of_images=1,
            output_mime_type=OUTPUT_MIME_TYPE,
            aspect_ratio=aspect_ratio.value,
        )

    # --- Generation -----------------------------------------------------------

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> str:
        aspect_ratio = AspectRatio(aspect_ratio)

        try:
            config = self._build_config(aspect_ratio)
            response = await self.client.aio.models.generate_images(
                model=self._model,
                prompt=prompt,
                config=config,
            )
        except Exception as exc:
            logger.exception("Error generating image with Gemini API")
            detail = str(exc).strip()
            if not detail:
                raise GenerationError(UNEXPECTED_ERROR_MESSAGE) from exc
            raise GenerationError(f"Failed to generate image: {detail}") from exc

        payload = self._extract_image_bytes(response)
        if payload is None:
            logger.error("Gemini API returned no image data for aspect ratio %s", aspect_ratio.value)
            raise GenerationError(NO_IMAGE_DATA_MESSAGE)

        logger.info(
            "Generated %s image (%d base64 chars)", aspect_ratio.value, len(payload)
        )
        return payload

    @staticmethod
    def _extract_image_bytes(response: Any) -> Optional[str]:
        generated = getattr(response, "generated_images", None) or []
        if not generated:
            return None

        image = getattr(generated[0], "image", None)
        image_bytes = getattr(image, "image_bytes", None)
        if not image_bytes:
            return None

        # The SDK decodes the wire payload to raw bytes; the view expects base64 text.
        if isinstance(image_bytes, (bytes, bytearray)):
            return base64.b64encode(bytes(image_bytes)).decode("ascii")
        return str(image_bytes)
