# =============================================================================
# Multimodal Vision Demo - Model Provider
# =============================================================================
# Abstracts the hosted multimodal model behind a single capability:
# generate(prompt, image_bytes, mime_type) -> text.  The proxy endpoint only
# depends on ModelProvider, so tests substitute fakes (including ones that
# hang or fail) without any network access.
#
# GeminiProvider is the production backend, calling Google's Gemini API via
# the google-genai SDK with the image sent inline next to the prompt.
# =============================================================================

import logging
from abc import ABC, abstractmethod

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


class ModelProvider(ABC):
    """Interface for a hosted multimodal text generation backend."""

    model_name: str = "unknown"

    @abstractmethod
    async def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        """Generate text for an image and prompt. Raises on failure."""
        ...


class GeminiProvider(ModelProvider):
    """
    Gemini backend for image + prompt generation.

    Args:
        api_key:    Gemini API key.
        model_name: Gemini model identifier (e.g., "gemini-1.5-flash").
    """

    def __init__(self, api_key: str, model_name: str):
        self._api_key = api_key
        self.model_name = model_name
        self._client = None

    def _get_client(self) -> genai.Client:
        """Create the SDK client lazily, on the first generate() call."""
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        """
        Send the prompt and inline image to Gemini.

        Args:
            prompt:      Instruction text.
            image_bytes: Raw image file content.
            mime_type:   MIME type of the image (e.g., "image/jpeg").

        Returns:
            The generated text; empty when the model returned no text.
        """
        image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
        logger.debug(
            "Calling %s (%d bytes, %s)", self.model_name, len(image_bytes), mime_type,
        )
        response = await self._get_client().aio.models.generate_content(
            model=self.model_name,
            contents=[prompt, image_part],
        )
        return response.text or ""
