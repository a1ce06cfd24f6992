"""Google Gemini image generation client wrapper."""

import logging
from typing import Optional, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..config import check_aspect_ratio, config
from ..errors import AuthenticationFailure, SafetyRejection, ServiceFailure, is_auth_error
from ..models import CharacterReference, ImageResult

logger = logging.getLogger(__name__)


class GeminiImageClient:
    """Client wrapper for Gemini image generation with reference images."""

    DEFAULT_STYLE = "cinematic, photorealistic"
    CONTINUITY_MIME_TYPE = "image/png"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key: Gemini API key. Defaults to GEMINI_API_KEY / GOOGLE_API_KEY.
            model: Image model name. Defaults to config.image_model.
        """
        self._api_key = api_key or config.gemini_api_key
        if not self._api_key:
            raise ValueError("GEMINI_API_KEY not set")

        self._client = genai.Client(api_key=self._api_key)
        self._model = model or config.image_model

    @property
    def model(self) -> str:
        return self._model

    @classmethod
    def build_prompt(cls, prompt: str, style: Optional[str] = None) -> str:
        """Prefix a scene prompt with the visual style."""
        return f"Style: {style or cls.DEFAULT_STYLE}. {prompt}"

    def build_contents(
        self,
        final_prompt: str,
        character_images: Sequence[CharacterReference] = (),
        continuity_image: Optional[bytes] = None,
    ) -> list[types.Part]:
        """Assemble the multimodal request parts.

        Character references come first, named in an instruction, followed
        by the previous scene image when continuity is requested.
        """
        parts = [types.Part.from_text(text=final_prompt)]

        if character_images:
            names = ", ".join(ref.name for ref in character_images)
            parts.append(types.Part.from_text(
                text=(
                    "\n\n[INSTRUCTIONS] Use the following provided images as a strong visual "
                    f"reference for the characters named: {names}. Maintain their appearance."
                )
            ))
            for ref in character_images:
                parts.append(types.Part.from_bytes(data=ref.image_bytes, mime_type=ref.mime_type))

        if continuity_image:
            parts.append(types.Part.from_text(
                text=(
                    "\n\n[INSTRUCTIONS] Use the following image as a reference for visual "
                    "continuity from the previous scene."
                )
            ))
            parts.append(types.Part.from_bytes(data=continuity_image, mime_type=self.CONTINUITY_MIME_TYPE))

        return parts

    async def generate_image(
        self,
        prompt: str,
        character_images: Sequence[CharacterReference] = (),
        continuity_image: Optional[bytes] = None,
        style: Optional[str] = None,
        aspect_ratio: str = "1:1",
    ) -> ImageResult:
        """Generate an image from a prompt and optional reference images.

        Args:
            prompt: Text description of the image to generate.
            character_images: References for character fidelity.
            continuity_image: Previous scene image for visual continuity.
            style: Visual style string.
            aspect_ratio: Image aspect ratio ('1:1', '16:9', '9:16', '4:3', '3:4').

        Returns:
            ImageResult. ``image_bytes`` is None when nothing came back or the
            response was filtered (``was_rewritten`` is then True).

        Raises:
            ValueError: If the aspect ratio is unsupported.
            AuthenticationFailure: If the API key is rejected.
            SafetyRejection: If the request itself was refused by a safety filter.
            ServiceFailure: For any other API error.
        """
        check_aspect_ratio(aspect_ratio)

        final_prompt = self.build_prompt(prompt, style)
        contents = self.build_contents(final_prompt, character_images, continuity_image)

        logger.info(f"Generating image with Gemini: {prompt[:50]}...")

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
                ),
            )

        except genai_errors.APIError as e:
            message = str(e)
            if "SAFETY" in message:
                logger.warning(f"Image blocked by safety filter: {message[:200]}")
                raise SafetyRejection(f"Image blocked by safety filter: {message[:200]}") from e
            if e.code in (401, 403) or is_auth_error(e):
                raise AuthenticationFailure() from e
            logger.error(f"Gemini API error: {message}")
            raise ServiceFailure(f"Failed to generate image. Details: {message}") from e

        return self._parse_response(response, final_prompt)

    def _parse_response(self, response, final_prompt: str) -> ImageResult:
        """Extract the first inline image and the safety verdict."""
        if not response.candidates:
            return ImageResult(final_prompt=final_prompt, was_rewritten=True)

        candidate = response.candidates[0]
        image_bytes: Optional[bytes] = None
        if candidate.content and candidate.content.parts:
            for part in candidate.content.parts:
                if part.inline_data is not None and part.inline_data.data:
                    image_bytes = part.inline_data.data
                    break

        was_rewritten = any(
            getattr(rating, "blocked", False) for rating in (candidate.safety_ratings or [])
        )
        if candidate.finish_reason == types.FinishReason.SAFETY:
            was_rewritten = True

        return ImageResult(image_bytes=image_bytes, final_prompt=final_prompt, was_rewritten=was_rewritten)
