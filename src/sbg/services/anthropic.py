"""Anthropic Claude API client wrapper."""

import logging
from typing import Optional

from anthropic import (
    APIConnectionError,
    APIError,
    AsyncAnthropic,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)

from ..config import config
from ..errors import AuthenticationFailure, ServiceFailure, is_auth_error

logger = logging.getLogger(__name__)


class AnthropicClient:
    """Async client wrapper for the Anthropic Claude API.

    Failed requests are not retried: every failure surfaces as an
    AuthenticationFailure or ServiceFailure for the caller to classify.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ) -> None:
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to config.default_model.
        """
        self._api_key = api_key or config.anthropic_api_key
        if not self._api_key:
            raise ValueError(
                "Anthropic API key not provided. Set ANTHROPIC_API_KEY env var."
            )

        self._client = AsyncAnthropic(api_key=self._api_key)
        self._model = model or config.default_model

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    async def create_message(
        self,
        prompt: str,
        max_tokens: int = 8192,
        system: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        """Create a message using Claude.

        Args:
            prompt: The user prompt to send.
            max_tokens: Maximum tokens in the response.
            system: Optional system prompt.
            temperature: Sampling temperature (0.0-1.0).

        Returns:
            The text content of Claude's response.

        Raises:
            AuthenticationFailure: If the API key is rejected.
            ServiceFailure: If the request fails or the reply is empty.
        """
        kwargs = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system

        logger.debug(f"Sending request to Claude ({len(prompt)} chars)")

        try:
            response = await self._client.messages.create(**kwargs)

        except (AuthenticationError, PermissionDeniedError) as e:
            logger.error(f"Authentication error: {e}")
            raise AuthenticationFailure() from e

        except RateLimitError as e:
            logger.warning(f"Rate limited: {e}")
            raise ServiceFailure(f"Rate limited: {e}") from e

        except APIConnectionError as e:
            logger.warning(f"Connection error: {e}")
            raise ServiceFailure(f"Connection error: {e}") from e

        except APIError as e:
            logger.error(f"API error: {e}")
            if is_auth_error(e):
                raise AuthenticationFailure() from e
            raise ServiceFailure(str(e)) from e

        # Extract text content from response
        text = "".join(
            block.text for block in response.content if getattr(block, "text", None)
        )
        if not text.strip():
            raise ServiceFailure("The model returned an empty response")
        return text
