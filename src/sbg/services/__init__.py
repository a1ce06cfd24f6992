"""External service integrations."""

from .anthropic import AnthropicClient
from .gemini import GeminiImageClient

__all__ = [
    "AnthropicClient",
    "GeminiImageClient",
]
