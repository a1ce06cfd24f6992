"""Base agent abstraction."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional

from pydantic import BaseModel, ValidationError

from ..services.anthropic import AnthropicClient
from ..config import config
from ..errors import ServiceFailure

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
SchemaT = TypeVar("SchemaT", bound=BaseModel)


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for AI agents.

    Provides shared functionality for agents that use Claude for generation.
    Subclasses must implement the `run` method and define their prompts.
    """

    def __init__(
        self,
        client: Optional[AnthropicClient] = None,
        model: Optional[str] = None,
    ) -> None:
        """Initialize the agent.

        Args:
            client: AnthropicClient instance. Created if not provided.
            model: Model to use. Defaults to config.default_model.
        """
        self._model = model or config.default_model
        self._client = client or AnthropicClient(model=self._model)
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name."""
        ...

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """Return the system prompt for this agent."""
        ...

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    @abstractmethod
    async def run(self, input_data: InputT) -> OutputT:
        """Execute the agent's main task.

        Args:
            input_data: Input data for the agent.

        Returns:
            Structured output from the agent.
        """
        ...

    async def _create_message(
        self,
        prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.7,
    ) -> str:
        """Create a message using the agent's client and system prompt.

        Args:
            prompt: The user prompt to send.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.

        Returns:
            The text content of Claude's response.
        """
        self._logger.debug(f"Creating message with prompt length: {len(prompt)}")

        try:
            response = await self._client.create_message(
                prompt=prompt,
                max_tokens=max_tokens,
                system=self.system_prompt,
                temperature=temperature,
            )
            self._logger.debug(f"Received response of length: {len(response)}")
            return response

        except Exception as e:
            self._logger.error(f"Error creating message: {e}")
            raise

    async def _create_structured(
        self,
        prompt: str,
        schema: type[SchemaT],
        max_tokens: int = 8192,
        temperature: float = 0.7,
    ) -> SchemaT:
        """Request a JSON reply conforming to a pydantic model and validate it.

        Raises:
            ServiceFailure: If the reply is empty, not JSON, or off-schema.
        """
        schema_json = json.dumps(schema.model_json_schema(), indent=2)
        full_prompt = (
            f"{prompt}\n\n"
            "Return ONLY a single JSON object conforming to this JSON schema, "
            "with no markdown formatting or other text:\n"
            f"{schema_json}"
        )

        response = await self._create_message(
            prompt=full_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        json_str = self._extract_json(response)
        if not json_str:
            raise ServiceFailure(f"{self.name}: the model returned no content")

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse JSON: {e}")
            self._logger.debug(f"Raw response: {response}")
            raise ServiceFailure(f"{self.name}: invalid JSON in response: {e}") from e

        try:
            return schema.model_validate(data)
        except ValidationError as e:
            self._logger.debug(f"Raw response: {response}")
            raise ServiceFailure(f"{self.name}: response does not match schema: {e}") from e

    @staticmethod
    def _extract_json(response: str) -> str:
        """Extract JSON from a response that may contain markdown or other text."""
        # Try to find JSON in code blocks
        if "```json" in response:
            start = response.find("```json") + 7
            end = response.find("```", start)
            if end > start:
                return response[start:end].strip()

        if "```" in response:
            start = response.find("```") + 3
            end = response.find("```", start)
            if end > start:
                return response[start:end].strip()

        # Try to find raw JSON object or array
        for start_char, end_char in [("{", "}"), ("[", "]")]:
            start = response.find(start_char)
            if start != -1:
                # Find matching end bracket
                depth = 0
                for i, char in enumerate(response[start:], start):
                    if char == start_char:
                        depth += 1
                    elif char == end_char:
                        depth -= 1
                        if depth == 0:
                            return response[start:i + 1]

        # Return as-is if no JSON structure found
        return response.strip()
