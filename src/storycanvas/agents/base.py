"""Base agent abstraction."""

import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from google.genai import types

from ..services.gemini import GeminiClient

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for AI agents.

    Provides shared functionality for agents that use Gemini for generation.
    Subclasses must implement `run` and `system_prompt`.
    """

    def __init__(self, client: GeminiClient) -> None:
        """Initialize the agent.

        Args:
            client: GeminiClient used for every request this agent makes.
        """
        self._client = client
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name."""
        ...

    @abstractmethod
    def system_prompt(self, input_data: InputT) -> str:
        """Return the system instruction for this input."""
        ...

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._client.text_model

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
        input_data: InputT,
        response_schema: Optional[types.Schema] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send a prompt with this agent's system instruction.

        Args:
            prompt: The user contents to send.
            input_data: Input the system instruction is built from.
            response_schema: Optional JSON schema for the response.
            temperature: Sampling temperature.

        Returns:
            The text content of the model's response.
        """
        self._logger.debug(f"Creating message with prompt length: {len(prompt)}")

        try:
            response = await self._client.generate_text(
                contents=prompt,
                system_instruction=self.system_prompt(input_data),
                response_schema=response_schema,
                temperature=temperature,
            )
            self._logger.debug(f"Received response of length: {len(response)}")
            return response

        except Exception as e:
            self._logger.error(f"Error creating message: {e}")
            raise
